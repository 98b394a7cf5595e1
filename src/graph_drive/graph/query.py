"""Composition of request URIs from resolved paths and query options."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import quote

from graph_drive.graph.errors import UnsupportedQueryError
from graph_drive.graph.models import FIELD_NAME
from graph_drive.graph.references import ROOT

logger = logging.getLogger(__name__)

WILDCARD = "*"

# Characters left literal in the path part of a URI
_PATH_SAFE = "/:'()=!@,$"
_QUERY_SAFE = "(),'"


@dataclass(frozen=True)
class QueryOptions:
    """Options narrowing a collection request.

    Attributes:
        select: Property names to request; None requests the server default.
        search: Free-text search term. A term containing ``*`` is treated as
            an ``include`` pattern.
        include: Name pattern; ``tok*`` (prefix), ``*tok`` (suffix) or an exact name.
        filter: Raw OData filter expression, ANDed with the include filter.
        shared_with_me: List items shared with the default user instead.
        top: Page size requested from the server.
    """

    select: Sequence[str] | None = None
    search: str | None = None
    include: str | None = None
    filter: str | None = None
    shared_with_me: bool = False
    top: int | None = None


def quote_literal(value: str) -> str:
    """Escape a value for use inside an OData single-quoted string."""
    return value.replace("'", "''")


def wildcard_filter(pattern: str, field: str = FIELD_NAME) -> str | None:
    """Translate a name pattern into an OData filter expression.

    Args:
        pattern: ``tok*``, ``*tok``, an exact name, or ``*`` for everything.
        field: Property the pattern applies to.

    Returns:
        The filter expression, or None when the pattern matches everything.

    Raises:
        UnsupportedQueryError: For ``*tok*`` and interior wildcards, which
            Graph cannot express.
    """
    pattern = pattern.strip()
    if pattern in ("", WILDCARD):
        return None
    stars = pattern.count(WILDCARD)
    token = quote_literal(pattern.strip(WILDCARD))
    if stars == 0:
        return f"{field} eq '{token}'"
    if stars == 1 and pattern.endswith(WILDCARD):
        return f"startswith({field},'{token}')"
    if stars == 1 and pattern.startswith(WILDCARD):
        return f"endswith({field},'{token}')"
    if pattern.startswith(WILDCARD) and pattern.endswith(WILDCARD):
        raise UnsupportedQueryError(f"Contains-matching ({pattern!r}) is not supported")
    raise UnsupportedQueryError(f"Interior wildcards ({pattern!r}) are not supported")


def select_clause(fields: Sequence[str] | None, required: Sequence[str] = ()) -> str | None:
    """Return the comma-joined ``$select`` value, or None when no fields are requested."""
    if not fields:
        return None
    merged = list(dict.fromkeys([*required, *fields]))
    return ",".join(merged)


def compose(
    base_path: str,
    item_path: str | None = None,
    options: QueryOptions | None = None,
    *,
    segment: str | None = None,
    name_field: str = FIELD_NAME,
    required_fields: Sequence[str] = (),
) -> str:
    """Build the Graph-relative request URI.

    Args:
        base_path: Resolved drive path (``drives/b!x``) or collection route (``users``).
        item_path: Resolved item path within the drive, if any.
        options: Query options; None for a plain request.
        segment: Trailing segment such as ``children``.
        name_field: Property that include patterns apply to.
        required_fields: Fields always added to an explicit selection.

    Returns:
        URI relative to the Graph base URL.

    Raises:
        UnsupportedQueryError: Before any request is sent, for option
            combinations Graph cannot answer.
    """
    options = options or QueryOptions()
    search = options.search.strip() if options.search else None
    include = options.include

    if search and options.shared_with_me:
        raise UnsupportedQueryError("Search cannot be combined with shared-with-me")
    if search and WILDCARD in search:
        if include:
            raise UnsupportedQueryError("A wildcard search cannot be combined with include")
        include, search = search, None

    if options.shared_with_me:
        path = f"{base_path}/sharedWithMe"
    elif search:
        path = f"{base_path}/{item_path or ROOT}/search(q='{quote_literal(search)}')"
    else:
        parts = [base_path]
        if item_path:
            parts.append(item_path)
        if segment:
            parts.append(segment)
        path = "/".join(parts)

    params: list[str] = []
    select = select_clause(options.select, required_fields)
    if select:
        params.append(f"$select={quote(select, safe=',')}")
    filters: list[str] = []
    name_filter = wildcard_filter(include, name_field) if include else None
    if name_filter:
        filters.append(name_filter)
    if options.filter:
        filters.append(options.filter)
    if filters:
        params.append(f"$filter={quote(' and '.join(filters), safe=_QUERY_SAFE)}")
    if options.top:
        params.append(f"$top={int(options.top)}")

    uri = quote(path, safe=_PATH_SAFE)
    if params:
        uri = f"{uri}?{'&'.join(params)}"
    logger.debug("[compose] composed request uri; uri:%s", uri)
    return uri
