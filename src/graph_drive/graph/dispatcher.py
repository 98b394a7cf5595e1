"""Request execution, pagination and typed materialisation of Graph responses."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from graph_drive.graph.adapter import adapt
from graph_drive.graph.client import GraphClient, GraphResponse
from graph_drive.graph.errors import ForbiddenError, NotFoundError
from graph_drive.graph.models import ODATA_NEXT_LINK, ODATA_VALUE, GraphObject
from graph_drive.graph.query import select_clause

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=GraphObject)


@dataclass(frozen=True)
class RequestSpec:
    """A composed request. Built per call and not changed once dispatched.

    ``body`` is sent as JSON unless it is ``bytes``, in which case it is sent
    raw with ``content_type``.
    """

    method: str
    uri: str
    body: Any = None
    select: Sequence[str] | None = None
    content_type: str | None = None
    headers: Mapping[str, str] | None = None
    authenticate: bool = True

    @property
    def target(self) -> str:
        """The URI with the property selection applied when not already present."""
        select = select_clause(self.select)
        if not select or "$select=" in self.uri:
            return self.uri
        joiner = "&" if "?" in self.uri else "?"
        return f"{self.uri}{joiner}$select={select}"


class Dispatcher:
    """Executes RequestSpecs and turns the responses into typed results."""

    def __init__(self, client: GraphClient) -> None:
        self._client = client

    def execute(self, spec: RequestSpec) -> GraphResponse:
        """Send one request.

        Raises:
            NotFoundError, ForbiddenError, ConflictError, TransportError: For
                non-2xx responses, keyed on the status code.
        """
        raw_body = spec.body if isinstance(spec.body, bytes) else None
        json_body = None if raw_body is not None else spec.body
        return self._client.request(
            spec.method,
            spec.target,
            json_body=json_body,
            data=raw_body,
            content_type=spec.content_type if raw_body is not None else None,
            headers=dict(spec.headers) if spec.headers else None,
            authenticate=spec.authenticate,
        )

    def iter_pages(self, spec: RequestSpec) -> Iterator[dict[str, Any]]:
        """Yield the raw elements of a collection, following ``@odata.nextLink``.

        Pages are fetched one at a time as the caller consumes the iterator.
        The iterator cannot be restarted; dispatch the spec again for a fresh
        query.
        """
        payload = self.execute(spec).payload or {}
        page = 1
        while True:
            yield from payload.get(ODATA_VALUE, [])
            next_link = payload.get(ODATA_NEXT_LINK)
            if not next_link:
                return
            page += 1
            logger.debug("[iter_pages] following continuation; page:%d", page)
            payload = self._client.request("GET", next_link).payload or {}

    def fetch_collection(
        self,
        spec: RequestSpec,
        result_type: type[T],
        drive_id: str | None = None,
        post_filter: Callable[[T], bool] | None = None,
    ) -> Iterator[T]:
        """Lazily yield typed results for a collection request.

        A missing or forbidden resource is reported as a warning and yields
        nothing. An empty collection is reported as an informational notice.
        Any other failure propagates.
        """
        count = 0
        try:
            for raw in self.iter_pages(spec):
                result = adapt(raw, result_type, drive_id)
                if post_filter is not None and not post_filter(result):
                    continue
                count += 1
                yield result
        except NotFoundError as exc:
            logger.warning(
                "[fetch_collection] resource not found; uri:%s;detail:%s", spec.uri, exc.message
            )
            return
        except ForbiddenError as exc:
            logger.warning(
                "[fetch_collection] access denied, check the application's permission scopes;"
                " uri:%s;detail:%s",
                spec.uri,
                exc.message,
            )
            return
        if count == 0:
            logger.info("[fetch_collection] no matching items; uri:%s", spec.uri)

    def fetch_one(
        self,
        spec: RequestSpec,
        result_type: type[T],
        drive_id: str | None = None,
    ) -> T | None:
        """Return a single typed result, or None with a warning if it is missing or forbidden."""
        try:
            response = self.execute(spec)
        except NotFoundError as exc:
            logger.warning(
                "[fetch_one] resource not found; uri:%s;detail:%s", spec.uri, exc.message
            )
            return None
        except ForbiddenError as exc:
            logger.warning(
                "[fetch_one] access denied, check the application's permission scopes;"
                " uri:%s;detail:%s",
                spec.uri,
                exc.message,
            )
            return None
        return adapt(response.payload or {}, result_type, drive_id)
