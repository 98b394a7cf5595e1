"""Conversion of raw Graph payloads into typed results."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from graph_drive.graph.models import FIELD_ID, ODATA_MARKER, DriveItem, GraphObject

T = TypeVar("T", bound=GraphObject)


def strip_transport_fields(raw: dict[str, Any]) -> dict[str, Any]:
    """Drop OData envelope, context and media-type annotations from a payload.

    Annotations appear both as top-level keys (``@odata.context``) and as
    property annotations (``file@odata.mediaContentType``).
    """
    return {key: value for key, value in raw.items() if ODATA_MARKER not in key}


def adapt(raw: dict[str, Any], result_type: type[T], drive_id: str | None = None) -> T:
    """Build a typed result from a raw payload.

    Adds the type's alias field (``itemId``, ``userId``, ...) and, for drive
    items, the id of the owning drive unless the payload names it already.
    """
    bag = strip_transport_fields(raw)
    bag[result_type.ALIAS_FIELD] = bag.get(FIELD_ID, "")
    if issubclass(result_type, DriveItem):
        parent_drive = (bag.get("parentReference") or {}).get("driveId")
        bag[DriveItem.CONTAINER_FIELD] = parent_drive or drive_id or ""
    return result_type.from_properties(bag)  # type: ignore[return-value]


def sort_key(result: GraphObject) -> tuple[str, str, str]:
    return (result.display_name.casefold(), result.display_name, result.id)


def sort_results(results: Iterable[T]) -> list[T]:
    """Order results by display name so output does not depend on server ordering."""
    return sorted(results, key=sort_key)
