"""Resolution of drive and drive item references into canonical Graph path segments.

Callers may name a drive or an item in several shapes: a raw identifier, a
slash path, a previously fetched object, a special folder keyword, or nothing
at all. ``parse_*`` turns that input into exactly one reference variant and
``resolve_*`` maps each variant to the path segment used in a request URI.
Nothing here performs I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from graph_drive.graph.errors import InvalidReferenceError
from graph_drive.graph.models import (
    FIELD_DRIVE_ID,
    FIELD_ID,
    FIELD_PARENT_REFERENCE,
    Drive,
    DriveItem,
    Group,
    User,
)

SEPARATOR = "/"
ROOT = "root"
ROOT_PATH_MARKER = "root:"
ITEMS_PREFIX = "items/"
SPECIAL_PREFIX = "special/"
ROOT_MARKERS = frozenset({"/", "root", "root:", "root:/"})

# Graph's well-known folder names, keyed by their case-insensitive keyword
SPECIAL_FOLDERS: dict[str, str] = {
    "documents": "documents",
    "photos": "photos",
    "cameraroll": "cameraroll",
    "approot": "approot",
    "music": "music",
    "recordings": "recordings",
}

# OneDrive forbids "?" in names; "#" is legal and percent-encoded on the wire
_FORBIDDEN_CHARACTERS = ("?",)


# ---------------------------------------------------------------------------
# Drive references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DefaultDrive:
    """The caller's own drive."""


@dataclass(frozen=True)
class DriveId:
    """A drive addressed by its identifier."""

    value: str


@dataclass(frozen=True)
class DriveRoute:
    """A route that already names a drive, e.g. ``users/alice@contoso.com/drive``."""

    value: str


DriveReference = Union[DefaultDrive, DriveId, DriveRoute]


def parse_drive_reference(value: Any) -> DriveReference:
    """Classify caller input naming a drive.

    Args:
        value: None, a drive reference, a typed result, a Graph property
            mapping, or a string.

    Returns:
        The single DriveReference variant the input denotes.

    Raises:
        InvalidReferenceError: If the input cannot name a drive.
    """
    if value is None:
        return DefaultDrive()
    if isinstance(value, (DefaultDrive, DriveId, DriveRoute)):
        return value
    if isinstance(value, DriveItem):
        if value.drive_id:
            return DriveId(value.drive_id)
        raise InvalidReferenceError(f"Drive item {value.id!r} carries no drive id")
    if isinstance(value, ResolvedItem):
        if value.drive_id:
            return DriveId(value.drive_id)
        raise InvalidReferenceError(f"Item {value.id!r} carries no drive id")
    if isinstance(value, User):
        return DriveRoute(f"users/{value.id}/drive")
    if isinstance(value, Group):
        return DriveRoute(f"groups/{value.id}/drive")
    if isinstance(value, Drive):
        return DriveId(value.id)
    if isinstance(value, Mapping):
        parent_ref = value.get(FIELD_PARENT_REFERENCE) or {}
        drive_id = value.get(FIELD_DRIVE_ID) or parent_ref.get(FIELD_DRIVE_ID)
        if drive_id:
            return DriveId(str(drive_id))
        if value.get(FIELD_ID):
            return DriveId(str(value[FIELD_ID]))
        raise InvalidReferenceError("Mapping has neither a drive id nor an id")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidReferenceError("Drive reference is empty")
        if SEPARATOR not in text:
            return DriveId(text)
        return DriveRoute(text)
    raise InvalidReferenceError(f"Cannot use {type(value).__name__} as a drive reference")


def resolve_drive_path(reference: DriveReference, default_route: str) -> str:
    """Return the drive path segment for a reference.

    One leading and one trailing separator are removed so the result composes
    into a larger URI template.
    """
    if isinstance(reference, DefaultDrive):
        path = default_route
    elif isinstance(reference, DriveId):
        path = f"drives/{reference.value}"
    elif isinstance(reference, DriveRoute):
        path = reference.value
    else:
        raise InvalidReferenceError(f"Unknown drive reference {reference!r}")
    return path.removeprefix(SEPARATOR).removesuffix(SEPARATOR)


# ---------------------------------------------------------------------------
# Item references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemId:
    """An item addressed by its identifier."""

    value: str


@dataclass(frozen=True)
class ItemPath:
    """An item addressed by a slash path or a ``root:`` path."""

    value: str


@dataclass(frozen=True)
class ResolvedItem:
    """A previously fetched item: its id plus the id of the drive holding it."""

    id: str
    drive_id: str = ""


@dataclass(frozen=True)
class SpecialFolder:
    """One of the drive's well-known folders (documents, photos, ...)."""

    name: str


ItemReference = Union[ItemId, ItemPath, ResolvedItem, SpecialFolder]


def parse_item_reference(value: Any) -> ItemReference:
    """Classify caller input naming a file or folder.

    ``None`` means the drive root. Strings of the form ``items/{id}`` or
    without any separator are identifiers, ``special/{name}`` names a special
    folder, everything else is a path.

    Raises:
        InvalidReferenceError: If the input cannot name an item.
    """
    if value is None:
        return ItemPath(SEPARATOR)
    if isinstance(value, (ItemId, ItemPath, ResolvedItem, SpecialFolder)):
        return value
    if isinstance(value, DriveItem):
        return ResolvedItem(id=value.id, drive_id=value.drive_id)
    if isinstance(value, Mapping):
        if not value.get(FIELD_ID):
            raise InvalidReferenceError("Mapping has no id")
        parent_ref = value.get(FIELD_PARENT_REFERENCE) or {}
        drive_id = value.get(FIELD_DRIVE_ID) or parent_ref.get(FIELD_DRIVE_ID) or ""
        return ResolvedItem(id=str(value[FIELD_ID]), drive_id=str(drive_id))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidReferenceError("Item reference is empty")
        if text.startswith(ITEMS_PREFIX):
            return ItemId(text[len(ITEMS_PREFIX) :])
        if text.startswith(SPECIAL_PREFIX):
            return SpecialFolder(text[len(SPECIAL_PREFIX) :])
        if text in ROOT_MARKERS:
            return ItemPath(text)
        if SEPARATOR not in text and ":" not in text:
            return ItemId(text)
        return ItemPath(text)
    raise InvalidReferenceError(f"Cannot use {type(value).__name__} as an item reference")


def resolve_item_path(reference: ItemReference) -> str:
    """Return the item path segment for a reference.

    Examples:
        ``ItemId("01AB")`` -> ``items/01AB``;
        ``ItemPath("/")`` -> ``root``;
        ``ItemPath("root:/Docs/")`` -> ``root:/Docs:``;
        ``ItemPath("Documents/Project-X")`` -> ``root:/Documents/Project-X:``;
        ``SpecialFolder("Documents")`` -> ``special/documents``.
    """
    if isinstance(reference, SpecialFolder):
        name = SPECIAL_FOLDERS.get(reference.name.strip().lower())
        if name is None:
            raise InvalidReferenceError(f"Unknown special folder {reference.name!r}")
        return f"{SPECIAL_PREFIX}{name}"
    if isinstance(reference, ResolvedItem):
        return _items_path(reference.id)
    if isinstance(reference, ItemId):
        return _items_path(reference.value)
    if isinstance(reference, ItemPath):
        return _resolve_path(reference.value)
    raise InvalidReferenceError(f"Unknown item reference {reference!r}")


def _items_path(item_id: str) -> str:
    item_id = item_id.strip()
    if not item_id or SEPARATOR in item_id:
        raise InvalidReferenceError(f"Invalid item id {item_id!r}")
    return f"{ITEMS_PREFIX}{item_id}"


def _resolve_path(value: str) -> str:
    text = value.strip()
    if text.startswith(ITEMS_PREFIX):
        return _items_path(text[len(ITEMS_PREFIX) :])
    if text in ROOT_MARKERS:
        return ROOT
    # parentReference.path values look like /drive/root:/Docs or /drives/{id}/root:/Docs
    if not text.startswith(ROOT_PATH_MARKER):
        marker = text.find(SEPARATOR + ROOT_PATH_MARKER)
        if marker != -1:
            text = text[marker + 1 :]
    if text.startswith(ROOT_PATH_MARKER):
        segments = _path_segments(text[len(ROOT_PATH_MARKER) :].rstrip(":/"))
    else:
        if ":" in text:
            raise InvalidReferenceError(f"Unexpected ':' in path {value!r}")
        segments = _path_segments(text)
    if not segments:
        return ROOT
    return f"{ROOT_PATH_MARKER}/{SEPARATOR.join(segments)}:"


def _path_segments(path: str) -> list[str]:
    if any(char in path for char in _FORBIDDEN_CHARACTERS):
        raise InvalidReferenceError(f"Path {path!r} contains a query character")
    segments = [segment for segment in path.split(SEPARATOR) if segment]
    if any(segment in (".", "..") for segment in segments):
        raise InvalidReferenceError(f"Relative segments are not allowed in {path!r}")
    if any(":" in segment for segment in segments):
        raise InvalidReferenceError(f"Unexpected ':' in path {path!r}")
    return segments


def child_path(item_path: str, name: str) -> str:
    """Address a child called ``name`` under a canonical item path.

    ``root`` -> ``root:/name:``; ``root:/Docs:`` -> ``root:/Docs/name:``;
    ``items/01AB`` -> ``items/01AB:/name:``.
    """
    name = name.strip().strip(SEPARATOR)
    if not name or SEPARATOR in name or ":" in name:
        raise InvalidReferenceError(f"Invalid item name {name!r}")
    if item_path == ROOT:
        return f"{ROOT_PATH_MARKER}/{name}:"
    if item_path.startswith(ROOT_PATH_MARKER) and item_path.endswith(":"):
        return f"{item_path[:-1]}/{name}:"
    return f"{item_path}:/{name}:"


def parent_path(item_path: str) -> tuple[str, str] | None:
    """Split a canonical ``root:`` path into (parent path, leaf name).

    Returns None for paths whose parent cannot be derived without a lookup
    (the root itself, ids, special folders).
    """
    if not (item_path.startswith(ROOT_PATH_MARKER) and item_path.endswith(":")):
        return None
    segments = item_path[len(ROOT_PATH_MARKER) : -1].strip(SEPARATOR).split(SEPARATOR)
    leaf = segments.pop()
    if not segments:
        return ROOT, leaf
    return f"{ROOT_PATH_MARKER}/{SEPARATOR.join(segments)}:", leaf


# ---------------------------------------------------------------------------
# Directory objects
# ---------------------------------------------------------------------------


def resolve_object_path(collection: str, value: Any, default: str | None = None) -> str:
    """Return ``{collection}/{id}`` for a user or group reference.

    Args:
        collection: ``users`` or ``groups``.
        value: Typed result, Graph property mapping, id or UPN string, or None.
        default: Identifier used when ``value`` is None.

    Raises:
        InvalidReferenceError: If no identifier can be taken from ``value``.
    """
    if value is None:
        value = default
    if isinstance(value, (User, Group)):
        identifier = value.id
    elif isinstance(value, Mapping):
        identifier = str(value.get(FIELD_ID) or "")
    elif isinstance(value, str):
        identifier = value.strip()
    else:
        raise InvalidReferenceError(
            f"Cannot use {type(value).__name__} as a {collection} reference"
        )
    if not identifier or SEPARATOR in identifier:
        raise InvalidReferenceError(f"Invalid {collection} reference {value!r}")
    return f"{collection}/{identifier}"
