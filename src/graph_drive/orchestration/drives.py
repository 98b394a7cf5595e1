"""Drive and drive item operations: get, list, search, create, update, delete, transfer."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from graph_drive.graph.adapter import sort_results
from graph_drive.graph.context import (
    CAPABILITY_GROUP_DRIVES,
    CAPABILITY_SHARED_WITH_ME,
    GraphContext,
    graph_context_from_config,
)
from graph_drive.graph.dispatcher import Dispatcher, RequestSpec
from graph_drive.graph.errors import (
    ConflictError,
    DriveNotFoundError,
    ForbiddenError,
    InvalidDestinationError,
    InvalidReferenceError,
    MissingCapabilityError,
    NotFoundError,
    UnsupportedQueryError,
)
from graph_drive.graph.models import (
    CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    Drive,
    DriveItem,
)
from graph_drive.graph.query import QueryOptions, compose
from graph_drive.graph.references import (
    DefaultDrive,
    DriveId,
    DriveReference,
    ResolvedItem,
    SpecialFolder,
    parse_drive_reference,
    parse_item_reference,
    resolve_drive_path,
    resolve_item_path,
    resolve_object_path,
)
from graph_drive.graph.upload import ConflictMode, Uploader

if TYPE_CHECKING:
    from graph_drive.config import AppConfig

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Fields the adapter and the path helpers rely on when a selection is explicit
DRIVE_ITEM_FIELDS = (FIELD_ID, FIELD_NAME, FIELD_PARENT_REFERENCE, FIELD_FOLDER)
DRIVE_FIELDS = (FIELD_ID, FIELD_NAME)

# Errors that are reported as warnings; the operation then returns its empty result
REPORTED_ERRORS = (
    InvalidReferenceError,
    UnsupportedQueryError,
    MissingCapabilityError,
    InvalidDestinationError,
    NotFoundError,
    ForbiddenError,
)


def reported(empty: Callable[[], R]) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Turn recoverable errors of an operation into a warning and an empty result.

    Transport failures and conflicts still propagate to the caller.
    """

    def decorator(operation: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(operation)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            try:
                return operation(*args, **kwargs)
            except REPORTED_ERRORS as exc:
                logger.warning("[%s] %s", operation.__name__, exc)
                return empty()

        return wrapper

    return decorator


class DriveOperations:
    """Caller-facing operations on drives and the items they hold.

    Every operation accepts references in any supported shape: ids, paths,
    previously fetched results, or None for the default drive and its root.
    """

    def __init__(self, context: GraphContext, dispatcher: Dispatcher | None = None) -> None:
        """Initialise the drive operations.

        Args:
            context: Session context with the client, defaults and drive name cache.
            dispatcher: Dispatcher to use; one is built on the context's client if omitted.
        """
        self._context = context
        self._dispatcher = dispatcher or Dispatcher(context.client)
        self._uploader = Uploader(
            self._dispatcher,
            simple_upload_limit=context.simple_upload_limit,
            chunk_size=context.upload_chunk_size,
        )

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _drive_path(self, drive: Any) -> tuple[DriveReference, str]:
        """Classify a drive reference and compute its path without any request."""
        reference = parse_drive_reference(drive)
        return reference, resolve_drive_path(reference, self._context.default_drive_path)

    def _confirm_drive(self, reference: DriveReference, drive_path: str) -> str | None:
        """Return the drive id of an explicitly named drive, dereferencing it once.

        Called only after the request URI is composed, so invalid references
        and unsupported queries never reach the network. A missing drive
        raises DriveNotFoundError.
        """
        if isinstance(reference, DefaultDrive):
            return None
        if isinstance(reference, DriveId) and reference.value in self._context.drive_names:
            return reference.value
        known = self._context.drive_names.drive_for(drive_path)
        if known:
            return known
        try:
            raw = self._dispatcher.execute(
                RequestSpec("GET", compose(drive_path), select=DRIVE_FIELDS)
            ).payload or {}
        except NotFoundError as exc:
            raise DriveNotFoundError(exc.status_code, f"Drive {drive_path!r} not found") from exc
        drive_id = raw.get(FIELD_ID) or None
        if drive_id:
            self._context.drive_names.remember(drive_id, raw.get(FIELD_NAME, ""))
            self._context.drive_names.remember_route(drive_path, drive_id)
        return drive_id

    @staticmethod
    def _resolve_item(item: Any, special: str | None = None) -> str:
        if special is not None:
            return resolve_item_path(SpecialFolder(special))
        return resolve_item_path(parse_item_reference(item))

    def _item_drive(self, item: Any, drive: Any) -> Any:
        """Use the drive a fetched item belongs to when no drive is named."""
        if drive is None and isinstance(item, (DriveItem, ResolvedItem)) and item.drive_id:
            return item.drive_id
        return drive

    def _remember(self, drive: Drive) -> Drive:
        self._context.drive_names.remember(drive.id, drive.name)
        return drive

    # ------------------------------------------------------------------
    # Drives
    # ------------------------------------------------------------------

    @reported(lambda: None)
    def get_drive(self, drive: Any = None) -> Drive | None:
        """Return a drive (the default drive when ``drive`` is None)."""
        _, drive_path = self._drive_path(drive)
        result = self._dispatcher.fetch_one(RequestSpec("GET", compose(drive_path)), Drive)
        return self._remember(result) if result is not None else None

    @reported(list)
    def list_drives(self, user: Any = None) -> list[Drive]:
        """Return the drives available to a user, sorted by name."""
        route = resolve_object_path("users", user, self._context.drive_user)
        spec = RequestSpec("GET", compose(route, segment="drives"))
        drives = self._dispatcher.fetch_collection(spec, Drive)
        return sort_results(self._remember(drive) for drive in drives)

    @reported(lambda: None)
    def get_group_drive(self, group: Any) -> Drive | None:
        """Return the document library of a group."""
        if not self._context.has_capability(CAPABILITY_GROUP_DRIVES):
            raise MissingCapabilityError(CAPABILITY_GROUP_DRIVES)
        route = resolve_object_path("groups", group)
        spec = RequestSpec("GET", compose(route, segment="drive"))
        result = self._dispatcher.fetch_one(spec, Drive)
        return self._remember(result) if result is not None else None

    # ------------------------------------------------------------------
    # Items: read
    # ------------------------------------------------------------------

    @reported(lambda: None)
    def get_item(
        self,
        item: Any = None,
        drive: Any = None,
        *,
        special: str | None = None,
        select: list[str] | None = None,
    ) -> DriveItem | None:
        """Return one file or folder.

        Args:
            item: Id, path, fetched item, or None for the drive root.
            drive: Drive reference; defaults to the item's own drive, then the
                default drive.
            special: Special folder keyword (documents, photos, ...) used
                instead of ``item``.
            select: Properties to request.
        """
        reference, drive_path = self._drive_path(self._item_drive(item, drive))
        uri = compose(
            drive_path,
            self._resolve_item(item, special),
            QueryOptions(select=select),
            required_fields=DRIVE_ITEM_FIELDS,
        )
        drive_id = self._confirm_drive(reference, drive_path)
        return self._dispatcher.fetch_one(RequestSpec("GET", uri), DriveItem, drive_id)

    @reported(list)
    def list_children(
        self,
        item: Any = None,
        drive: Any = None,
        options: QueryOptions | None = None,
        *,
        special: str | None = None,
        only_folders: bool = False,
        only_files: bool = False,
    ) -> list[DriveItem]:
        """Return the children of a folder, sorted by name.

        Args:
            item: Folder id, path, fetched item, or None for the drive root.
            drive: Drive reference.
            options: Selection, include pattern, search or shared-with-me.
            special: Special folder keyword used instead of ``item``.
            only_folders: Keep folders only.
            only_files: Keep files only.
        """
        options = options or QueryOptions()
        shared = options.shared_with_me
        if shared and not self._context.has_capability(CAPABILITY_SHARED_WITH_ME):
            raise MissingCapabilityError(CAPABILITY_SHARED_WITH_ME)
        if options.top is None and self._context.page_size:
            options = replace(options, top=self._context.page_size)
        reference, drive_path = self._drive_path(self._item_drive(item, drive))
        uri = compose(
            drive_path,
            self._resolve_item(item, special),
            options,
            segment="children",
            required_fields=DRIVE_ITEM_FIELDS,
        )
        drive_id = self._confirm_drive(reference, drive_path)

        post_filter: Callable[[DriveItem], bool] | None = None
        if only_folders:
            post_filter = _is_folder
        elif only_files:
            post_filter = _is_file
        results = self._dispatcher.fetch_collection(
            RequestSpec("GET", uri), DriveItem, drive_id, post_filter
        )
        return sort_results(results)

    def search(
        self,
        term: str,
        folder: Any = None,
        drive: Any = None,
        options: QueryOptions | None = None,
    ) -> list[DriveItem]:
        """Search a folder (the drive root by default) for items matching ``term``.

        A term with a leading or trailing ``*`` becomes a name filter on the
        folder's children.
        """
        options = replace(options or QueryOptions(), search=term)
        return self.list_children(folder, drive, options)

    def shared_with_me(self, options: QueryOptions | None = None) -> list[DriveItem]:
        """Return the items other users shared with the default user."""
        options = replace(options or QueryOptions(), shared_with_me=True)
        return self.list_children(None, None, options)

    @reported(lambda: None)
    def download(self, item: Any, drive: Any = None) -> bytes | None:
        """Return the content of a file."""
        reference, drive_path = self._drive_path(self._item_drive(item, drive))
        uri = compose(drive_path, self._resolve_item(item), segment="content")
        self._confirm_drive(reference, drive_path)
        content = self._context.client.get_content(uri)
        logger.info("[download] downloaded content; uri:%s;size:%d", uri, len(content))
        return content

    # ------------------------------------------------------------------
    # Items: write
    # ------------------------------------------------------------------

    @reported(lambda: None)
    def new_folder(
        self,
        name: str,
        parent: Any = None,
        drive: Any = None,
        conflict: ConflictMode = ConflictMode.FAIL,
    ) -> DriveItem | None:
        """Create a folder under ``parent`` (the drive root by default).

        Raises:
            ConflictError: If a child with this name exists and ``conflict`` is ``fail``.
        """
        if not name or "/" in name or ":" in name:
            raise InvalidReferenceError(f"Invalid folder name {name!r}")
        reference, drive_path = self._drive_path(self._item_drive(parent, drive))
        uri = compose(drive_path, self._resolve_item(parent), segment="children")
        body = {FIELD_NAME: name, FIELD_FOLDER: {}, CONFLICT_BEHAVIOR: ConflictMode(conflict).value}
        drive_id = self._confirm_drive(reference, drive_path)
        spec = RequestSpec("POST", uri, body=body)
        try:
            return self._dispatcher.fetch_one(spec, DriveItem, drive_id)
        except ConflictError:
            logger.warning("[new_folder] folder already exists; name:%s", name)
            raise

    @reported(lambda: None)
    def update_item(
        self, item: Any, properties: Mapping[str, Any], drive: Any = None
    ) -> DriveItem | None:
        """Patch properties of a file or folder and return the updated item."""
        reference, drive_path = self._drive_path(self._item_drive(item, drive))
        uri = compose(drive_path, self._resolve_item(item))
        drive_id = self._confirm_drive(reference, drive_path)
        spec = RequestSpec("PATCH", uri, body=dict(properties))
        try:
            return self._dispatcher.fetch_one(spec, DriveItem, drive_id)
        except ConflictError:
            logger.warning("[update_item] update collides with an existing item; uri:%s", uri)
            raise

    def rename_item(self, item: Any, new_name: str, drive: Any = None) -> DriveItem | None:
        """Give a file or folder a new name in place."""
        return self.update_item(item, {FIELD_NAME: new_name}, drive)

    @reported(lambda: None)
    def move_item(
        self, item: Any, destination: Any, drive: Any = None, new_name: str | None = None
    ) -> DriveItem | None:
        """Move a file or folder into the ``destination`` folder of the same drive."""
        drive = self._item_drive(item, drive)
        # Both references must resolve before the destination lookup
        self._drive_path(drive)
        self._resolve_item(item)
        folder_id = self._folder_id(destination, drive)
        properties: dict[str, Any] = {FIELD_PARENT_REFERENCE: {FIELD_ID: folder_id}}
        if new_name:
            properties[FIELD_NAME] = new_name
        return self.update_item(item, properties, drive)

    def _folder_id(self, folder: Any, drive: Any) -> str:
        reference = parse_item_reference(folder)
        if isinstance(reference, ResolvedItem):
            return reference.id
        drive_reference, drive_path = self._drive_path(drive)
        uri = compose(drive_path, resolve_item_path(reference))
        self._confirm_drive(drive_reference, drive_path)
        spec = RequestSpec("GET", uri, select=DRIVE_ITEM_FIELDS)
        raw = self._dispatcher.execute(spec).payload or {}
        if FIELD_FOLDER not in raw:
            raise InvalidDestinationError(f"Destination {folder!r} is not a folder")
        return str(raw[FIELD_ID])

    @reported(lambda: False)
    def remove_item(self, item: Any, drive: Any = None) -> bool:
        """Delete a file or folder. Returns False when there was nothing to delete."""
        reference, drive_path = self._drive_path(self._item_drive(item, drive))
        uri = compose(drive_path, self._resolve_item(item))
        self._confirm_drive(reference, drive_path)
        self._dispatcher.execute(RequestSpec("DELETE", uri))
        logger.info("[remove_item] item deleted; uri:%s", uri)
        return True

    @reported(lambda: None)
    def upload(
        self,
        source: str | Path,
        destination: Any = None,
        drive: Any = None,
        conflict: ConflictMode = ConflictMode.REPLACE,
    ) -> DriveItem | None:
        """Upload a local file to a folder, over a file, or to a new file path.

        Raises:
            ConflictError: If the target exists and ``conflict`` is ``fail``.
        """
        reference, drive_path = self._drive_path(self._item_drive(destination, drive))
        self._resolve_item(destination)
        drive_id = self._confirm_drive(reference, drive_path)
        return self._uploader.upload(Path(source), drive_path, destination, conflict, drive_id)


def _is_folder(item: DriveItem) -> bool:
    return item.is_folder


def _is_file(item: DriveItem) -> bool:
    return not item.is_folder


def drive_operations_from_config(config: AppConfig) -> DriveOperations:
    """Construct DriveOperations from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DriveOperations instance.
    """
    return DriveOperations(graph_context_from_config(config))
