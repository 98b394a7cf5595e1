"""Upload destination resolution, upload method choice and upload sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import quote

from graph_drive.graph.adapter import adapt, strip_transport_fields
from graph_drive.graph.dispatcher import Dispatcher, RequestSpec
from graph_drive.graph.errors import (
    ConflictError,
    GraphApiError,
    InvalidDestinationError,
    NotFoundError,
    TransportError,
)
from graph_drive.graph.models import (
    CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    DriveItem,
)
from graph_drive.graph.references import (
    child_path,
    parent_path,
    parse_item_reference,
    resolve_item_path,
)

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
_PATH_SAFE = "/:'()=!@,$"


class ConflictMode(str, Enum):
    """What the server does when the target name already exists."""

    REPLACE = "replace"
    FAIL = "fail"
    RENAME = "rename"


class UploadMethod(Enum):
    SIMPLE = "simple"
    SESSION = "session"


def choose_upload_method(size: int, conflict: ConflictMode, threshold: int) -> UploadMethod:
    """Pick a single PUT for small payloads, an upload session otherwise.

    ``fail`` always takes the session path: only the session can reject an
    existing file atomically.
    """
    if size < threshold and ConflictMode(conflict) is not ConflictMode.FAIL:
        return UploadMethod.SIMPLE
    return UploadMethod.SESSION


@dataclass(frozen=True)
class UploadTarget:
    """Folder path (canonical item path) and file name to write to."""

    parent: str
    name: str

    @property
    def item_path(self) -> str:
        return child_path(self.parent, self.name)


@dataclass
class UploadSession:
    """Server-issued upload endpoint, valid until ``expiration``."""

    upload_url: str
    expiration: str | None = None
    next_expected_ranges: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> UploadSession:
        upload_url = payload.get("uploadUrl")
        if not upload_url:
            raise TransportError(0, "Upload session response has no uploadUrl")
        return cls(
            upload_url=upload_url,
            expiration=payload.get("expirationDateTime"),
            next_expected_ranges=list(payload.get("nextExpectedRanges") or []),
        )

    def next_offset(self, default: int) -> int:
        """Start of the first range the server still expects."""
        if not self.next_expected_ranges:
            return default
        start, _, _ = self.next_expected_ranges[0].partition("-")
        return int(start) if start.isdigit() else default


def _probe(dispatcher: Dispatcher, drive_path: str, item_path: str) -> dict[str, Any] | None:
    """Fetch an item's raw properties, or None if it does not exist."""
    uri = quote(f"{drive_path}/{item_path}", safe=_PATH_SAFE)
    try:
        return dispatcher.execute(RequestSpec("GET", uri)).payload or {}
    except NotFoundError:
        return None


def resolve_destination(
    dispatcher: Dispatcher,
    drive_path: str,
    destination: Any,
    source_name: str,
) -> UploadTarget:
    """Work out which folder and file name an upload writes to.

    - destination is an existing folder: upload into it under the source name;
    - destination is an existing file: overwrite that file, keeping its name;
    - destination does not exist but its parent is a folder: create the file
      under the destination's leaf name;
    - otherwise: InvalidDestinationError.
    """
    item_path = resolve_item_path(parse_item_reference(destination))
    existing = _probe(dispatcher, drive_path, item_path)
    if existing is not None:
        if FIELD_FOLDER in existing:
            return UploadTarget(parent=f"items/{existing[FIELD_ID]}", name=source_name)
        parent_id = (existing.get(FIELD_PARENT_REFERENCE) or {}).get(FIELD_ID)
        if parent_id:
            return UploadTarget(parent=f"items/{parent_id}", name=existing[FIELD_NAME])
    split = parent_path(item_path)
    if split is not None:
        parent_item_path, leaf = split
        parent = _probe(dispatcher, drive_path, parent_item_path)
        if parent is not None and FIELD_FOLDER in parent:
            return UploadTarget(parent=f"items/{parent[FIELD_ID]}", name=leaf)
    raise InvalidDestinationError(f"Destination {destination!r} and its parent do not exist")


class Uploader:
    """Writes local files into a drive, choosing simple or session uploads."""

    def __init__(self, dispatcher: Dispatcher, simple_upload_limit: int, chunk_size: int) -> None:
        """Initialise the uploader.

        Args:
            dispatcher: Dispatcher used for every request.
            simple_upload_limit: Payloads below this size use a single PUT.
            chunk_size: Bytes sent per upload session request.
        """
        self._dispatcher = dispatcher
        self._simple_upload_limit = simple_upload_limit
        self._chunk_size = chunk_size

    def upload(
        self,
        source: Path,
        drive_path: str,
        destination: Any,
        conflict: ConflictMode = ConflictMode.REPLACE,
        drive_id: str | None = None,
    ) -> DriveItem:
        """Upload a local file.

        Args:
            source: Local file to upload.
            drive_path: Resolved drive path.
            destination: Folder, file or new file path in the drive.
            conflict: Server behaviour when the target name exists. For
                ``rename`` the returned item carries the name the server chose.
            drive_id: Drive id attached to the result.

        Returns:
            The written drive item.

        Raises:
            FileNotFoundError: If ``source`` is not a file.
            InvalidDestinationError: If the destination cannot be resolved.
            ConflictError: If the target exists and ``conflict`` is ``fail``.
        """
        source = Path(source)
        if not source.is_file():
            raise FileNotFoundError(f"Source is not a file: {source}")
        conflict = ConflictMode(conflict)
        target = resolve_destination(self._dispatcher, drive_path, destination, source.name)
        size = source.stat().st_size
        method = choose_upload_method(size, conflict, self._simple_upload_limit)
        logger.info(
            "[upload] uploading; source:%s;target:%s;size:%d;method:%s;conflict:%s",
            source.name,
            target.item_path,
            size,
            method.value,
            conflict.value,
        )
        try:
            if method is UploadMethod.SIMPLE or size == 0:
                # Upload sessions cannot accept an empty payload.
                raw = self._simple_upload(source, drive_path, target, conflict)
            else:
                raw = self._session_upload(source, size, drive_path, target, conflict)
        except ConflictError:
            logger.warning(
                "[upload] target already exists; target:%s;conflict:%s",
                target.item_path,
                conflict.value,
            )
            raise
        return adapt(raw, DriveItem, drive_id)

    def _simple_upload(
        self, source: Path, drive_path: str, target: UploadTarget, conflict: ConflictMode
    ) -> dict[str, Any]:
        uri = quote(f"{drive_path}/{target.item_path}/content", safe=_PATH_SAFE)
        spec = RequestSpec(
            "PUT",
            f"{uri}?{CONFLICT_BEHAVIOR}={conflict.value}",
            body=source.read_bytes(),
            content_type=OCTET_STREAM,
        )
        return self._dispatcher.execute(spec).payload or {}

    def create_session(
        self, drive_path: str, target: UploadTarget, conflict: ConflictMode
    ) -> UploadSession:
        uri = quote(f"{drive_path}/{target.item_path}/createUploadSession", safe=_PATH_SAFE)
        body = {"item": {CONFLICT_BEHAVIOR: conflict.value, FIELD_NAME: target.name}}
        payload = self._dispatcher.execute(RequestSpec("POST", uri, body=body)).payload or {}
        session = UploadSession.from_payload(payload)
        logger.info("[create_session] upload session created; expiration:%s", session.expiration)
        return session

    def cancel_session(self, session: UploadSession) -> None:
        """Discard an abandoned upload session."""
        try:
            self._dispatcher.execute(
                RequestSpec("DELETE", session.upload_url, authenticate=False)
            )
        except GraphApiError as exc:
            logger.warning(
                "[cancel_session] could not cancel upload session; status:%d", exc.status_code
            )

    def _session_upload(
        self,
        source: Path,
        size: int,
        drive_path: str,
        target: UploadTarget,
        conflict: ConflictMode,
    ) -> dict[str, Any]:
        session = self.create_session(drive_path, target, conflict)
        try:
            with source.open("rb") as stream:
                offset = 0
                while offset < size:
                    stream.seek(offset)
                    chunk = stream.read(self._chunk_size)
                    if not chunk:
                        break
                    end = offset + len(chunk) - 1
                    response = self._dispatcher.execute(
                        RequestSpec(
                            "PUT",
                            session.upload_url,
                            body=chunk,
                            content_type=OCTET_STREAM,
                            headers={
                                "Content-Length": str(len(chunk)),
                                "Content-Range": f"bytes {offset}-{end}/{size}",
                            },
                            authenticate=False,
                        )
                    )
                    if response.status_code != 202:
                        return strip_transport_fields(response.payload or {})
                    session.next_expected_ranges = list(
                        (response.payload or {}).get("nextExpectedRanges") or []
                    )
                    offset = session.next_offset(end + 1)
        except GraphApiError:
            self.cancel_session(session)
            raise
        self.cancel_session(session)
        raise TransportError(0, "Upload session ended without a completed item")
