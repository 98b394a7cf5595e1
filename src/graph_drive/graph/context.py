"""Per-session context: default drive route, account capabilities, drive name cache."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graph_drive.config import (
    ACCOUNT_ORGANIZATIONAL,
    ACCOUNT_PERSONAL,
    DEFAULT_SIMPLE_UPLOAD_LIMIT,
    DEFAULT_UPLOAD_CHUNK_SIZE,
)
from graph_drive.graph.client import GraphClient, graph_client_from_config

if TYPE_CHECKING:
    from graph_drive.config import AppConfig

logger = logging.getLogger(__name__)

# Capability names checked by operations before composing a request
CAPABILITY_DIRECTORY = "directory"
CAPABILITY_GROUP_DRIVES = "group_drives"
CAPABILITY_SHARED_WITH_ME = "shared_with_me"

ACCOUNT_CAPABILITIES: dict[str, frozenset[str]] = {
    ACCOUNT_ORGANIZATIONAL: frozenset(
        {CAPABILITY_DIRECTORY, CAPABILITY_GROUP_DRIVES, CAPABILITY_SHARED_WITH_ME}
    ),
    ACCOUNT_PERSONAL: frozenset({CAPABILITY_SHARED_WITH_ME}),
}


class DriveNameCache:
    """Drive id to display name lookup shared by every operation of a session.

    Entries are added on each successful drive resolution and never evicted.
    Confirmed drive routes map to their drive id so a named drive is
    dereferenced once per session.
    Writes take a lock so parallel top-level operations resolve key
    collisions as last-writer-wins.
    """

    def __init__(self) -> None:
        self._names: dict[str, str] = {}
        self._routes: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, drive_id: str, name: str) -> None:
        if not drive_id:
            return
        with self._lock:
            self._names[drive_id] = name

    def name_for(self, drive_id: str) -> str | None:
        return self._names.get(drive_id)

    def remember_route(self, route: str, drive_id: str) -> None:
        if not route or not drive_id:
            return
        with self._lock:
            self._routes[route] = drive_id

    def drive_for(self, route: str) -> str | None:
        return self._routes.get(route)

    def __contains__(self, drive_id: object) -> bool:
        return drive_id in self._names

    def __len__(self) -> int:
        return len(self._names)


@dataclass
class GraphContext:
    """Explicit configuration carried into every operation.

    Attributes:
        client: Authenticated GraphClient.
        drive_user: UPN or object ID whose drive is used when none is given.
        account_type: "organizational" or "personal"; decides capabilities.
        simple_upload_limit: Payloads below this size use a single PUT.
        upload_chunk_size: Chunk size for upload sessions.
        page_size: Optional $top for collection requests.
        drive_names: Session-wide drive name lookup.
    """

    client: GraphClient
    drive_user: str
    account_type: str = ACCOUNT_ORGANIZATIONAL
    simple_upload_limit: int = DEFAULT_SIMPLE_UPLOAD_LIMIT
    upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE
    page_size: int | None = None
    drive_names: DriveNameCache = field(default_factory=DriveNameCache)

    @property
    def user_route(self) -> str:
        """Route of the default user (client credentials flow has no /me)."""
        return f"users/{self.drive_user}"

    @property
    def default_drive_path(self) -> str:
        return f"{self.user_route}/drive"

    def has_capability(self, capability: str) -> bool:
        return capability in ACCOUNT_CAPABILITIES.get(self.account_type, frozenset())


def graph_context_from_config(config: AppConfig) -> GraphContext:
    """Construct a GraphContext from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        GraphContext wired to a new GraphClient.
    """
    return GraphContext(
        client=graph_client_from_config(config),
        drive_user=config.drive_user,
        account_type=config.account_type,
        simple_upload_limit=config.simple_upload_limit,
        upload_chunk_size=config.upload_chunk_size,
        page_size=config.page_size,
    )
