"""Directory operations on users and groups of an organizational tenant."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from graph_drive.graph.adapter import sort_results
from graph_drive.graph.context import CAPABILITY_DIRECTORY, GraphContext, graph_context_from_config
from graph_drive.graph.dispatcher import Dispatcher, RequestSpec
from graph_drive.graph.errors import MissingCapabilityError, UnsupportedQueryError
from graph_drive.graph.models import FIELD_DISPLAY_NAME, FIELD_ID, Group, User
from graph_drive.graph.query import QueryOptions, compose
from graph_drive.graph.references import resolve_object_path
from graph_drive.orchestration.drives import reported

if TYPE_CHECKING:
    from graph_drive.config import AppConfig

logger = logging.getLogger(__name__)

DIRECTORY_FIELDS = (FIELD_ID, FIELD_DISPLAY_NAME)


class DirectoryOperations:
    """Caller-facing operations on users and groups.

    Requires an organizational account; personal accounts have no directory.
    """

    def __init__(self, context: GraphContext, dispatcher: Dispatcher | None = None) -> None:
        self._context = context
        self._dispatcher = dispatcher or Dispatcher(context.client)

    def _require_directory(self) -> None:
        if not self._context.has_capability(CAPABILITY_DIRECTORY):
            raise MissingCapabilityError(CAPABILITY_DIRECTORY)

    @staticmethod
    def _collection_uri(
        route: str, options: QueryOptions | None, segment: str | None = None
    ) -> str:
        options = options or QueryOptions()
        if options.search or options.shared_with_me:
            raise UnsupportedQueryError("Directory listings support include and filter only")
        return compose(
            route,
            options=options,
            segment=segment,
            name_field=FIELD_DISPLAY_NAME,
            required_fields=DIRECTORY_FIELDS,
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @reported(lambda: None)
    def get_user(self, user: Any = None, select: Sequence[str] | None = None) -> User | None:
        """Return a user by id, UPN or fetched object (the default user when None)."""
        self._require_directory()
        route = resolve_object_path("users", user, self._context.drive_user)
        uri = compose(route, options=QueryOptions(select=select), required_fields=DIRECTORY_FIELDS)
        return self._dispatcher.fetch_one(RequestSpec("GET", uri), User)

    @reported(list)
    def list_users(self, options: QueryOptions | None = None) -> list[User]:
        """Return users, sorted by display name. ``include`` matches display names."""
        self._require_directory()
        spec = RequestSpec("GET", self._collection_uri("users", options))
        return sort_results(self._dispatcher.fetch_collection(spec, User))

    @reported(list)
    def list_member_of(self, user: Any = None, options: QueryOptions | None = None) -> list[Group]:
        """Return the groups a user belongs to, sorted by display name."""
        self._require_directory()
        route = resolve_object_path("users", user, self._context.drive_user)
        uri = self._collection_uri(route, options, segment="memberOf/microsoft.graph.group")
        return sort_results(self._dispatcher.fetch_collection(RequestSpec("GET", uri), Group))

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    @reported(lambda: None)
    def get_group(self, group: Any, select: Sequence[str] | None = None) -> Group | None:
        """Return a group by id or fetched object."""
        self._require_directory()
        route = resolve_object_path("groups", group)
        uri = compose(route, options=QueryOptions(select=select), required_fields=DIRECTORY_FIELDS)
        return self._dispatcher.fetch_one(RequestSpec("GET", uri), Group)

    @reported(list)
    def list_groups(self, options: QueryOptions | None = None) -> list[Group]:
        """Return groups, sorted by display name. ``include`` matches display names."""
        self._require_directory()
        spec = RequestSpec("GET", self._collection_uri("groups", options))
        return sort_results(self._dispatcher.fetch_collection(spec, Group))

    @reported(lambda: None)
    def new_group(
        self,
        display_name: str,
        mail_nickname: str,
        description: str | None = None,
        *,
        unified: bool = True,
        security_enabled: bool = False,
    ) -> Group | None:
        """Create a group: a Microsoft 365 group by default, a security group otherwise."""
        self._require_directory()
        body: dict[str, Any] = {
            FIELD_DISPLAY_NAME: display_name,
            "mailNickname": mail_nickname,
            "mailEnabled": unified,
            "securityEnabled": security_enabled or not unified,
            "groupTypes": ["Unified"] if unified else [],
        }
        if description:
            body["description"] = description
        group = self._dispatcher.fetch_one(RequestSpec("POST", "groups", body=body), Group)
        if group is not None:
            logger.info("[new_group] group created; id:%s;name:%s", group.id, display_name)
        return group

    @reported(lambda: None)
    def update_group(self, group: Any, properties: Mapping[str, Any]) -> Group | None:
        """Patch group properties and return the group as stored afterwards."""
        self._require_directory()
        route = resolve_object_path("groups", group)
        # PATCH on groups answers 204 with no body
        self._dispatcher.execute(RequestSpec("PATCH", route, body=dict(properties)))
        return self._dispatcher.fetch_one(RequestSpec("GET", route), Group)

    @reported(lambda: False)
    def remove_group(self, group: Any) -> bool:
        """Delete a group. Returns False when there was nothing to delete."""
        self._require_directory()
        route = resolve_object_path("groups", group)
        self._dispatcher.execute(RequestSpec("DELETE", route))
        logger.info("[remove_group] group deleted; route:%s", route)
        return True


def directory_operations_from_config(config: AppConfig) -> DirectoryOperations:
    """Construct DirectoryOperations from application configuration."""
    return DirectoryOperations(graph_context_from_config(config))
