"""Typed results for Microsoft Graph users, groups, drives and drive items."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_DISPLAY_NAME = "displayName"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_SIZE = "size"
FIELD_DELETED = "deleted"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_PATH = "path"
FIELD_DRIVE_ID = "driveId"
FIELD_DRIVE_TYPE = "driveType"
FIELD_WEB_URL = "webUrl"
FIELD_MAIL = "mail"
FIELD_USER_PRINCIPAL_NAME = "userPrincipalName"
FIELD_OWNER = "owner"
FIELD_CHILD_COUNT = "childCount"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"
ODATA_MARKER = "@odata."

CONFLICT_BEHAVIOR = "@microsoft.graph.conflictBehavior"


@dataclass
class GraphObject:
    """Common shape of every typed result.

    ``properties`` holds the full property bag with transport metadata removed,
    so callers can reach fields the typed attributes do not model.
    """

    ALIAS_FIELD: ClassVar[str] = "objectId"

    id: str
    properties: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        return str(self.properties.get(FIELD_DISPLAY_NAME) or "")

    @classmethod
    def from_properties(cls, bag: dict[str, Any]) -> GraphObject:
        return cls(id=bag.get(FIELD_ID, ""), properties=bag)


@dataclass
class User(GraphObject):
    """A directory user."""

    ALIAS_FIELD: ClassVar[str] = "userId"

    user_id: str = ""
    user_principal_name: str = ""
    mail: str | None = None

    @classmethod
    def from_properties(cls, bag: dict[str, Any]) -> User:
        return cls(
            id=bag.get(FIELD_ID, ""),
            properties=bag,
            user_id=bag.get(cls.ALIAS_FIELD, bag.get(FIELD_ID, "")),
            user_principal_name=bag.get(FIELD_USER_PRINCIPAL_NAME, ""),
            mail=bag.get(FIELD_MAIL),
        )


@dataclass
class Group(GraphObject):
    """A directory group."""

    ALIAS_FIELD: ClassVar[str] = "groupId"

    group_id: str = ""
    mail: str | None = None

    @classmethod
    def from_properties(cls, bag: dict[str, Any]) -> Group:
        return cls(
            id=bag.get(FIELD_ID, ""),
            properties=bag,
            group_id=bag.get(cls.ALIAS_FIELD, bag.get(FIELD_ID, "")),
            mail=bag.get(FIELD_MAIL),
        )


@dataclass
class Drive(GraphObject):
    """A drive (the top-level storage container)."""

    ALIAS_FIELD: ClassVar[str] = "driveId"

    drive_id: str = ""
    name: str = ""
    drive_type: str = ""
    web_url: str | None = None

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_properties(cls, bag: dict[str, Any]) -> Drive:
        return cls(
            id=bag.get(FIELD_ID, ""),
            properties=bag,
            drive_id=bag.get(cls.ALIAS_FIELD, bag.get(FIELD_ID, "")),
            name=bag.get(FIELD_NAME, ""),
            drive_type=bag.get(FIELD_DRIVE_TYPE, ""),
            web_url=bag.get(FIELD_WEB_URL),
        )


@dataclass
class DriveItem(GraphObject):
    """A file or folder inside a drive.

    ``drive_id`` identifies the owning drive only; the item never holds the
    drive itself.
    """

    ALIAS_FIELD: ClassVar[str] = "itemId"
    CONTAINER_FIELD: ClassVar[str] = "driveId"

    item_id: str = ""
    drive_id: str = ""
    name: str = ""
    parent_id: str = ""
    parent_path: str = ""
    size: int = 0
    is_folder: bool = False
    is_deleted: bool = False
    web_url: str | None = None

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def path(self) -> str:
        """Slash path of the item relative to the drive root."""
        _, _, parent = self.parent_path.partition("root:")
        parent = parent.strip("/")
        return f"/{parent}/{self.name}" if parent else f"/{self.name}"

    @classmethod
    def from_properties(cls, bag: dict[str, Any]) -> DriveItem:
        parent_ref = bag.get(FIELD_PARENT_REFERENCE) or {}
        return cls(
            id=bag.get(FIELD_ID, ""),
            properties=bag,
            item_id=bag.get(cls.ALIAS_FIELD, bag.get(FIELD_ID, "")),
            drive_id=bag.get(cls.CONTAINER_FIELD) or parent_ref.get(FIELD_DRIVE_ID, ""),
            name=bag.get(FIELD_NAME, ""),
            parent_id=parent_ref.get(FIELD_ID, ""),
            parent_path=parent_ref.get(FIELD_PATH, ""),
            size=int(bag.get(FIELD_SIZE) or 0),
            is_folder=FIELD_FOLDER in bag,
            is_deleted=FIELD_DELETED in bag,
            web_url=bag.get(FIELD_WEB_URL),
        )
