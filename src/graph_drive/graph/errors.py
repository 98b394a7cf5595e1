"""Exception hierarchy for reference resolution, query composition and Graph calls."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Classification of a non-2xx Graph response."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    TRANSPORT = "transport"

    @classmethod
    def from_status(cls, status_code: int) -> ErrorKind:
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 409:
            return cls.CONFLICT
        return cls.TRANSPORT


class GraphDriveError(Exception):
    """Base class for every error raised by this package."""


class GraphAuthError(GraphDriveError):
    """Raised when MSAL token acquisition fails."""


class InvalidReferenceError(GraphDriveError):
    """Raised when a path or identifier cannot be put into canonical form."""


class UnsupportedQueryError(GraphDriveError):
    """Raised when a filter or search combination has no server-side equivalent."""


class MissingCapabilityError(GraphDriveError):
    """Raised when the configured account type cannot perform an operation."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"Operation requires the '{capability}' capability")
        self.capability = capability


class InvalidDestinationError(GraphDriveError):
    """Raised when neither an upload destination nor its parent folder exists."""


class GraphApiError(GraphDriveError):
    """Raised when the Graph API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Graph API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.kind = ErrorKind.from_status(status_code)


class NotFoundError(GraphApiError):
    """The addressed resource does not exist."""


class DriveNotFoundError(NotFoundError):
    """An explicitly named drive could not be dereferenced."""


class ForbiddenError(GraphApiError):
    """The caller lacks the authorization scope for the resource."""


class ConflictError(GraphApiError):
    """A write collided with existing state."""


class TransportError(GraphApiError):
    """Any other non-success response; fatal for the current operation."""


_ERROR_TYPES: dict[ErrorKind, type[GraphApiError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.TRANSPORT: TransportError,
}


def error_for_status(status_code: int, message: str) -> GraphApiError:
    """Build the structured error matching a response status code."""
    return _ERROR_TYPES[ErrorKind.from_status(status_code)](status_code, message)
