"""Error handling with friendly messages."""

from __future__ import annotations

from enum import StrEnum


class PanelFSError(Exception):
    """Base exception for all panelfs errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(PanelFSError):
    """Configuration error."""

    pass


class ConnectError(PanelFSError):
    """Connecting to the panel failed."""

    pass


class ErrorKind(StrEnum):
    """Abstract failure kinds surfaced by remote file operations."""

    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    BUSY = "Busy"
    SERVER_UNAVAILABLE = "ServerUnavailable"
    INVALID_STATE = "InvalidState"
    IS_A_DIRECTORY = "IsADirectory"
    ALREADY_EXISTS = "AlreadyExists"


class RemoteFileError(PanelFSError):
    """Remote file operation error."""

    kind: ErrorKind = ErrorKind.SERVER_UNAVAILABLE


class NoPermissionsError(RemoteFileError):
    """The panel refused the request."""

    kind = ErrorKind.FORBIDDEN


class UnauthenticatedError(NoPermissionsError):
    """The credential was rejected (HTTP 401)."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, target: str) -> None:
        super().__init__(
            f"Authentication failed: {target}",
            "Run 'panelfs connect' to enter a new API key",
        )


class ForbiddenError(NoPermissionsError):
    """The credential lacks permission (HTTP 403)."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(RemoteFileError):
    """Raised when a file or directory is not found."""

    kind = ErrorKind.NOT_FOUND


class UnavailableError(RemoteFileError):
    """The operation could not be completed right now."""

    kind = ErrorKind.SERVER_UNAVAILABLE


class BusyError(UnavailableError):
    """Rate limited, or the panel rejected the request mid-operation."""

    kind = ErrorKind.BUSY


class ServerUnavailableError(UnavailableError):
    """Server-side failure or transport failure."""

    kind = ErrorKind.SERVER_UNAVAILABLE


class InvalidStateError(UnavailableError):
    """The request cannot be made in the current state."""

    kind = ErrorKind.INVALID_STATE


class NotConnectedError(InvalidStateError):
    """No server is connected."""

    def __init__(self) -> None:
        super().__init__(
            "not connected",
            "Run 'panelfs connect' to select a server first",
        )


class FileIsADirectoryError(RemoteFileError):
    """Raised when a file was expected."""

    kind = ErrorKind.IS_A_DIRECTORY


class AlreadyExistsError(RemoteFileError):
    """Raised when a destination already exists and overwrite is disabled."""

    kind = ErrorKind.ALREADY_EXISTS
