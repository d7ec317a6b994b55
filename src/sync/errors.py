"""Exceptions raised while reading or writing the sync state file."""

from typing import Optional

from src.content_client.errors import SyncError


class StateError(SyncError):
    """The sync state file exists but its content cannot be trusted.

    ``field`` names the top-level key that failed validation, when known.
    """

    def __init__(self, message: str, field: Optional[str] = None, path: Optional[str] = None):
        location = path or "sync state"
        if field:
            location += f" [{field}]"
        super().__init__(f"{location}: {message}")
        self.field = field
        self.path = path
        self.detail = message


class StateFilesystemError(SyncError):
    """The sync state file or its directory could not be accessed."""

    def __init__(self, path: str, operation: str, reason: Optional[str] = None):
        message = f"Cannot {operation.replace('_', ' ')} {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.path = path
        self.operation = operation
        self.reason = reason
