"""Typed exception hierarchy for CLI-related errors."""

from src.content_client.errors import SyncError


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class WorkingCopyNotFoundError(CLIError):
    """Raised when the --root directory does not exist."""

    def __init__(self, root_dir: str):
        super().__init__(f"Working copy not found at {root_dir}")
        self.root_dir = root_dir
