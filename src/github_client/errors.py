"""Exceptions raised by the hosted Git contents API client."""

from typing import List, Optional

from src.content_client.errors import SyncError


class RemoteCommitError(SyncError):
    """Base exception for remote commit failures.

    Attributes:
        path: Repository path the operation targeted
        status_code: HTTP status returned by the service, if any
    """

    def __init__(self, message: str, path: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class RemoteNotConfiguredError(RemoteCommitError):
    """Raised in production when remote sync configuration is missing or malformed."""

    def __init__(self, missing: List[str]):
        super().__init__(f"Remote sync is not configured (missing or invalid: {', '.join(missing)})")
        self.missing = missing
