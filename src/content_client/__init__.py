"""Content server client module.

Provides the shared error hierarchy, retry logic and connection settings.
The HTTP client itself lives in ``src.content_client.api_client``; it depends
on the editing and sync models, which in turn import the errors defined
here, so it is not re-exported from the package.
"""

from .errors import (
    SyncError,
    ContentAPIError,
    InvalidCredentialsError,
    APIUnreachableError,
    APIAccessError,
)
from .retry_logic import retry_on_rate_limit
from .sanitize import sanitize_credentials
from .auth import Authenticator, ContentAPISettings

__all__ = [
    "Authenticator",
    "ContentAPISettings",
    "SyncError",
    "ContentAPIError",
    "InvalidCredentialsError",
    "APIUnreachableError",
    "APIAccessError",
    "retry_on_rate_limit",
    "sanitize_credentials",
]
