"""Typed exception hierarchy for content API errors.

This module defines the base exception used across the content sync engine
and the errors raised by the HTTP clients. All exceptions inherit from
SyncError for easy catching and include descriptive messages with context
to help with debugging.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all content-sync errors.

    Use this to catch any application-level error from the sync engine.
    """
    pass


class ContentAPIError(SyncError):
    """Base exception for errors talking to the content server."""
    pass


class InvalidCredentialsError(ContentAPIError):
    """Raised when the API token is rejected (401)."""

    def __init__(self, endpoint: str):
        super().__init__(f"API token is invalid (endpoint: {endpoint})")
        self.endpoint = endpoint


class APIUnreachableError(ContentAPIError):
    """Raised when an API is not available or unreachable."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(ContentAPIError):
    """Raised when API access fails after retries or returns an unexpected status."""

    def __init__(self, message: str = "API failure (after 3 retries)", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
