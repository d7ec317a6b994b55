"""Configuration loading for the content server API client.

Settings are read from environment variables, with a .env file loaded via
python-dotenv first. The API token is optional (local development servers
usually run without one); the base URL is required.
"""

import os
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

DEFAULT_AUTHOR = "Anonymous"


class ContentAPISettings(NamedTuple):
    """Content server connection settings."""
    base_url: str
    api_token: Optional[str]
    author: str


class Authenticator:
    """Loads content server settings from environment variables.

    Environment variables:
        CONTENT_API_URL: Base URL of the content server (required)
        CONTENT_API_TOKEN: Token sent as ``Authorization: Token <value>``
        CONTENT_AUTHOR: Author name attached to saved edits

    Example:
        >>> settings = Authenticator().get_settings()
        >>> print(f"Connecting to {settings.base_url}")
    """

    def __init__(self):
        """Initialize the authenticator by loading environment variables from .env file."""
        load_dotenv()

    def get_settings(self) -> ContentAPISettings:
        """Get content server settings from environment variables.

        Raises:
            InvalidCredentialsError: If CONTENT_API_URL is missing
        """
        base_url = os.getenv('CONTENT_API_URL')
        api_token = os.getenv('CONTENT_API_TOKEN') or None
        author = os.getenv('CONTENT_AUTHOR') or DEFAULT_AUTHOR

        if not base_url:
            raise InvalidCredentialsError(endpoint="CONTENT_API_URL is not set")

        return ContentAPISettings(
            base_url=base_url.rstrip('/'),
            api_token=api_token,
            author=author,
        )
