"""HTTP client for the content server's edit and sync endpoints.

This module wraps a requests.Session and translates transport failures into
the typed exception hierarchy. It covers the persistence contract
(``POST /content/edit``) and the three sync endpoints consumed by the sync
monitor (``GET /sync-status``, ``GET /conflict-info``, ``POST /sync``).
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from src.editing.models import EditOperation, EditResult
from src.sync.models import ConflictInfo, SyncStatus

from .auth import Authenticator, ContentAPISettings
from .errors import APIAccessError, APIUnreachableError, InvalidCredentialsError
from .retry_logic import retry_on_rate_limit
from .sanitize import sanitize_credentials

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


class ContentAPIClient:
    """Client for the content server.

    Example:
        >>> client = ContentAPIClient(Authenticator())
        >>> status = client.get_sync_status()
        >>> if status.is_behind:
        ...     print(client.get_conflict_info().behind_by)
    """

    def __init__(
        self,
        authenticator: Optional[Authenticator] = None,
        settings: Optional[ContentAPISettings] = None,
        session: Optional[requests.Session] = None,
    ):
        if settings is None:
            settings = (authenticator or Authenticator()).get_settings()
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if settings.api_token:
            self._session.headers["Authorization"] = f"Token {settings.api_token}"

    @property
    def author(self) -> str:
        return self._settings.author

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        try:
            response = retry_on_rate_limit(self._session.request, method, url, **kwargs)
        except APIAccessError:
            raise
        except RequestException as e:
            raise self._translate_error(e, f"{method} {path}")

        if response.status_code == 401:
            raise InvalidCredentialsError(endpoint=url)
        return response

    def _translate_error(self, exception: Exception, operation: str) -> Exception:
        """Translate requests exceptions to typed content API exceptions."""
        if isinstance(exception, (Timeout, ConnectionError)):
            return APIUnreachableError(endpoint=self._settings.base_url)

        response = getattr(exception, "response", None)
        status_code = getattr(response, "status_code", None)
        if status_code == 401:
            return InvalidCredentialsError(endpoint=self._settings.base_url)

        safe_error_msg = sanitize_credentials(str(exception))
        logger.error(f"API operation failed: {operation} - {safe_error_msg}")
        return APIAccessError(f"Content API failure during {operation}", status_code=status_code)

    def _json(self, response: requests.Response, operation: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            raise APIAccessError(
                f"Content API returned invalid JSON during {operation}",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            raise APIAccessError(
                f"Content API returned unexpected payload during {operation}",
                status_code=response.status_code,
            )
        return data

    def edit_content(
        self,
        content_type: str,
        slug: str,
        locale: str,
        operations: List[EditOperation],
        author: Optional[str] = None,
        variant: Optional[str] = None,
        version: Optional[int] = None,
    ) -> EditResult:
        """Apply edit operations to a page and persist them.

        Server-side rejections are returned as a failed EditResult; only
        transport failures raise.

        Raises:
            APIUnreachableError: If the server cannot be reached
            InvalidCredentialsError: If the API token is rejected
        """
        body: Dict[str, Any] = {
            "contentType": content_type,
            "slug": slug,
            "locale": locale,
            "operations": [op.to_dict() for op in operations],
            "author": author or self._settings.author,
        }
        if variant is not None:
            body["variant"] = variant
        if version is not None:
            body["version"] = version

        logger.debug(
            f"Submitting {len(operations)} operation(s) for {content_type}/{slug} ({locale})"
        )
        response = self._request("POST", "/content/edit", json=body)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.ok and data.get("success", True):
            return EditResult(success=True)

        error = data.get("error") or f"Content API error: {response.status_code}"
        logger.warning(f"Edit rejected for {content_type}/{slug}: {error}")
        return EditResult(success=False, error=error)

    def get_sync_status(self) -> SyncStatus:
        response = self._request("GET", "/sync-status")
        if not response.ok:
            raise APIAccessError(
                f"Sync status request failed: {response.status_code}",
                status_code=response.status_code,
            )
        return SyncStatus.from_dict(self._json(response, "get_sync_status"))

    def get_conflict_info(self) -> ConflictInfo:
        response = self._request("GET", "/conflict-info")
        if not response.ok:
            raise APIAccessError(
                f"Conflict info request failed: {response.status_code}",
                status_code=response.status_code,
            )
        return ConflictInfo.from_dict(self._json(response, "get_conflict_info"))

    def trigger_sync(self) -> bool:
        """Ask the server to fast-forward its working copy to the remote head.

        Returns:
            True on a 2xx response, False otherwise
        """
        response = self._request("POST", "/sync")
        if not response.ok:
            logger.warning(f"Sync request failed: {response.status_code}")
            return False
        return True
