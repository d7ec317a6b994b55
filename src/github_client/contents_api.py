"""Client for the hosted Git contents API.

This module commits single files straight to the tracked branch of the
remote repository through the REST contents API, without a git binary. Each
write carries the blob hash the client last saw, so a write based on stale
content is rejected by the service and reported as a stale result instead of
silently overwriting someone else's commit.

It also exposes the read helpers used to classify the local copy against the
remote branch (branch head, commit comparison, tree listing, file content).
"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from src.content_client.errors import (
    APIAccessError,
    APIUnreachableError,
    ContentAPIError,
    InvalidCredentialsError,
)
from src.content_client.retry_logic import retry_on_rate_limit
from src.content_client.sanitize import sanitize_credentials
from src.git_integration.git_repository import ALLOWED_PATHS, is_allowed_path

from .config import RemoteConfig, RemoteConfigLoader
from .errors import RemoteCommitError, RemoteNotConfiguredError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30

# Status codes the contents API uses to reject a write based on a stale sha
STALE_WRITE_STATUSES = (409, 422)


@dataclass
class RemoteCommitResult:
    """Result of a single-file remote commit.

    Attributes:
        success: Whether the file is now committed (or the commit was skipped)
        commit_id: Hash of the created commit
        commit_url: Browser URL of the created commit
        error: Failure description when success is False
        stale: The service rejected the write because the file changed remotely
        skipped: Remote sync is disabled or unconfigured in development
    """

    success: bool
    commit_id: Optional[str] = None
    commit_url: Optional[str] = None
    error: Optional[str] = None
    stale: bool = False
    skipped: bool = False


class GitHubContentsClient:
    """Single-file commits and read helpers against the hosted Git API.

    Configuration is resolved on every call so that environment changes
    (for example enabling sync) take effect without a restart.

    Example:
        >>> client = GitHubContentsClient()
        >>> result = client.commit_file(
        ...     "marketing-content/pages/home/en.yml", "title: Home\\n",
        ...     "Update home page", author="Jane Doe")
        >>> if result.stale:
        ...     print("Remote changed; sync before committing")
    """

    def __init__(
        self,
        config_loader: Optional[RemoteConfigLoader] = None,
        session: Optional[requests.Session] = None,
        api_url: str = GITHUB_API_URL,
    ):
        self._config_loader = config_loader or RemoteConfigLoader()
        self._session = session or requests.Session()
        self._api_url = api_url.rstrip("/")

    @property
    def config_loader(self) -> RemoteConfigLoader:
        return self._config_loader

    def _require_config(self) -> RemoteConfig:
        config = self._config_loader.load()
        if config is None:
            raise RemoteNotConfiguredError(self._config_loader.missing_keys())
        return config

    def _headers(self, config: RemoteConfig) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _repo_url(self, config: RemoteConfig, suffix: str) -> str:
        return f"{self._api_url}/repos/{config.owner}/{config.repo}/{suffix.lstrip('/')}"

    def _request(self, method: str, config: RemoteConfig, suffix: str, **kwargs) -> requests.Response:
        url = self._repo_url(config, suffix)
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        headers = self._headers(config)
        headers.update(kwargs.pop("headers", {}))
        try:
            response = retry_on_rate_limit(self._session.request, method, url, headers=headers, **kwargs)
        except (Timeout, ConnectionError):
            raise APIUnreachableError(endpoint=self._api_url)
        except RequestException as e:
            safe_error_msg = sanitize_credentials(str(e))
            logger.error(f"GitHub request failed: {method} {suffix} - {safe_error_msg}")
            raise APIAccessError(f"GitHub API failure during {method} {suffix}")

        if response.status_code == 401:
            raise InvalidCredentialsError(endpoint=self._api_url)
        return response

    def get_file_sha(self, path: str, config: Optional[RemoteConfig] = None) -> Optional[str]:
        """Return the blob sha of a file at the tracked branch.

        Returns:
            The sha, or None when the file does not exist (404)

        Raises:
            RemoteCommitError: If the lookup fails with any other status
        """
        config = config or self._require_config()
        response = self._request("GET", config, f"contents/{path}", params={"ref": config.branch})

        if response.status_code == 404:
            return None
        if not response.ok:
            raise RemoteCommitError(
                f"GitHub API error getting file sha: {response.status_code}",
                path=path,
                status_code=response.status_code,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise RemoteCommitError("Path is a directory, not a file", path=path)
        return data.get("sha") or None

    def commit_file(
        self,
        path: str,
        content: str,
        message: str,
        author: Optional[str] = None,
    ) -> RemoteCommitResult:
        """Create or update one file on the tracked branch.

        The current blob sha is fetched first and sent with the write. If
        another writer committed in between, the service rejects the write
        and a result with ``stale=True`` is returned. There is no automatic
        retry.

        Args:
            path: Repository-relative path under the allowed prefixes
            content: New file content
            message: Commit message
            author: Optional display name, prefixed as ``[Author: name]``

        Returns:
            RemoteCommitResult

        Raises:
            RemoteNotConfiguredError: In production, if configuration is missing
        """
        if not is_allowed_path(path, ALLOWED_PATHS):
            logger.warning(f"Refusing remote commit outside content directories: {path}")
            return RemoteCommitResult(success=False, error=f"Path not allowed: {path}")

        config = self._config_loader.load()
        if config is None:
            if self._config_loader.is_production():
                raise RemoteNotConfiguredError(self._config_loader.missing_keys())
            logger.debug(f"Remote sync not configured, skipping commit of {path}")
            return RemoteCommitResult(success=True, skipped=True)

        if not self._config_loader.is_sync_enabled():
            logger.debug(f"Remote sync disabled, skipping commit of {path}")
            return RemoteCommitResult(success=True, skipped=True)

        if author:
            message = f"[Author: {author}] {message}"

        try:
            sha = self.get_file_sha(path, config)
        except (RemoteCommitError, ContentAPIError) as e:
            logger.error(f"Aborting commit of {path}: {e}")
            return RemoteCommitResult(success=False, error=str(e))

        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": config.branch,
        }
        if sha:
            body["sha"] = sha

        try:
            response = self._request("PUT", config, f"contents/{path}", json=body)
        except ContentAPIError as e:
            logger.error(f"Error committing {path}: {e}")
            return RemoteCommitResult(success=False, error=str(e))

        if not response.ok:
            error = f"GitHub API error: {response.status_code}"
            stale = response.status_code in STALE_WRITE_STATUSES
            if stale:
                logger.warning(f"Remote rejected stale write to {path} ({response.status_code})")
            else:
                logger.error(f"{error} committing {path}: {sanitize_credentials(response.text)}")
            return RemoteCommitResult(success=False, error=error, stale=stale)

        commit = response.json().get("commit") or {}
        logger.info(f"Content committed to GitHub: {path}")
        return RemoteCommitResult(
            success=True,
            commit_id=commit.get("sha"),
            commit_url=commit.get("html_url"),
        )

    def get_branch_head(self) -> Optional[str]:
        """Return the head commit of the tracked branch, or None if unavailable."""
        config = self._require_config()
        response = self._request("GET", config, f"git/ref/heads/{config.branch}")
        if not response.ok:
            logger.error(f"GitHub API error getting branch head: {response.status_code}")
            return None
        return (response.json().get("object") or {}).get("sha") or None

    def compare(self, base: str, head: str) -> Dict[str, Any]:
        """Compare two commits.

        Returns:
            The raw compare payload (``commits``, ``files``, ``behind_by``...)

        Raises:
            RemoteCommitError: If the comparison request fails
        """
        config = self._require_config()
        response = self._request("GET", config, f"compare/{base}...{head}")
        if not response.ok:
            raise RemoteCommitError(
                f"GitHub API error comparing commits: {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    def list_tree_files(self, commit: str, prefix: str = ALLOWED_PATHS[0]) -> List[str]:
        """List blob paths under ``prefix`` in a commit's tree.

        Returns:
            Matching paths; an empty list if the tree cannot be fetched
        """
        config = self._require_config()
        response = self._request("GET", config, f"git/trees/{commit}", params={"recursive": "1"})
        if not response.ok:
            logger.error(f"GitHub API error fetching tree: {response.status_code}")
            return []
        return [
            item["path"]
            for item in response.json().get("tree") or []
            if item.get("type") == "blob" and item.get("path", "").startswith(prefix)
        ]

    def get_file_content(self, path: str) -> Optional[Tuple[str, str]]:
        """Fetch a file's decoded content and blob sha from the tracked branch.

        Returns:
            ``(content, sha)``, or None when the file does not exist

        Raises:
            RemoteCommitError: If the request fails or the payload has no content
        """
        config = self._require_config()
        response = self._request("GET", config, f"contents/{path}", params={"ref": config.branch})
        if response.status_code == 404:
            return None
        if not response.ok:
            raise RemoteCommitError(
                f"GitHub API error: {response.status_code}",
                path=path,
                status_code=response.status_code,
            )

        data = response.json()
        if not isinstance(data, dict):
            raise RemoteCommitError("Path is a directory, not a file", path=path)
        if not data.get("content"):
            raise RemoteCommitError("No content in response", path=path)
        content = base64.b64decode(data["content"]).decode("utf-8")
        return content, data.get("sha")
