"""Remote repository configuration.

One resolver answers both "is remote sync configured" and "which repository
do we write to", so the status endpoints and the commit path can never
disagree about the target repository.

Environment variables (a .env file is loaded first via python-dotenv):
    GITHUB_TOKEN: Token sent as ``Authorization: Bearer <token>``
    GITHUB_REPO_URL: ``https://github.com/owner/name(.git)`` or ``owner/name``
    GITHUB_BRANCH: Tracked branch (default ``main``)
    GITHUB_SYNC_ENABLED: ``true`` to enable remote commits
    CONTENT_SYNC_ENV: ``production`` or ``development`` (default)
"""

import logging
import os
import re
from typing import List, NamedTuple, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"

_URL_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/]+?)/?$")
_SHORT_PATTERN = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")


class RemoteConfig(NamedTuple):
    """Resolved remote repository settings."""
    token: str
    owner: str
    repo: str
    branch: str = DEFAULT_BRANCH

    @property
    def repo_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"


def parse_repo_reference(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Parse a repository URL or ``owner/name`` shorthand.

    Example:
        >>> parse_repo_reference("https://github.com/acme/site.git")
        ('acme', 'site')
        >>> parse_repo_reference("acme/site")
        ('acme', 'site')
    """
    if not value:
        return None
    value = value.strip()
    if value.endswith(".git"):
        value = value[:-4]

    match = _URL_PATTERN.search(value)
    if match is None and "://" not in value and "github.com" not in value:
        match = _SHORT_PATTERN.match(value)
    if match is None:
        return None
    return match.group(1), match.group(2)


class RemoteConfigLoader:
    """Loads and validates the remote repository configuration.

    Example:
        >>> loader = RemoteConfigLoader()
        >>> config = loader.load()
        >>> if config is None and loader.is_production():
        ...     print(loader.missing_keys())
    """

    def __init__(self):
        """Initialize the loader by loading environment variables from .env file."""
        load_dotenv()

    def missing_keys(self) -> List[str]:
        missing = []
        if not os.getenv('GITHUB_TOKEN'):
            missing.append('GITHUB_TOKEN')
        if parse_repo_reference(os.getenv('GITHUB_REPO_URL')) is None:
            missing.append('GITHUB_REPO_URL')
        return missing

    def load(self) -> Optional[RemoteConfig]:
        """Return the resolved configuration, or None when it is incomplete."""
        missing = self.missing_keys()
        if missing:
            logger.debug(f"Remote sync configuration incomplete: {', '.join(missing)}")
            return None

        owner, repo = parse_repo_reference(os.getenv('GITHUB_REPO_URL'))  # type: ignore[misc]
        return RemoteConfig(
            token=os.getenv('GITHUB_TOKEN'),  # type: ignore[arg-type]
            owner=owner,
            repo=repo,
            branch=os.getenv('GITHUB_BRANCH') or DEFAULT_BRANCH,
        )

    def is_configured(self) -> bool:
        return not self.missing_keys()

    def is_sync_enabled(self) -> bool:
        return os.getenv('GITHUB_SYNC_ENABLED') == 'true'

    def is_production(self) -> bool:
        return (os.getenv('CONTENT_SYNC_ENV') or 'development').lower() == 'production'
