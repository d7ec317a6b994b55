"""Hosted Git API client module.

Provides single-file commits against the remote repository's tracked branch
and the read helpers used to compute sync status.
"""

from .config import RemoteConfig, RemoteConfigLoader, parse_repo_reference
from .contents_api import GitHubContentsClient, RemoteCommitResult
from .errors import RemoteCommitError, RemoteNotConfiguredError

__all__ = [
    "RemoteConfig",
    "RemoteConfigLoader",
    "parse_repo_reference",
    "GitHubContentsClient",
    "RemoteCommitResult",
    "RemoteCommitError",
    "RemoteNotConfiguredError",
]
