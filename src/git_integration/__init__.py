"""Git integration for the local content working copy.

This package inspects the content directory of a local checkout and commits
changes to it, one commit at a time.
"""

from src.git_integration.errors import GitCommandError, GitRepositoryError
from src.git_integration.git_repository import ALLOWED_PATHS, GitRepository, is_allowed_path
from src.git_integration.models import CommitResult, FileChange, FileStatus, GitStatus

__all__ = [
    # Errors
    'GitCommandError',
    'GitRepositoryError',
    # Components
    'GitRepository',
    'ALLOWED_PATHS',
    'is_allowed_path',
    # Models
    'CommitResult',
    'FileChange',
    'FileStatus',
    'GitStatus',
]
