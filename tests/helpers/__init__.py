"""Test helper modules.

This package provides utilities for unit and integration testing:
- fakes: HTTP response builders and in-memory collaborators
- git_test_utils: Create and inspect temporary git repositories
"""

from .fakes import FakePersistence, FakeSyncClient, make_response, make_status
from .git_test_utils import create_content_file, create_temp_git_repo, git_log_messages

__all__ = [
    'FakePersistence',
    'FakeSyncClient',
    'make_response',
    'make_status',
    'create_content_file',
    'create_temp_git_repo',
    'git_log_messages',
]
