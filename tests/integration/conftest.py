"""Pytest configuration and fixtures for integration tests.

Integration tests run real git against repositories created in ``tmp_path``
and drive the sync service through the real hosted Git client with only the
HTTP session replaced.
"""

import shutil
from pathlib import Path

import pytest

from tests.helpers.git_test_utils import create_temp_git_repo


def pytest_collection_modifyitems(items):
    """Mark everything under tests/integration as an integration test."""
    for item in items:
        if item.nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """A fresh git repository with one initial commit outside the content directory."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    return create_temp_git_repo(tmp_path / "site")
