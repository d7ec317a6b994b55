"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration). It provides
fixtures that isolate tests from the developer's environment and .env file.
"""

import logging

import pytest

# urllib3 logs every retry at WARNING; tests exercise retries on purpose
logging.getLogger("urllib3").setLevel(logging.ERROR)

SYNC_ENV_KEYS = (
    "GITHUB_TOKEN",
    "GITHUB_REPO_URL",
    "GITHUB_BRANCH",
    "GITHUB_SYNC_ENABLED",
    "CONTENT_SYNC_ENV",
    "CONTENT_API_URL",
    "CONTENT_API_TOKEN",
    "CONTENT_AUTHOR",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove sync-related environment variables and disable .env loading."""
    for key in SYNC_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("src.github_client.config.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr("src.content_client.auth.load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


@pytest.fixture
def github_env(clean_env):
    """Environment of a configured remote with sync enabled."""
    clean_env.setenv("GITHUB_TOKEN", "ghp_testtoken1234567890")
    clean_env.setenv("GITHUB_REPO_URL", "https://github.com/acme/site.git")
    clean_env.setenv("GITHUB_SYNC_ENABLED", "true")
    return clean_env


@pytest.fixture
def content_env(clean_env):
    """Environment pointing the content API client at a test server."""
    clean_env.setenv("CONTENT_API_URL", "https://cms.example.com/api/")
    clean_env.setenv("CONTENT_API_TOKEN", "secret-token")
    clean_env.setenv("CONTENT_AUTHOR", "Jane Doe")
    return clean_env
