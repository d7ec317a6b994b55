"""Unit tests for content_client.api_client module."""

from unittest.mock import Mock, patch

import pytest
import requests

from src.content_client.api_client import REQUEST_TIMEOUT, ContentAPIClient
from src.content_client.auth import ContentAPISettings
from src.content_client.errors import (
    APIAccessError,
    APIUnreachableError,
    InvalidCredentialsError,
)
from src.editing.models import EditOperation
from src.sync.models import SyncRelation
from tests.helpers.fakes import make_response

BASE_URL = "https://cms.example.com/api"


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    settings = ContentAPISettings(base_url=BASE_URL, api_token="secret-token", author="Jane Doe")
    return ContentAPIClient(settings=settings, session=session)


class TestConstruction:
    """Test cases for client construction."""

    def test_token_header(self, client, session):
        assert session.headers["Authorization"] == "Token secret-token"
        assert session.headers["Content-Type"] == "application/json"

    def test_no_token_no_header(self, session):
        settings = ContentAPISettings(base_url=BASE_URL, api_token=None, author="Anonymous")

        ContentAPIClient(settings=settings, session=session)

        assert "Authorization" not in session.headers

    def test_settings_from_environment(self, content_env, session):
        client = ContentAPIClient(session=session)

        assert client.base_url == BASE_URL
        assert client.author == "Jane Doe"


class TestEditContent:
    """Test cases for the persistence endpoint."""

    def test_posts_operations(self, client, session):
        # Arrange
        session.request.return_value = make_response(200, {"success": True})
        ops = [EditOperation.update_field("hero.title", "Hello"), EditOperation.remove_section(2)]

        # Act
        result = client.edit_content("pages", "home", "en", ops, variant="b", version=3)

        # Assert
        assert result.success is True
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", f"{BASE_URL}/content/edit")
        body = session.request.call_args.kwargs["json"]
        assert body == {
            "contentType": "pages",
            "slug": "home",
            "locale": "en",
            "operations": [
                {"action": "update_field", "path": "hero.title", "value": "Hello"},
                {"action": "remove_section", "index": 2},
            ],
            "author": "Jane Doe",
            "variant": "b",
            "version": 3,
        }
        assert session.request.call_args.kwargs["timeout"] == REQUEST_TIMEOUT

    def test_explicit_author_overrides_default(self, client, session):
        session.request.return_value = make_response(200, {"success": True})

        client.edit_content("pages", "home", "en", [], author="Sam")

        assert session.request.call_args.kwargs["json"]["author"] == "Sam"

    def test_rejection_is_failed_result(self, client, session):
        session.request.return_value = make_response(400, {"success": False, "error": "Invalid path"})

        result = client.edit_content("pages", "home", "en", [EditOperation.update_field("x", 1)])

        assert result.success is False
        assert result.error == "Invalid path"

    def test_success_false_in_body_is_failure(self, client, session):
        session.request.return_value = make_response(200, {"success": False, "error": "Locked"})

        assert client.edit_content("pages", "home", "en", []).success is False

    def test_error_without_json_body(self, client, session):
        session.request.return_value = make_response(500, text="Internal Server Error")

        result = client.edit_content("pages", "home", "en", [])

        assert result.success is False
        assert result.error == "Content API error: 500"


class TestTransportErrors:
    """Test cases for exception translation."""

    def test_connection_error_is_unreachable(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(APIUnreachableError) as exc_info:
            client.get_sync_status()

        assert exc_info.value.endpoint == BASE_URL

    def test_timeout_is_unreachable(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(APIUnreachableError):
            client.trigger_sync()

    def test_401_is_invalid_credentials(self, client, session):
        session.request.return_value = make_response(401)

        with pytest.raises(InvalidCredentialsError):
            client.get_conflict_info()

    def test_other_request_errors_are_access_errors(self, client, session):
        session.request.side_effect = requests.exceptions.RequestException(
            "failed with Authorization: Token secret-token"
        )

        with pytest.raises(APIAccessError) as exc_info:
            client.get_sync_status()

        assert "secret-token" not in str(exc_info.value)

    @patch('time.sleep')
    def test_rate_limit_exhaustion(self, mock_sleep, client, session):
        session.request.return_value = make_response(429)

        with pytest.raises(APIAccessError) as exc_info:
            client.get_sync_status()

        assert exc_info.value.status_code == 429


class TestSyncEndpoints:
    """Test cases for the sync status endpoints."""

    def test_get_sync_status_parses_wire_format(self, client, session):
        session.request.return_value = make_response(200, {
            "configured": True,
            "syncEnabled": True,
            "localCommit": "aaa1111",
            "remoteCommit": "bbb2222",
            "status": "behind",
            "branch": "main",
        })

        status = client.get_sync_status()

        assert session.request.call_args.args == ("GET", f"{BASE_URL}/sync-status")
        assert status.relation == SyncRelation.BEHIND
        assert status.local_ref == "aaa1111"
        assert status.remote_ref == "bbb2222"
        assert status.sync_enabled is True

    def test_get_sync_status_error_status(self, client, session):
        session.request.return_value = make_response(503, {"error": "down"})

        with pytest.raises(APIAccessError) as exc_info:
            client.get_sync_status()

        assert exc_info.value.status_code == 503

    def test_get_sync_status_invalid_json(self, client, session):
        session.request.return_value = make_response(200, text="<html>")

        with pytest.raises(APIAccessError):
            client.get_sync_status()

    def test_get_conflict_info(self, client, session):
        session.request.return_value = make_response(200, {
            "hasConflict": True,
            "behindBy": 3,
            "commits": [
                {"sha": "c1", "message": "m1", "author": "a", "date": "d", "files": ["f1"]},
            ],
        })

        info = client.get_conflict_info()

        assert info.has_conflict is True
        assert info.behind_by == 3
        assert info.commits[0].id == "c1"
        assert info.commits[0].changed_files == ["f1"]

    def test_trigger_sync(self, client, session):
        session.request.return_value = make_response(200, {"success": True})

        assert client.trigger_sync() is True
        assert session.request.call_args.args == ("POST", f"{BASE_URL}/sync")

    def test_trigger_sync_failure(self, client, session):
        session.request.return_value = make_response(500)

        assert client.trigger_sync() is False
