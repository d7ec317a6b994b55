"""Unit tests for sync.status_service module."""

from unittest.mock import Mock

import pytest

from src.content_client.errors import APIUnreachableError, InvalidCredentialsError
from src.github_client.config import RemoteConfig, RemoteConfigLoader
from src.github_client.contents_api import GitHubContentsClient, RemoteCommitResult
from src.github_client.errors import RemoteCommitError
from src.sync.models import ChangeSource, PullConflictCheck, SyncRelation
from src.sync.state_manager import SyncStateManager
from src.sync.status_service import BEHIND_REMOTE_ERROR, LOCAL_AUTHOR, SyncStatusService

HOME = "marketing-content/pages/home/en.yml"
ABOUT = "marketing-content/pages/about/en.yml"
CONFIG = RemoteConfig(token="ghp_test", owner="acme", repo="site", branch="main")


def write(root, relative_path, content):
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def compare_payload(count, files, ahead_by=None):
    return {
        "ahead_by": count if ahead_by is None else ahead_by,
        "commits": [
            {
                "sha": f"c{i}",
                "commit": {
                    "message": f"[Author: Editor {i}] Update",
                    "author": {"name": "content-bot", "date": f"2024-01-0{i + 1}T10:00:00Z"},
                },
                "author": {"login": "bot"},
            }
            for i in range(count)
        ],
        "files": [{"filename": f} for f in files],
    }


@pytest.fixture
def remote():
    remote = Mock(spec=GitHubContentsClient)
    loader = Mock(spec=RemoteConfigLoader)
    loader.load.return_value = CONFIG
    loader.is_sync_enabled.return_value = True
    remote.config_loader = loader
    remote.get_branch_head.return_value = "head111"
    return remote


@pytest.fixture
def state(tmp_path):
    (tmp_path / "marketing-content").mkdir()
    return SyncStateManager(str(tmp_path))


@pytest.fixture
def service(state, remote):
    return SyncStatusService(state, remote)


class TestGetSyncStatus:
    """Test cases for status classification."""

    def test_unconfigured(self, service, remote):
        remote.config_loader.load.return_value = None

        status = service.get_sync_status()

        assert status.configured is False
        assert status.relation == SyncRelation.UNCONFIGURED
        remote.get_branch_head.assert_not_called()

    def test_never_synced_is_behind(self, service):
        status = service.get_sync_status()

        assert status.relation == SyncRelation.BEHIND
        assert status.local_ref is None
        assert status.remote_ref == "head111"
        assert status.repo_url == "https://github.com/acme/site"

    def test_in_sync(self, service, state, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("head111")

        status = service.get_sync_status()

        assert status.relation == SyncRelation.IN_SYNC
        assert status.local_ref == status.remote_ref == "head111"
        assert status.ahead_by == 0

    def test_pending_local_changes_are_ahead(self, service, state, tmp_path):
        state.rebuild_from_local("head111")
        write(tmp_path, HOME, "title: Home\n")

        status = service.get_sync_status()

        assert status.relation == SyncRelation.AHEAD
        assert status.ahead_by == 1
        assert status.is_behind is False

    def test_older_synced_commit_is_behind(self, service, state):
        state.rebuild_from_local("old0000")

        status = service.get_sync_status()

        assert status.relation == SyncRelation.BEHIND
        assert status.is_behind is True

    def test_behind_count_comes_from_compare(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.return_value = compare_payload(3, [HOME])

        status = service.get_sync_status()

        assert status.behind_by == 3
        remote.compare.assert_called_once_with("old0000", "head111")

    def test_behind_count_unknown_when_compare_fails(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.side_effect = RemoteCommitError("GitHub API error: 500")

        status = service.get_sync_status()

        assert status.relation == SyncRelation.BEHIND
        assert status.behind_by is None

    def test_missing_remote_head_is_unknown(self, service, remote):
        remote.get_branch_head.return_value = None

        assert service.get_sync_status().relation == SyncRelation.UNKNOWN

    def test_invalid_credentials(self, service, remote):
        remote.get_branch_head.side_effect = InvalidCredentialsError(endpoint="https://api.github.com")

        assert service.get_sync_status().relation == SyncRelation.INVALID_CREDENTIALS

    def test_unreachable_is_unknown(self, service, remote):
        remote.get_branch_head.side_effect = APIUnreachableError(endpoint="https://api.github.com")

        status = service.get_sync_status()

        assert status.relation == SyncRelation.UNKNOWN
        assert status.configured is True

    def test_sync_disabled_is_reported(self, service, remote):
        remote.config_loader.is_sync_enabled.return_value = False

        assert service.get_sync_status().sync_enabled is False


class TestGetConflictInfo:
    """Test cases for conflict info."""

    def test_unconfigured_has_no_conflict(self, service, remote):
        remote.config_loader.load.return_value = None

        info = service.get_conflict_info()

        assert info.has_conflict is False
        assert info.behind_by == 0

    def test_up_to_date(self, service, state):
        state.rebuild_from_local("head111")

        info = service.get_conflict_info()

        assert info.has_conflict is False
        assert info.last_synced_ref == info.remote_ref == "head111"

    def test_behind_maps_compare_payload(self, service, state, remote):
        # Arrange
        state.rebuild_from_local("old0000")
        remote.compare.return_value = compare_payload(3, [HOME, ABOUT])

        # Act
        info = service.get_conflict_info()

        # Assert
        remote.compare.assert_called_once_with("old0000", "head111")
        assert info.has_conflict is True
        assert info.behind_by == 3
        assert [c.id for c in info.commits] == ["c0", "c1", "c2"]
        assert info.commits[0].author == "content-bot"
        assert info.commits[0].date == "2024-01-01T10:00:00Z"
        assert info.commits[-1].changed_files == [HOME, ABOUT]
        assert info.changed_files == [HOME, ABOUT]

    def test_behind_by_falls_back_to_commit_count(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.return_value = compare_payload(2, [], ahead_by=0)

        assert service.get_conflict_info().behind_by == 2

    def test_author_falls_back_to_login(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.return_value = {
            "ahead_by": 1,
            "commits": [{"sha": "c0", "commit": {"message": "m"}, "author": {"login": "octocat"}}],
            "files": [],
        }

        assert service.get_conflict_info().commits[0].author == "octocat"

    def test_never_synced_lists_remote_tree(self, service, remote):
        remote.list_tree_files.return_value = [HOME, ABOUT]

        info = service.get_conflict_info()

        assert info.has_conflict is True
        assert info.changed_files == [HOME, ABOUT]
        remote.list_tree_files.assert_called_once_with("head111")

    def test_compare_failure_reports_conflict(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.side_effect = RemoteCommitError("boom", status_code=500)

        info = service.get_conflict_info()

        assert info.has_conflict is True
        assert info.behind_by == 1
        assert info.commits == []

    def test_head_lookup_failure_reports_conflict(self, service, remote):
        remote.get_branch_head.side_effect = APIUnreachableError(endpoint="https://api.github.com")

        assert service.get_conflict_info().has_conflict is True


class TestCheckPullConflicts:
    """Test cases for check_pull_conflicts."""

    def test_overlap_is_reported(self, service, state, remote, tmp_path):
        # Arrange - both sides touched the home page
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("old0000")
        write(tmp_path, HOME, "title: Local edit\n")
        remote.compare.return_value = compare_payload(
            1, [HOME, ABOUT, "marketing-content/component-registry/hero/v1.yml"]
        )

        # Act
        check = service.check_pull_conflicts()

        # Assert
        assert check.has_conflicts is True
        assert check.conflicting_files == [HOME]
        assert check.local_pending_files == [HOME]
        assert check.remote_changed_files == [HOME, ABOUT]
        assert check.remote_ref == "head111"
        assert check.error is None

    def test_disjoint_changes_do_not_conflict(self, service, state, remote, tmp_path):
        state.rebuild_from_local("old0000")
        write(tmp_path, HOME, "title: Home\n")
        remote.compare.return_value = compare_payload(1, [ABOUT])

        check = service.check_pull_conflicts()

        assert check.has_conflicts is False
        assert check.conflicting_files == []

    def test_compare_failure_is_reported(self, service, state, remote):
        state.rebuild_from_local("old0000")
        remote.compare.side_effect = RemoteCommitError("GitHub API error: 502")

        check = service.check_pull_conflicts()

        assert check.error == "GitHub API error: 502"
        assert check.remote_changed_files == []


class TestSyncWithRemote:
    """Test cases for sync_with_remote."""

    def test_records_remote_head(self, service, state, tmp_path):
        write(tmp_path, HOME, "title: Home\n")

        result = service.sync_with_remote()

        assert result.success is True
        assert result.commit_id == "head111"
        assert state.get_last_synced_commit() == "head111"
        assert state.detect_pending_changes() == []

    def test_unconfigured(self, service, remote):
        remote.config_loader.load.return_value = None

        result = service.sync_with_remote()

        assert result.success is False
        assert result.error == "GitHub not configured"

    def test_missing_head(self, service, remote):
        remote.get_branch_head.return_value = None

        assert service.sync_with_remote().success is False


class TestCommitFile:
    """Test cases for commit_file and commit_pending."""

    def test_refused_while_behind(self, service, state, remote, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("old0000")

        result = service.commit_file(HOME, "Update")

        assert result.success is False
        assert result.error == BEHIND_REMOTE_ERROR
        remote.commit_file.assert_not_called()

    def test_force_commits_while_behind(self, service, state, remote, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("old0000")
        remote.commit_file.return_value = RemoteCommitResult(success=True, commit_id="new2222")

        result = service.commit_file(HOME, "Update", author="Jane Doe", force=True)

        assert result.success is True
        remote.commit_file.assert_called_once_with(HOME, "title: Home\n", "Update", author="Jane Doe")
        assert state.get_last_synced_commit() == "new2222"

    def test_commit_updates_state(self, service, state, remote, tmp_path):
        state.rebuild_from_local("head111")
        write(tmp_path, HOME, "title: Home\n")
        remote.commit_file.return_value = RemoteCommitResult(success=True, commit_id="new2222")

        service.commit_file(HOME, "Update")

        assert state.detect_pending_changes() == []

    def test_skipped_commit_leaves_state(self, service, state, remote, tmp_path):
        state.rebuild_from_local("head111")
        write(tmp_path, HOME, "title: Home\n")
        remote.commit_file.return_value = RemoteCommitResult(success=True, skipped=True)

        service.commit_file(HOME, "Update")

        assert [c.file for c in state.detect_pending_changes()] == [HOME]
        assert state.get_last_synced_commit() == "head111"

    def test_missing_local_file(self, service, state):
        state.rebuild_from_local("head111")

        result = service.commit_file(HOME, "Update")

        assert result.success is False
        assert result.error == "File not found locally"

    def test_commit_pending_stops_at_first_failure(self, service, state, remote, tmp_path):
        # Arrange
        state.rebuild_from_local("head111")
        write(tmp_path, ABOUT, "title: About\n")
        write(tmp_path, HOME, "title: Home\n")
        remote.commit_file.side_effect = [
            RemoteCommitResult(success=False, error="GitHub API error: 409", stale=True),
            RemoteCommitResult(success=True, commit_id="never"),
        ]

        # Act
        results = service.commit_pending("Update", author="Jane Doe")

        # Assert
        assert len(results) == 1
        assert results[0].stale is True
        assert remote.commit_file.call_count == 1

    def test_commit_pending_skips_deletions(self, service, state, remote, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("head111")
        (tmp_path / HOME).unlink()

        assert service.commit_pending("Update") == []
        remote.commit_file.assert_not_called()


class TestPullFile:
    """Test cases for pull_file."""

    def test_pull_overwrites_local_file(self, service, state, remote, tmp_path):
        remote.get_file_content.return_value = ("title: Remote\n", "blob1")

        result = service.pull_file(HOME)

        assert result.success is True
        assert (tmp_path / HOME).read_text(encoding="utf-8") == "title: Remote\n"
        assert HOME in state.load().files

    def test_missing_on_remote(self, service, remote):
        remote.get_file_content.return_value = None

        result = service.pull_file(HOME)

        assert result.success is False
        assert result.error == "File not found on remote"

    def test_remote_error(self, service, remote):
        remote.get_file_content.side_effect = RemoteCommitError("GitHub API error: 500", path=HOME)

        result = service.pull_file(HOME)

        assert result.success is False
        assert "500" in result.error

    def test_pull_records_source_commit(self, service, state, remote):
        remote.get_file_content.return_value = ("title: Remote\n", "blob1")

        service.pull_file(HOME, commit_sha="head111")

        assert state.was_file_pulled_from_commit(HOME, "head111") is True


def remote_contents(contents):
    """side_effect for get_file_content: a value per path, raised when it is an exception."""
    def get_file_content(path):
        value = contents[path]
        if isinstance(value, Exception):
            raise value
        return value
    return get_file_content


class TestPullRemoteChanges:
    """Test cases for pull_remote_changes."""

    @pytest.fixture
    def synced(self, state, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        write(tmp_path, ABOUT, "title: About\n")
        state.rebuild_from_local("old0000")
        return state

    def test_failed_fetch_leaves_copy_behind(self, service, synced, remote, tmp_path):
        # Arrange - the remote changed HOME, ABOUT has a local-only edit
        write(tmp_path, ABOUT, "title: About (local)\n")
        remote.compare.return_value = compare_payload(1, [HOME])
        remote.get_file_content.side_effect = RemoteCommitError("GitHub API error: 500", path=HOME)
        check = service.check_pull_conflicts()

        # Act
        result = service.pull_remote_changes(check)

        # Assert
        assert result.success is False
        assert "500" in result.error
        assert (tmp_path / HOME).read_text(encoding="utf-8") == "title: Home\n"
        assert synced.get_last_synced_commit() == "old0000"
        assert [c.file for c in synced.detect_pending_changes()] == [ABOUT]
        assert service.get_sync_status().relation == SyncRelation.BEHIND

    def test_nothing_is_written_unless_every_fetch_succeeds(self, service, synced, remote, tmp_path):
        remote.compare.return_value = compare_payload(1, [HOME, ABOUT])
        remote.get_file_content.side_effect = remote_contents({
            HOME: ("title: Home (remote)\n", "blob1"),
            ABOUT: RemoteCommitError("GitHub API error: 500", path=ABOUT),
        })

        result = service.pull_remote_changes(service.check_pull_conflicts())

        assert result.success is False
        assert result.files == []
        assert (tmp_path / HOME).read_text(encoding="utf-8") == "title: Home\n"

    def test_success_keeps_local_edits_pending(self, service, synced, remote, tmp_path):
        # Arrange
        write(tmp_path, ABOUT, "title: About (local)\n")
        remote.compare.return_value = compare_payload(1, [HOME])
        remote.get_file_content.side_effect = remote_contents({HOME: ("title: Home (remote)\n", "blob1")})

        # Act
        result = service.pull_remote_changes(service.check_pull_conflicts())

        # Assert
        assert result.success is True
        assert result.commit_id == "head111"
        assert result.files == [HOME]
        assert (tmp_path / HOME).read_text(encoding="utf-8") == "title: Home (remote)\n"
        assert synced.get_last_synced_commit() == "head111"
        assert [c.file for c in synced.detect_pending_changes()] == [ABOUT]
        assert service.get_sync_status().relation == SyncRelation.AHEAD

    def test_file_deleted_on_remote_is_removed(self, service, synced, remote, tmp_path):
        remote.compare.return_value = compare_payload(1, [ABOUT])
        remote.get_file_content.return_value = None

        result = service.pull_remote_changes(service.check_pull_conflicts())

        assert result.success is True
        assert not (tmp_path / ABOUT).exists()
        assert ABOUT not in synced.load().files
        assert synced.detect_pending_changes() == []

    def test_unreadable_remote_changes_are_refused(self, service, synced, remote):
        remote.compare.side_effect = RemoteCommitError("GitHub API error: 502")

        result = service.pull_remote_changes(service.check_pull_conflicts())

        assert result.success is False
        assert "502" in result.error
        assert synced.get_last_synced_commit() == "old0000"
        remote.get_file_content.assert_not_called()

    def test_missing_remote_head(self, service, remote):
        result = service.pull_remote_changes(PullConflictCheck(has_conflicts=False))

        assert result.success is False
        assert result.error == "Could not get remote HEAD"


class TestGetAllSyncChanges:
    """Test cases for the unified change list."""

    def test_classifies_local_incoming_and_conflict(self, service, state, remote, tmp_path):
        # Arrange
        new_page = "marketing-content/pages/new/en.yml"
        contact = "marketing-content/pages/contact/en.yml"
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("old0000")
        write(tmp_path, HOME, "title: Home (local)\n")
        write(tmp_path, new_page, "title: New\n")
        remote.compare.return_value = compare_payload(2, [HOME, new_page, contact])

        # Act
        changes = {c.file: c for c in service.get_all_sync_changes()}

        # Assert
        assert sorted(changes) == sorted([HOME, new_page, contact])

        conflict = changes[HOME]
        assert conflict.source == ChangeSource.CONFLICT
        assert conflict.author == "Editor 1"
        assert conflict.date == "2024-01-02T10:00:00Z"
        assert conflict.commit_id == "c1"

        local = changes[new_page]
        assert local.source == ChangeSource.LOCAL
        assert local.status == "added"
        assert local.author == LOCAL_AUTHOR
        assert local.commit_id is None

        incoming = changes[contact]
        assert incoming.source == ChangeSource.INCOMING
        assert incoming.status == "modified"
        assert (incoming.content_type, incoming.slug) == ("pages", "contact")
        assert incoming.author == "Editor 1"
        assert incoming.commit_id == "c1"

    def test_files_pulled_from_current_head_are_skipped(self, service, state, remote, tmp_path):
        write(tmp_path, ABOUT, "title: About\n")
        state.rebuild_from_local("old0000")
        remote.compare.return_value = compare_payload(1, [ABOUT])
        remote.get_file_content.return_value = ("title: About (remote)\n", "blob1")

        assert [c.source for c in service.get_all_sync_changes()] == [ChangeSource.INCOMING]

        service.pull_file(ABOUT, commit_sha="head111")

        assert service.get_all_sync_changes() == []

    def test_pull_from_older_head_is_still_incoming(self, service, state, remote, tmp_path):
        write(tmp_path, ABOUT, "title: About\n")
        state.rebuild_from_local("old0000")
        remote.get_file_content.return_value = ("title: About (remote)\n", "blob1")
        service.pull_file(ABOUT, commit_sha="mid5555")
        remote.compare.return_value = compare_payload(1, [ABOUT])

        changes = service.get_all_sync_changes()

        assert [(c.file, c.source) for c in changes] == [(ABOUT, ChangeSource.INCOMING)]

    def test_wire_format(self, service, state, remote, tmp_path):
        write(tmp_path, HOME, "title: Home\n")
        state.rebuild_from_local("head111")
        write(tmp_path, HOME, "title: Home (local)\n")

        [change] = service.get_all_sync_changes()
        data = change.to_dict()

        assert data["source"] == "local"
        assert data["contentType"] == "pages"
        assert data["author"] == LOCAL_AUTHOR
        assert "commitSha" not in data
