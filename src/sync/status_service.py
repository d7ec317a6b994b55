"""Server-side sync status computation and remote operations.

SyncStatusService answers the content server's sync endpoints. It compares
the commit recorded in the sync state with the head of the tracked remote
branch, lists the remote commits the local copy is missing, and commits or
pulls single files while keeping the sync state current.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from src.content_client.errors import InvalidCredentialsError, SyncError
from src.github_client.contents_api import GitHubContentsClient, RemoteCommitResult

from .conflict_resolver import attributed_author
from .models import (
    ChangeSource,
    ConflictInfo,
    PullConflictCheck,
    RemoteCommitSummary,
    SyncChange,
    SyncRelation,
    SyncResult,
    SyncStatus,
)
from .state_manager import SyncStateManager, parse_content_path, should_track_file

logger = logging.getLogger(__name__)

BEHIND_REMOTE_ERROR = "Remote has new commits. Please sync before committing, or use force commit."

# Author shown for changes made in this working copy
LOCAL_AUTHOR = "Yourself"


class SyncStatusService:
    """Computes sync status and performs remote operations for the server.

    Example:
        >>> service = SyncStatusService(SyncStateManager("/srv/site"), GitHubContentsClient())
        >>> status = service.get_sync_status()
        >>> if status.is_behind:
        ...     info = service.get_conflict_info()
    """

    def __init__(self, state_manager: SyncStateManager, remote: GitHubContentsClient):
        self._state = state_manager
        self._remote = remote

    def get_sync_status(self) -> SyncStatus:
        """Classify the local copy against the remote branch.

        - no configuration: ``unconfigured``
        - remote head unavailable: ``unknown``
        - never synced: ``behind``
        - synced to the remote head: ``ahead`` with pending local changes,
          ``in-sync`` otherwise
        - synced to an older commit: ``behind``
        """
        loader = self._remote.config_loader
        sync_enabled = loader.is_sync_enabled()
        config = loader.load()

        if config is None:
            return SyncStatus(
                configured=False,
                sync_enabled=sync_enabled,
                local_ref=None,
                remote_ref=None,
                relation=SyncRelation.UNCONFIGURED,
            )

        def status(relation: SyncRelation, local_ref: Optional[str], remote_ref: Optional[str],
                   ahead_by: Optional[int] = None) -> SyncStatus:
            return SyncStatus(
                configured=True,
                sync_enabled=sync_enabled,
                local_ref=local_ref,
                remote_ref=remote_ref,
                relation=relation,
                branch=config.branch,
                ahead_by=ahead_by,
                repo_url=config.repo_url,
            )

        try:
            local_ref = self._state.get_last_synced_commit()
            remote_ref = self._remote.get_branch_head()

            if remote_ref is None:
                return status(SyncRelation.UNKNOWN, local_ref, None)

            if local_ref is None:
                return status(SyncRelation.BEHIND, None, remote_ref)

            if local_ref == remote_ref:
                pending = self._state.detect_pending_changes()
                if pending:
                    return status(SyncRelation.AHEAD, local_ref, remote_ref, ahead_by=len(pending))
                return status(SyncRelation.IN_SYNC, local_ref, remote_ref, ahead_by=0)

            behind = status(SyncRelation.BEHIND, local_ref, remote_ref)
            behind.behind_by = self._count_missing_commits(local_ref, remote_ref)
            return behind

        except InvalidCredentialsError:
            logger.error("GitHub rejected the configured token")
            return status(SyncRelation.INVALID_CREDENTIALS, None, None)
        except SyncError as e:
            logger.error(f"Error checking GitHub sync status: {e}")
            return status(SyncRelation.UNKNOWN, None, None)

    def _count_missing_commits(self, base: str, head: str) -> Optional[int]:
        try:
            data = self._remote.compare(base, head)
        except SyncError as e:
            logger.warning(f"Could not count commits behind {head[:7]}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return data.get("ahead_by") or len(data.get("commits") or []) or None

    def get_conflict_info(self) -> ConflictInfo:
        """List the remote commits made since the last synced commit.

        When the local copy was never synced, every content file in the
        remote head's tree is reported as changed. Lookup failures report a
        conflict so that editors are not allowed to write blindly.
        """
        if self._remote.config_loader.load() is None:
            return ConflictInfo.none()

        try:
            last_synced = self._state.get_last_synced_commit()
            remote_ref = self._remote.get_branch_head()
        except SyncError as e:
            logger.error(f"Error getting conflict info: {e}")
            return ConflictInfo(has_conflict=True, behind_by=1, error=str(e))

        if remote_ref is None:
            return ConflictInfo.none(last_synced_ref=last_synced)

        if last_synced is None:
            error = None
            try:
                changed_files = self._remote.list_tree_files(remote_ref)
            except SyncError as e:
                logger.error(f"Error fetching files from tree: {e}")
                changed_files = []
                error = str(e)
            return ConflictInfo(
                has_conflict=True,
                behind_by=1,
                remote_ref=remote_ref,
                changed_files=changed_files,
                error=error,
            )

        if last_synced == remote_ref:
            return ConflictInfo.none(last_synced_ref=last_synced, remote_ref=remote_ref)

        try:
            data = self._remote.compare(last_synced, remote_ref)
        except SyncError as e:
            logger.error(f"Error comparing {last_synced[:7]}...{remote_ref[:7]}: {e}")
            return ConflictInfo(
                has_conflict=True,
                behind_by=1,
                last_synced_ref=last_synced,
                remote_ref=remote_ref,
                error=str(e),
            )

        commits = [
            RemoteCommitSummary(
                id=item.get("sha", ""),
                message=(item.get("commit") or {}).get("message", ""),
                author=(
                    ((item.get("commit") or {}).get("author") or {}).get("name")
                    or (item.get("author") or {}).get("login")
                    or "Unknown"
                ),
                date=((item.get("commit") or {}).get("author") or {}).get("date", ""),
            )
            for item in data.get("commits") or []
        ]
        changed_files = [f["filename"] for f in data.get("files") or [] if f.get("filename")]

        # The compare payload only aggregates files, so they are attributed to the newest commit
        if commits and changed_files:
            commits[-1].changed_files = list(changed_files)

        return ConflictInfo(
            has_conflict=bool(commits or changed_files),
            behind_by=data.get("ahead_by") or len(commits),
            commits=commits,
            last_synced_ref=last_synced,
            remote_ref=remote_ref,
            changed_files=changed_files,
        )

    def check_pull_conflicts(self) -> PullConflictCheck:
        """Find files changed both locally and on the remote."""
        local_files = [change.file for change in self._state.detect_pending_changes()]
        info = self.get_conflict_info()
        remote_files = [f for f in info.changed_files if should_track_file(f)]

        local_set = set(local_files)
        conflicting = [f for f in remote_files if f in local_set]
        return PullConflictCheck(
            has_conflicts=bool(conflicting),
            conflicting_files=conflicting,
            local_pending_files=local_files,
            remote_changed_files=remote_files,
            remote_ref=info.remote_ref,
            error=info.error,
        )

    def get_all_sync_changes(self) -> List[SyncChange]:
        """List local changes to upload and remote changes to download.

        A local change is a ``conflict`` only when the remote also changed
        the file and the file had been synced before (it has a remote hash);
        a brand-new local file is always ``local``. Remote-only changes are
        ``incoming``, except files already pulled from the current remote
        head.
        """
        local_changes = self._state.detect_pending_changes()
        info = self.get_conflict_info()
        remote_files = [f for f in info.changed_files if should_track_file(f)]
        remote_set = set(remote_files)

        # Newest commit wins when several touched the same file
        latest: Dict[str, RemoteCommitSummary] = {}
        for commit in reversed(info.commits):
            for path in commit.changed_files:
                latest.setdefault(path, commit)

        changes: List[SyncChange] = []
        local_set = set()
        for change in local_changes:
            local_set.add(change.file)
            entry = SyncChange(
                file=change.file,
                status=change.status,
                source=ChangeSource.LOCAL,
                content_type=change.content_type,
                slug=change.slug,
                local_sha=change.local_sha,
                remote_sha=change.remote_sha,
                author=LOCAL_AUTHOR,
                date=datetime.now(timezone.utc).isoformat(),
            )
            if change.file in remote_set and change.remote_sha:
                commit = latest.get(change.file)
                entry.source = ChangeSource.CONFLICT
                entry.author = attributed_author(commit) if commit else None
                entry.date = commit.date if commit else None
                entry.commit_id = (commit.id if commit else None) or info.remote_ref
            changes.append(entry)

        for path in remote_files:
            if path in local_set:
                continue
            if info.remote_ref and self._state.was_file_pulled_from_commit(path, info.remote_ref):
                continue
            commit = latest.get(path)
            content_type, slug = parse_content_path(path)
            changes.append(SyncChange(
                file=path,
                status="modified",
                source=ChangeSource.INCOMING,
                content_type=content_type,
                slug=slug,
                author=attributed_author(commit) if commit else None,
                date=commit.date if commit else None,
                commit_id=(commit.id if commit else None) or info.remote_ref,
            ))

        return changes

    def pull_remote_changes(self, check: PullConflictCheck) -> SyncResult:
        """Pull every remotely changed file, then record the sync at the remote head.

        All remote contents are fetched before anything is written. If any
        fetch fails, nothing is written and the sync state keeps the old
        commit, so the copy still reports itself behind. On success only the
        pulled files and the synced commit are updated; local edits to files
        the remote did not change stay pending.

        Files listed in ``check`` that no longer exist on the remote are
        deleted locally.
        """
        if self._remote.config_loader.load() is None:
            return SyncResult(success=False, error="GitHub not configured")
        if check.error:
            return SyncResult(success=False, error=f"Could not read remote changes: {check.error}")
        if not check.remote_ref:
            return SyncResult(success=False, error="Could not get remote HEAD")

        fetched: List[Tuple[str, Optional[str]]] = []
        failures: List[str] = []
        for path in check.remote_changed_files:
            try:
                remote = self._remote.get_file_content(path)
            except SyncError as e:
                logger.error(f"Could not fetch {path}: {e}")
                failures.append(f"{path} ({e})")
                continue
            fetched.append((path, remote[0] if remote is not None else None))

        if failures:
            return SyncResult(
                success=False,
                error=f"Could not fetch {len(failures)} file(s): {'; '.join(failures)}",
            )

        pulled: List[str] = []
        for path, content in fetched:
            result = self._write_pulled(path, content, check.remote_ref)
            if not result.success:
                return SyncResult(success=False, error=f"{path}: {result.error}", files=pulled)
            pulled.append(path)

        self._state.advance_synced_commit(check.remote_ref)
        logger.info(f"Pulled {len(pulled)} file(s) at {check.remote_ref[:7]}")
        return SyncResult(success=True, commit_id=check.remote_ref, files=pulled)

    def sync_with_remote(self) -> SyncResult:
        """Record the local copy as synced with the current remote head.

        Called once the working copy has been brought up to date; the state
        is rebuilt from the files on disk so no pending changes remain.
        """
        if self._remote.config_loader.load() is None:
            return SyncResult(success=False, error="GitHub not configured")

        try:
            remote_ref = self._remote.get_branch_head()
            if remote_ref is None:
                return SyncResult(success=False, error="Could not get remote HEAD")
            self._state.rebuild_from_local(remote_ref)
        except SyncError as e:
            logger.error(f"Error syncing with remote: {e}")
            return SyncResult(success=False, error=str(e))

        return SyncResult(success=True, commit_id=remote_ref)

    def commit_file(
        self,
        file_path: str,
        message: str,
        author: Optional[str] = None,
        force: bool = False,
    ) -> RemoteCommitResult:
        """Commit one local file to the remote branch.

        Unless ``force`` is set the commit is refused while the local copy
        is behind the remote.

        Raises:
            RemoteNotConfiguredError: In production, if configuration is missing
        """
        if not force and self.get_sync_status().is_behind:
            return RemoteCommitResult(
                success=False,
                error=BEHIND_REMOTE_ERROR,
            )

        full_path = os.path.join(self._state.root_dir, file_path)
        try:
            with open(full_path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return RemoteCommitResult(success=False, error="File not found locally")

        result = self._remote.commit_file(file_path, content, message, author=author)
        if result.success and not result.skipped:
            self._state.update_file_after_commit(file_path, result.commit_id or "")
        return result

    def commit_pending(self, message: str, author: Optional[str] = None, force: bool = False) -> List[RemoteCommitResult]:
        """Commit every pending added or modified file, one commit per file.

        Stops at the first failure; results for files already committed are
        kept.
        """
        results: List[RemoteCommitResult] = []
        for change in self._state.detect_pending_changes():
            if change.status == "deleted":
                logger.warning(f"Skipping deleted file {change.file}: deletions are not pushed")
                continue
            result = self.commit_file(change.file, message, author=author, force=force)
            results.append(result)
            if not result.success:
                break
        return results

    def pull_file(self, file_path: str, commit_sha: Optional[str] = None) -> SyncResult:
        """Overwrite one local file with its remote content.

        Args:
            file_path: Repository-relative content path
            commit_sha: Remote head the content is read at, recorded so the
                file is not offered again as an incoming change
        """
        try:
            remote = self._remote.get_file_content(file_path)
        except SyncError as e:
            return SyncResult(success=False, error=str(e))
        if remote is None:
            return SyncResult(success=False, error="File not found on remote")

        content, _sha = remote
        return self._write_pulled(file_path, content, commit_sha)

    def _write_pulled(self, file_path: str, content: Optional[str], commit_sha: Optional[str]) -> SyncResult:
        """Write (or, for ``None`` content, delete) a pulled file and record it."""
        full_path = os.path.join(self._state.root_dir, file_path)
        try:
            if content is None:
                if os.path.exists(full_path):
                    os.remove(full_path)
            else:
                os.makedirs(os.path.dirname(full_path), exist_ok=True)
                with open(full_path, "w", encoding="utf-8") as f:
                    f.write(content)
        except OSError as e:
            logger.error(f"Error writing file {file_path}: {e}")
            return SyncResult(success=False, error=str(e))

        self._state.update_file_after_pull(file_path, commit_sha)
        return SyncResult(success=True, files=[file_path])
