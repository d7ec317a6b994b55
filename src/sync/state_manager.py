"""Sync state file loading, validation and per-file hash tracking.

The sync state records the remote commit the local content was last synced
to, plus a content hash for every tracked file. Pending local changes are
derived by hashing the files on disk and comparing against the record, so no
git binary is needed.

State file structure (YAML):
    last_synced_commit: "4f2a..."
    last_synced_at: "2024-01-15T10:30:00+00:00"
    files:
      marketing-content/pages/home/en.yml:
        sha: "9c1e..."
        last_modified: 1705314600.0
        remote_sha: "9c1e..."
"""

import copy
import hashlib
import logging
import os
import re
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import StateError, StateFilesystemError
from .models import FileSyncInfo, PendingFileChange, SyncState

logger = logging.getLogger(__name__)

CONTENT_DIR = "marketing-content"
EXCLUDED_DIRS = ("component-registry/",)
TRACKED_EXTENSIONS = (".yml", ".yaml")

_CONTENT_PATH_PATTERN = re.compile(
    r"marketing-content/(programs|landings|locations|pages|component-registry)/([^/]+)"
)


def should_track_file(file_path: str) -> bool:
    """Check whether a repository-relative path is tracked by the sync state.

    Only YAML files under the content directory are tracked; the component
    registry and dotfiles (such as the state file itself) are excluded.

    Example:
        >>> should_track_file("marketing-content/pages/home/en.yml")
        True
        >>> should_track_file("marketing-content/component-registry/hero/v1.yml")
        False
    """
    if not file_path.startswith(f"{CONTENT_DIR}/"):
        return False
    if any(excluded in file_path for excluded in EXCLUDED_DIRS):
        return False
    if os.path.basename(file_path).startswith("."):
        return False
    return os.path.splitext(file_path)[1].lower() in TRACKED_EXTENSIONS


def compute_file_sha(content: str) -> str:
    """SHA-256 hex digest of file content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def parse_content_path(file_path: str) -> Tuple[str, str]:
    """Extract ``(content_type, slug)`` from a content file path."""
    match = _CONTENT_PATH_PATTERN.search(file_path)
    if match:
        return match.group(1), match.group(2)
    return "unknown", os.path.splitext(os.path.basename(file_path))[0]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _file_entry(info: FileSyncInfo) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "sha": info.sha,
        "last_modified": info.last_modified,
        "remote_sha": info.remote_sha,
    }
    if info.pulled_from_commit:
        entry["pulled_from_commit"] = info.pulled_from_commit
    return entry


class SyncStateManager:
    """Loads, caches and updates the persisted sync state.

    The parsed state is cached and reused for as long as the state file's
    mtime is unchanged; every save drops the cache. Read-modify-write
    operations hold an internal lock.

    Example:
        >>> manager = SyncStateManager("/srv/site")
        >>> changes = manager.detect_pending_changes()
        >>> manager.update_after_commit("4f2a...", [c.file for c in changes])
    """

    DEFAULT_STATE_FILE = os.path.join(CONTENT_DIR, ".sync-state.yaml")

    def __init__(self, root_dir: str, state_path: Optional[str] = None):
        """Initialize the state manager.

        Args:
            root_dir: Working copy root; tracked paths are relative to it
            state_path: State file location (defaults to DEFAULT_STATE_FILE under root_dir)
        """
        self.root_dir = os.path.abspath(root_dir)
        self.state_path = state_path or os.path.join(self.root_dir, self.DEFAULT_STATE_FILE)
        self._lock = threading.RLock()
        self._cached_state: Optional[SyncState] = None
        self._cached_mtime: Optional[float] = None

    def _full_path(self, file_path: str) -> str:
        return os.path.join(self.root_dir, file_path)

    @staticmethod
    def _relative(file_path: str) -> str:
        if file_path.startswith(f"{CONTENT_DIR}/"):
            return file_path
        return f"{CONTENT_DIR}/{file_path}"

    def _read_file_info(self, file_path: str) -> Optional[Tuple[str, float]]:
        """Hash a tracked file on disk; None if it does not exist."""
        full_path = self._full_path(file_path)
        try:
            with open(full_path, "r", encoding="utf-8") as f:
                content = f.read()
            mtime = os.stat(full_path).st_mtime
        except FileNotFoundError:
            return None
        return compute_file_sha(content), mtime

    def _list_content_files(self) -> List[str]:
        content_root = self._full_path(CONTENT_DIR)
        files = []
        for dirpath, dirnames, filenames in os.walk(content_root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.endswith(TRACKED_EXTENSIONS):
                    rel = os.path.relpath(os.path.join(dirpath, name), self.root_dir)
                    files.append(rel.replace(os.sep, "/"))
        return files

    def load(self) -> SyncState:
        """Load the sync state, reusing the cached copy when the file is unchanged.

        A missing or empty file yields a fresh (never synced) state. Paths
        that are no longer tracked are pruned from the returned state.

        Returns:
            A copy of the state; callers may mutate it freely

        Raises:
            StateFilesystemError: If the file exists but cannot be read
            StateError: If the file is not valid state YAML
        """
        with self._lock:
            try:
                mtime = os.stat(self.state_path).st_mtime
            except FileNotFoundError:
                self._cached_state = None
                self._cached_mtime = None
                return SyncState()

            if self._cached_state is not None and self._cached_mtime == mtime:
                return copy.deepcopy(self._cached_state)

            state = self._read_state()
            self._cached_state = state
            self._cached_mtime = mtime
            return copy.deepcopy(state)

    def _read_state(self) -> SyncState:
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return SyncState()
        except PermissionError:
            raise StateFilesystemError(self.state_path, "read", "Permission denied")
        except OSError as e:
            raise StateFilesystemError(self.state_path, "read", str(e))

        if not content.strip():
            return SyncState()

        try:
            state_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise StateError(f"invalid YAML: {e}", path=self.state_path)

        if state_dict is None:
            return SyncState()

        if not isinstance(state_dict, dict):
            raise StateError(
                f"expected a YAML dictionary, got {type(state_dict).__name__}",
                path=self.state_path,
            )

        return self._parse_state(state_dict)

    @classmethod
    def _parse_state(cls, state_dict: Dict[str, Any]) -> SyncState:
        """Parse and validate a state dictionary."""
        state = SyncState()

        for key in ("last_synced_commit", "last_synced_at"):
            value = state_dict.get(key)
            if value is None:
                continue
            # Unquoted timestamps are parsed by YAML into datetimes
            if isinstance(value, datetime):
                value = value.isoformat()
            if not isinstance(value, str):
                raise StateError(
                    f"Field '{key}' must be a string, got {type(value).__name__}", key
                )
            setattr(state, key, value.strip() or None)

        files = state_dict.get("files") or {}
        if not isinstance(files, dict):
            raise StateError(
                f"Field 'files' must be a dictionary, got {type(files).__name__}", "files"
            )

        for path, info in files.items():
            if not isinstance(path, str) or not isinstance(info, dict):
                raise StateError("Entries must map a path to a mapping", "files")
            if not should_track_file(path):
                logger.debug(f"Pruning untracked path from sync state: {path}")
                continue
            sha = info.get("sha")
            if not isinstance(sha, str) or not sha:
                raise StateError(f"Entry for {path} has no sha", "files")
            state.files[path] = FileSyncInfo(
                sha=sha,
                last_modified=float(info.get("last_modified") or 0),
                remote_sha=info.get("remote_sha") or None,
                pulled_from_commit=info.get("pulled_from_commit") or None,
            )

        return state

    def save(self, state: SyncState) -> None:
        """Write the state file and drop the cached copy.

        Raises:
            StateFilesystemError: If the file cannot be written
        """
        state_dict = {
            "last_synced_commit": state.last_synced_commit,
            "last_synced_at": state.last_synced_at,
            "files": {
                path: _file_entry(info)
                for path, info in sorted(state.files.items())
            },
        }

        yaml_str = yaml.safe_dump(
            state_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )

        with self._lock:
            self._cached_state = None
            self._cached_mtime = None

            state_dir = os.path.dirname(self.state_path)
            if state_dir:
                try:
                    os.makedirs(state_dir, exist_ok=True)
                except OSError as e:
                    raise StateFilesystemError(state_dir, "create_directory", str(e))

            try:
                with open(self.state_path, "w", encoding="utf-8") as f:
                    f.write(yaml_str)
            except PermissionError:
                raise StateFilesystemError(self.state_path, "write", "Permission denied")
            except OSError as e:
                raise StateFilesystemError(self.state_path, "write", str(e))

    def get_last_synced_commit(self) -> Optional[str]:
        return self.load().last_synced_commit

    def mark_file_as_modified(self, file_path: str) -> None:
        """Record the current hash of an edited file, keeping its remote hash."""
        file_path = self._relative(file_path)
        if not should_track_file(file_path):
            return

        with self._lock:
            info = self._read_file_info(file_path)
            if info is None:
                return
            state = self.load()
            previous = state.files.get(file_path)
            state.files[file_path] = FileSyncInfo(
                sha=info[0],
                last_modified=info[1],
                remote_sha=previous.remote_sha if previous else None,
            )
            self.save(state)

    def detect_pending_changes(self) -> List[PendingFileChange]:
        """Compare tracked files on disk against the recorded hashes.

        A file is ``added`` when it has no record, ``modified`` when its hash
        differs from the recorded remote (or local) hash, and ``deleted`` when
        it was known on the remote but is gone from disk.
        """
        state = self.load()
        changes: List[PendingFileChange] = []
        seen = set()

        for file_path in self._list_content_files():
            if not should_track_file(file_path):
                continue
            seen.add(file_path)

            try:
                info = self._read_file_info(file_path)
            except OSError as e:
                logger.error(f"Error checking file {file_path}: {e}")
                continue
            if info is None:
                continue
            current_sha = info[0]
            stored = state.files.get(file_path)
            content_type, slug = parse_content_path(file_path)

            if stored is None:
                status = "added"
            elif stored.remote_sha and stored.remote_sha != current_sha:
                status = "modified"
            elif stored.sha != current_sha:
                status = "modified"
            else:
                continue

            changes.append(PendingFileChange(
                file=file_path,
                status=status,
                content_type=content_type,
                slug=slug,
                local_sha=current_sha,
                remote_sha=stored.remote_sha if stored else None,
            ))

        for file_path, stored in state.files.items():
            if file_path in seen or not stored.remote_sha:
                continue
            content_type, slug = parse_content_path(file_path)
            changes.append(PendingFileChange(
                file=file_path,
                status="deleted",
                content_type=content_type,
                slug=slug,
                local_sha="",
                remote_sha=stored.remote_sha,
            ))

        return changes

    def update_after_commit(self, commit_sha: str, committed_files: List[str]) -> None:
        """Mark committed files as synced at ``commit_sha``.

        Committed files that no longer exist on disk are dropped from the
        record.
        """
        with self._lock:
            state = self.load()
            state.last_synced_commit = commit_sha
            state.last_synced_at = _now()

            for file_path in committed_files:
                if not should_track_file(file_path):
                    continue
                self._record_synced(state, file_path)

            self.save(state)
        logger.info(f"Sync state advanced to {commit_sha} ({len(committed_files)} file(s))")

    def update_file_after_commit(self, file_path: str, commit_sha: str) -> None:
        """Mark a single committed file as synced and advance the synced commit."""
        self.update_after_commit(commit_sha, [self._relative(file_path)])

    def update_file_after_pull(self, file_path: str, commit_sha: Optional[str] = None) -> None:
        """Mark a single pulled file as matching the remote.

        Args:
            file_path: Path of the pulled file; a file that is gone from
                disk (deleted on the remote) is dropped from the record
            commit_sha: Remote head the file was pulled from, if known
        """
        file_path = self._relative(file_path)
        if not should_track_file(file_path):
            return
        with self._lock:
            state = self.load()
            self._record_synced(state, file_path)
            if commit_sha and file_path in state.files:
                state.files[file_path].pulled_from_commit = commit_sha
            self.save(state)

    def was_file_pulled_from_commit(self, file_path: str, commit_sha: str) -> bool:
        """Whether a file was already pulled from ``commit_sha`` and left unedited since."""
        info = self.load().files.get(self._relative(file_path))
        if info is None or info.pulled_from_commit != commit_sha:
            return False
        current = self._read_file_info(self._relative(file_path))
        return current is not None and current[0] == info.sha

    def advance_synced_commit(self, commit_sha: str) -> None:
        """Record ``commit_sha`` as the last synced commit, keeping every file entry.

        Pulled files must already be recorded; files with local edits stay
        pending.
        """
        with self._lock:
            state = self.load()
            state.last_synced_commit = commit_sha
            state.last_synced_at = _now()
            self.save(state)
        logger.info(f"Sync state advanced to {commit_sha}")

    def rebuild_from_local(self, commit_sha: str) -> SyncState:
        """Rebuild the record from the files on disk as synced at ``commit_sha``.

        Used after the local copy has been brought up to date with the
        remote, so every tracked file's local hash is also its remote hash.
        """
        state = SyncState(last_synced_commit=commit_sha, last_synced_at=_now())
        with self._lock:
            for file_path in self._list_content_files():
                if should_track_file(file_path):
                    self._record_synced(state, file_path)
            self.save(state)
        logger.info(f"Sync state rebuilt at {commit_sha} ({len(state.files)} file(s))")
        return state

    def discard_local_changes(self, file_path: str) -> bool:
        """Accept a file's current content as synced without reverting it.

        Returns:
            False if the path is not tracked, True otherwise
        """
        file_path = self._relative(file_path)
        if not should_track_file(file_path):
            return False
        with self._lock:
            state = self.load()
            self._record_synced(state, file_path)
            self.save(state)
        return True

    def _record_synced(self, state: SyncState, file_path: str) -> None:
        info = self._read_file_info(file_path)
        if info is None:
            state.files.pop(file_path, None)
            return
        sha, mtime = info
        state.files[file_path] = FileSyncInfo(sha=sha, last_modified=mtime, remote_sha=sha)
