"""Data models for sync status, conflict information and persisted sync state.

This module defines the data structures shared by the server-side status
computation and the client-side sync monitor. Status and conflict models
know how to read and write the camelCase wire format used by the content
server endpoints.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SyncRelation(Enum):
    """Relationship between the local working copy and the tracked branch."""

    IN_SYNC = "in-sync"
    BEHIND = "behind"
    AHEAD = "ahead"
    DIVERGED = "diverged"
    UNKNOWN = "unknown"
    UNCONFIGURED = "unconfigured"
    INVALID_CREDENTIALS = "invalid-credentials"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "SyncRelation":
        """Parse a relation from the wire, tolerating the legacy spelling.

        Unknown values map to UNKNOWN rather than raising so that a newer
        server cannot break an older monitor.
        """
        if value == "not-configured":
            return cls.UNCONFIGURED
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_behind(self) -> bool:
        return self in (SyncRelation.BEHIND, SyncRelation.DIVERGED)


@dataclass
class SyncStatus:
    """Local vs. remote branch status as reported by the content server.

    Attributes:
        configured: Whether remote sync credentials and repository are set
        sync_enabled: Whether remote sync is switched on
        local_ref: Last commit the local copy was synced to
        remote_ref: Current head of the tracked remote branch
        relation: Classification of local_ref vs. remote_ref
        branch: Tracked branch name
        behind_by: Number of remote commits missing locally
        ahead_by: Number of local changes not yet pushed
        repo_url: Repository reference for display
    """

    configured: bool
    sync_enabled: bool
    local_ref: Optional[str]
    remote_ref: Optional[str]
    relation: SyncRelation
    branch: str = "main"
    behind_by: Optional[int] = None
    ahead_by: Optional[int] = None
    repo_url: Optional[str] = None

    @property
    def is_behind(self) -> bool:
        return self.relation.is_behind

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncStatus":
        return cls(
            configured=bool(data.get("configured", False)),
            sync_enabled=bool(data.get("syncEnabled", False)),
            local_ref=data.get("localCommit"),
            remote_ref=data.get("remoteCommit"),
            relation=SyncRelation.from_wire(data.get("status")),
            branch=data.get("branch") or "main",
            behind_by=data.get("behindBy"),
            ahead_by=data.get("aheadBy"),
            repo_url=data.get("repoUrl"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "configured": self.configured,
            "syncEnabled": self.sync_enabled,
            "localCommit": self.local_ref,
            "remoteCommit": self.remote_ref,
            "status": self.relation.value,
            "branch": self.branch,
        }
        if self.behind_by is not None:
            data["behindBy"] = self.behind_by
        if self.ahead_by is not None:
            data["aheadBy"] = self.ahead_by
        if self.repo_url is not None:
            data["repoUrl"] = self.repo_url
        return data


@dataclass
class RemoteCommitSummary:
    """Read-only metadata for one remote commit not yet reflected locally."""

    id: str
    message: str
    author: str
    date: str
    changed_files: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteCommitSummary":
        return cls(
            id=data.get("sha", ""),
            message=data.get("message", ""),
            author=data.get("author", "Unknown"),
            date=data.get("date", ""),
            changed_files=list(data.get("files") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sha": self.id,
            "message": self.message,
            "author": self.author,
            "date": self.date,
            "files": list(self.changed_files),
        }


@dataclass
class ConflictInfo:
    """Remote commits the local copy is missing.

    Attributes:
        has_conflict: Whether the remote moved past the last synced commit
        behind_by: Number of commits the local copy is behind
        commits: Missing commits, in the order the server reported them
        last_synced_ref: Commit the local copy was last synced to
        remote_ref: Current remote branch head
        changed_files: Aggregate of paths changed by the missing commits
        error: Set when the remote could not be compared; the lists are
            then incomplete. Not part of the wire format.
    """

    has_conflict: bool
    behind_by: int
    commits: List[RemoteCommitSummary] = field(default_factory=list)
    last_synced_ref: Optional[str] = None
    remote_ref: Optional[str] = None
    changed_files: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def none(cls, last_synced_ref: Optional[str] = None, remote_ref: Optional[str] = None) -> "ConflictInfo":
        return cls(
            has_conflict=False,
            behind_by=0,
            last_synced_ref=last_synced_ref,
            remote_ref=remote_ref,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConflictInfo":
        return cls(
            has_conflict=bool(data.get("hasConflict", False)),
            behind_by=int(data.get("behindBy") or 0),
            commits=[RemoteCommitSummary.from_dict(c) for c in data.get("commits") or []],
            last_synced_ref=data.get("lastSyncedCommit"),
            remote_ref=data.get("remoteCommit"),
            changed_files=list(data.get("changedFiles") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasConflict": self.has_conflict,
            "behindBy": self.behind_by,
            "commits": [c.to_dict() for c in self.commits],
            "lastSyncedCommit": self.last_synced_ref,
            "remoteCommit": self.remote_ref,
            "changedFiles": list(self.changed_files),
        }


@dataclass
class FileSyncInfo:
    """Per-file hashes recorded in the persisted sync state.

    Attributes:
        sha: Hash of the local content when last recorded
        last_modified: File mtime (seconds) when last recorded
        remote_sha: Hash of the content known to be on the remote
        pulled_from_commit: Remote head the file was last pulled from
    """

    sha: str
    last_modified: float
    remote_sha: Optional[str] = None
    pulled_from_commit: Optional[str] = None


@dataclass
class SyncState:
    """Persisted record of the last successful synchronization.

    Example:
        >>> state = SyncState()  # Never synced
        >>> state = SyncState(last_synced_commit="abc123")
    """

    last_synced_commit: Optional[str] = None
    last_synced_at: Optional[str] = None
    files: Dict[str, FileSyncInfo] = field(default_factory=dict)


@dataclass
class PendingFileChange:
    """A tracked content file whose local hash differs from the synced one."""

    file: str
    status: str  # added | modified | deleted
    content_type: str
    slug: str
    local_sha: str
    remote_sha: Optional[str] = None


class ChangeSource(Enum):
    """Which side a file change comes from."""

    LOCAL = "local"
    INCOMING = "incoming"
    CONFLICT = "conflict"


@dataclass
class SyncChange:
    """One entry of the unified local/incoming change list.

    ``author``, ``date`` and ``commit_id`` describe the remote commit behind
    an incoming or conflicting change. Local changes are attributed to the
    current editor.
    """

    file: str
    status: str
    source: ChangeSource
    content_type: str
    slug: str
    local_sha: str = ""
    remote_sha: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    commit_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "file": self.file,
            "status": self.status,
            "source": self.source.value,
            "contentType": self.content_type,
            "slug": self.slug,
            "localSha": self.local_sha,
        }
        for key, value in (
            ("remoteSha", self.remote_sha),
            ("author", self.author),
            ("date", self.date),
            ("commitSha", self.commit_id),
        ):
            if value is not None:
                data[key] = value
        return data


@dataclass
class SyncResult:
    """Outcome of a server-side sync operation.

    Attributes:
        success: Whether the operation completed
        error: Failure description
        commit_id: Remote commit the local copy is now synced to
        files: Paths written locally by the operation
    """

    success: bool
    error: Optional[str] = None
    commit_id: Optional[str] = None
    files: List[str] = field(default_factory=list)


@dataclass
class PullConflictCheck:
    """Overlap between local pending changes and incoming remote changes.

    Attributes:
        has_conflicts: Whether any file changed on both sides
        conflicting_files: Paths changed both locally and remotely
        local_pending_files: Paths with local changes
        remote_changed_files: Tracked paths changed on the remote
        remote_ref: Remote head the remote changes were read at
        error: Set when the remote changes could not be determined
    """

    has_conflicts: bool
    conflicting_files: List[str] = field(default_factory=list)
    local_pending_files: List[str] = field(default_factory=list)
    remote_changed_files: List[str] = field(default_factory=list)
    remote_ref: Optional[str] = None
    error: Optional[str] = None
