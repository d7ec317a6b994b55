"""Remote synchronization: status, conflict detection and the editing gate.

The server side computes status from the persisted sync state
(SyncStateManager, SyncStatusService); the client side polls it and gates
edits (SyncMonitor, ConflictResolver).
"""

from .conflict_resolver import ConflictResolver, attributed_author
from .errors import StateError, StateFilesystemError
from .models import (
    ChangeSource,
    ConflictInfo,
    FileSyncInfo,
    PendingFileChange,
    PullConflictCheck,
    RemoteCommitSummary,
    SyncRelation,
    SyncResult,
    SyncState,
    SyncChange,
    SyncStatus,
)
from .monitor import SyncMonitor
from .state_manager import SyncStateManager, compute_file_sha, should_track_file
from .status_service import SyncStatusService

__all__ = [
    "ConflictResolver",
    "attributed_author",
    "StateError",
    "StateFilesystemError",
    "ChangeSource",
    "ConflictInfo",
    "FileSyncInfo",
    "PendingFileChange",
    "PullConflictCheck",
    "RemoteCommitSummary",
    "SyncRelation",
    "SyncResult",
    "SyncState",
    "SyncChange",
    "SyncStatus",
    "SyncMonitor",
    "SyncStateManager",
    "compute_file_sha",
    "should_track_file",
    "SyncStatusService",
]
