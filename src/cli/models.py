"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit status of a content-sync command.

    CONFLICTS covers every case where the user must reconcile with the
    remote first: the working copy is behind, a pull would overwrite local
    edits, or a push was rejected as stale.
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFLICTS = 2
    AUTH_ERROR = 3
    NETWORK_ERROR = 4
