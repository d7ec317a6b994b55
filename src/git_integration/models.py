"""Data models for the local git working copy.

This module defines the data structures returned by GitRepository when it
inspects and commits the content directory of the local checkout.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class FileStatus(Enum):
    """Working-tree status of a file, as reported by ``git status``."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    UNTRACKED = "untracked"

    @classmethod
    def from_porcelain(cls, code: str) -> "FileStatus":
        """Map a two-letter porcelain status code to a FileStatus.

        Codes other than the ones listed are treated as modifications.
        """
        code = code.strip()
        if code in ("M", "MM"):
            return cls.MODIFIED
        if code == "A":
            return cls.ADDED
        if code == "D":
            return cls.DELETED
        if code == "??":
            return cls.UNTRACKED
        return cls.MODIFIED


@dataclass
class FileChange:
    """A changed path in the working tree.

    Attributes:
        path: Repository-relative path
        status: Working-tree status of the path
    """

    path: str
    status: FileStatus


@dataclass
class GitStatus:
    """Changes in the allow-listed part of the working tree.

    Attributes:
        has_changes: Whether any allow-listed path changed
        files: Changed paths in ``git status`` order
    """

    has_changes: bool
    files: List[FileChange] = field(default_factory=list)


@dataclass
class CommitResult:
    """Result of a local commit.

    Attributes:
        success: Whether a commit was created
        commit_id: Abbreviated hash parsed from git's output
        message: Commit message used
        error: Failure description when success is False
    """

    success: bool
    commit_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
