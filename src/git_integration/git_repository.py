"""Local git working copy management for the content directory.

This module provides the GitRepository class, which inspects and commits the
content directory of a local checkout. It uses subprocess to execute git
commands and serializes commits so that concurrent callers never interleave
their status, stage and commit steps.
"""

import logging
import os
import posixpath
import re
import subprocess
import threading
from typing import List, Optional, Sequence

from src.git_integration.errors import GitCommandError, GitRepositoryError
from src.git_integration.models import CommitResult, FileChange, FileStatus, GitStatus

logger = logging.getLogger(__name__)

# Git command timeout in seconds
GIT_TIMEOUT = 30

# Captured git output is capped at 10 MiB
MAX_OUTPUT_BYTES = 10 * 1024 * 1024

ALLOWED_PATHS = ["marketing-content/"]

NO_CHANGES_ERROR = "No changes to commit"

_COMMIT_HASH_PATTERN = re.compile(r"^\[[\w./-]+\s+(?:\(root-commit\)\s+)?([a-f0-9]+)\]", re.MULTILINE)


def is_allowed_path(path: str, allowed_paths: Optional[Sequence[str]] = None) -> bool:
    """Check whether a repository-relative path lies under an allowed prefix.

    The path is normalized first, so ``marketing-content/../secrets`` is
    rejected.

    Example:
        >>> is_allowed_path("marketing-content/pages/home/en.yml")
        True
        >>> is_allowed_path("server/index.ts")
        False
    """
    if allowed_paths is None:
        allowed_paths = ALLOWED_PATHS
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized.startswith("../") or posixpath.isabs(normalized):
        return False
    return any(normalized.startswith(prefix) for prefix in allowed_paths)


class GitRepository:
    """Commits content changes in a local git checkout.

    Only paths under the allow-listed prefixes are ever staged. The whole
    status -> stage -> commit sequence runs under a single lock, so commits
    issued from different threads are applied one after another.

    Example:
        >>> repo = GitRepository("/srv/site")
        >>> status = repo.get_status()
        >>> result = repo.commit("Update home page", "Jane Doe", "jane@example.com")
        >>> if result.success:
        ...     print(result.commit_id)
    """

    def __init__(self, repo_path: str, allowed_paths: Optional[Sequence[str]] = None):
        """Initialize git repository manager.

        Args:
            repo_path: Path to the working copy root
            allowed_paths: Path prefixes that may be staged (defaults to ALLOWED_PATHS)
        """
        self.repo_path = repo_path
        self.allowed_paths = list(allowed_paths) if allowed_paths is not None else list(ALLOWED_PATHS)
        self._commit_lock = threading.Lock()
        self._ensure_absolute_path()

    def _ensure_absolute_path(self) -> None:
        """Convert repo_path to absolute path if relative."""
        if not os.path.isabs(self.repo_path):
            self.repo_path = os.path.abspath(self.repo_path)

    def _run_git(self, *args: str) -> str:
        """Run a git command in the working copy and return its stdout.

        Raises:
            GitCommandError: If git exits non-zero
            GitRepositoryError: If git is missing, times out, or floods its output
        """
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"

        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
                stdin=subprocess.DEVNULL,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise GitRepositoryError(
                repo_path=self.repo_path,
                message=f"git {args[0]} timed out after {GIT_TIMEOUT} seconds",
            )
        except FileNotFoundError:
            raise GitRepositoryError(
                repo_path=self.repo_path,
                message="Git command not found. Please install git.",
            )

        if len(result.stdout) > MAX_OUTPUT_BYTES or len(result.stderr) > MAX_OUTPUT_BYTES:
            raise GitRepositoryError(
                repo_path=self.repo_path,
                message=f"git {args[0]} produced more than {MAX_OUTPUT_BYTES} bytes of output",
            )

        if result.returncode != 0:
            raise GitCommandError(
                repo_path=self.repo_path,
                command=list(args),
                returncode=result.returncode,
                git_output=result.stderr or result.stdout,
            )

        return result.stdout

    def get_status(self) -> GitStatus:
        """List changed files under the allowed prefixes.

        Returns:
            GitStatus with one FileChange per changed path

        Raises:
            GitCommandError: If ``git status`` fails
            GitRepositoryError: If git cannot be run
        """
        output = self._run_git("status", "--porcelain", "-z", "--untracked-files=all")
        files = [
            change for change in self._parse_porcelain(output)
            if is_allowed_path(change.path, self.allowed_paths)
        ]
        return GitStatus(has_changes=bool(files), files=files)

    @staticmethod
    def _parse_porcelain(output: str) -> List[FileChange]:
        """Parse NUL-separated ``git status --porcelain -z`` output."""
        changes: List[FileChange] = []
        entries = output.split("\0")
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue
            code = entry[:2]
            path = entry[3:]
            # Renames and copies carry the source path as a separate entry
            if code[0] in ("R", "C"):
                i += 1
            changes.append(FileChange(path=path, status=FileStatus.from_porcelain(code)))
        return changes

    def commit(
        self,
        message: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> CommitResult:
        """Stage every allowed change and commit it.

        Deleted paths are staged with ``git rm``, everything else with
        ``git add``. The author is overridden only when both name and email
        are given.

        Args:
            message: Commit message
            author_name: Optional author name
            author_email: Optional author email

        Returns:
            CommitResult; git failures are reported as ``success=False``

        Raises:
            GitRepositoryError: If git is missing or a command times out
        """
        with self._commit_lock:
            try:
                status = self.get_status()

                if not status.has_changes:
                    logger.debug("No content changes to commit")
                    return CommitResult(success=False, error=NO_CHANGES_ERROR)

                for change in status.files:
                    if change.status == FileStatus.DELETED:
                        self._run_git("rm", "--quiet", "--ignore-unmatch", "--", change.path)
                    else:
                        self._run_git("add", "--", change.path)
                    logger.debug(f"Staged {change.status.value}: {change.path}")

                commit_args = ["commit", "-m", message]
                if author_name and author_email:
                    commit_args.extend(["--author", f"{author_name} <{author_email}>"])

                output = self._run_git(*commit_args)

            except GitCommandError as e:
                error = e.git_output.strip() or e.message
                logger.error(f"Commit failed: {error}")
                return CommitResult(success=False, error=error)

        match = _COMMIT_HASH_PATTERN.search(output)
        commit_id = match.group(1) if match else None
        logger.info(f"Committed {len(status.files)} file(s): {commit_id or 'unknown hash'}")
        return CommitResult(success=True, commit_id=commit_id, message=message)
