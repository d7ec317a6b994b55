"""Errors raised by the local git working copy.

A failed commit sequence is reported through CommitResult; these are
raised only by the low-level command runner.
"""

from src.content_client.errors import SyncError


class GitRepositoryError(SyncError):
    """Raised when git repository operations fail.

    Attributes:
        repo_path: Path to git repository
        message: Error description
        git_output: Git command stderr output
    """

    def __init__(self, repo_path: str, message: str, git_output: str = ""):
        super().__init__(f"Git repository error at {repo_path}: {message}")
        self.repo_path = repo_path
        self.message = message
        self.git_output = git_output


class GitCommandError(GitRepositoryError):
    """Raised when a git command exits non-zero.

    Attributes:
        command: The git arguments that were run
        returncode: Exit status of the git process
    """

    def __init__(self, repo_path: str, command: list, returncode: int, git_output: str = ""):
        super().__init__(
            repo_path=repo_path,
            message=f"'git {' '.join(command)}' failed with exit code {returncode}",
            git_output=git_output,
        )
        self.command = command
        self.returncode = returncode
