"""Command-line interface for content synchronization.

This package provides the `content-sync` CLI tool for inspecting how a local
content working copy relates to the shared remote branch, pulling remote
changes, and committing content locally or to the remote.
"""

from .models import ExitCode
from .errors import CLIError, WorkingCopyNotFoundError

__all__ = [
    'ExitCode',
    'CLIError',
    'WorkingCopyNotFoundError',
]
