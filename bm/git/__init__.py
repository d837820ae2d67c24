"""Git operations.

Usage:
    from bm.git import Repository

    repo = Repository(Path.cwd())
    match repo.current_branch():
        case Ok(branch):
            print(f"on {branch}")
        case Err(e):
            print(e.message)
"""

from bm.git.remote import derive_identity
from bm.git.repository import (
    CONFLICT_MARKERS,
    DETACHED_HEAD,
    GitError,
    GitStatus,
    PullOutcome,
    Repository,
    StatusEntry,
)

__all__ = [
    "CONFLICT_MARKERS",
    "DETACHED_HEAD",
    "GitError",
    "GitStatus",
    "PullOutcome",
    "Repository",
    "StatusEntry",
    "derive_identity",
]
