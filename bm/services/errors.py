from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from bm.git.repository import GitError
from bm.store.registry import StoreError

__all__ = ["BmError", "BmErrorKind", "from_git", "from_store"]

BmErrorKind = Literal[
    "not_a_repository",
    "dirty_working_tree",
    "no_remote",
    "repo_not_configured",
    "detached_head",
    "cannot_deploy_environment_branch",
    "no_environment_configured",
    "target_branch_missing",
    "sync_failed",
    "continue_merge_failed",
    "unrecoverable_merge_failure",
    "push_failed",
    "branch_already_exists",
    "no_candidate_branches",
    "no_tracked_features",
    "cannot_remove_current_branch",
    "feature_not_found",
    "persistence_failed",
    "git_failed",
    "invalid_input",
]


@dataclass(frozen=True, slots=True)
class BmError:
    kind: BmErrorKind
    message: str
    hint: str | None = None


def from_git(error: GitError, kind: BmErrorKind = "git_failed") -> BmError:
    """Wrap a GitError; repository-level kinds keep their own meaning."""
    match error.kind:
        case "not_a_repository":
            return BmError(
                kind="not_a_repository",
                message="not inside a git repository",
                hint="run bm from a git working tree",
            )
        case "no_remote":
            return BmError(
                kind="no_remote",
                message=error.message,
                hint="add one with: git remote add origin <url>",
            )
        case _:
            return BmError(kind=kind, message=f"git {error.operation} failed: {error.message}")


def from_store(error: StoreError) -> BmError:
    return BmError(kind="persistence_failed", message=error.message, hint=error.hint)
