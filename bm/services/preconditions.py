"""Checks shared by the operations before they touch git or the registry."""

from __future__ import annotations

from bm.core.model import RepoConfig
from bm.core.result import Err, Ok, Result
from bm.git.repository import DETACHED_HEAD, Repository
from bm.services.errors import BmError, from_git
from bm.store.registry import RegistryStore

__all__ = [
    "checkout_target",
    "require_branch",
    "require_clean",
    "require_config",
    "require_identity",
    "require_repository",
]


def require_repository(repo: Repository) -> Result[None, BmError]:
    if repo.is_repository():
        return Ok(None)
    return Err(
        BmError(
            kind="not_a_repository",
            message="not inside a git repository",
            hint="run bm from a git working tree",
        )
    )


def require_clean(repo: Repository, action: str) -> Result[None, BmError]:
    dirty = repo.has_uncommitted_changes()
    if isinstance(dirty, Err):
        return Err(from_git(dirty.error))
    if dirty.value:
        return Err(
            BmError(
                kind="dirty_working_tree",
                message="working tree has uncommitted changes",
                hint=f"commit or stash them before {action}",
            )
        )
    return Ok(None)


def require_identity(repo: Repository) -> Result[str, BmError]:
    return repo.identity().map_err(from_git)


def require_config(store: RegistryStore, repo_id: str) -> Result[RepoConfig, BmError]:
    config = store.get_config(repo_id)
    if config is None:
        return Err(
            BmError(
                kind="repo_not_configured",
                message=f"repository {repo_id} is not configured",
                hint="run: bm set",
            )
        )
    return Ok(config)


def require_branch(repo: Repository) -> Result[str, BmError]:
    """Current branch; detached HEAD is an error."""
    branch = repo.current_branch()
    if isinstance(branch, Err):
        return Err(from_git(branch.error))
    if branch.value == DETACHED_HEAD:
        return Err(
            BmError(
                kind="detached_head",
                message="HEAD is detached",
                hint="check out a branch first",
            )
        )
    return Ok(branch.value)


def checkout_target(repo: Repository, branch: str) -> Result[None, BmError]:
    """Check out `branch`, creating it from the remote when only that exists.

    Expects a fetch to have happened already.
    """
    if repo.has_local_branch(branch):
        return repo.checkout(branch).map_err(from_git)

    if not repo.has_remote_branch(branch):
        return Err(
            BmError(
                kind="target_branch_missing",
                message=f"branch '{branch}' exists neither locally nor on {repo.remote}",
                hint="create it or fix the configuration with: bm set",
            )
        )
    return repo.checkout_remote(branch).map_err(from_git)
