"""Tracked feature branches: add, remove, checkout, edit, list, prune."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import assert_never

from bm.core.model import Feature, FeatureStatus, RepoConfig
from bm.core.result import Err, Ok, Result
from bm.git.repository import DETACHED_HEAD, Repository
from bm.output.console import ConsoleProtocol, Style, escape_markup
from bm.output.render import env_label, format_timestamp, last_deploy_text, status_label, styled_status
from bm.services.errors import BmError, from_git, from_store
from bm.services.preconditions import (
    checkout_target,
    require_clean,
    require_config,
    require_identity,
    require_repository,
)
from bm.services.prompts import DirtyTreeAction, Prompter
from bm.store.registry import RegistryStore

__all__ = [
    "FeatureListing",
    "FeatureView",
    "add_existing_feature",
    "add_feature",
    "add_new_feature",
    "checkout_feature",
    "edit_feature",
    "list_features",
    "prune_features",
    "remove_feature",
]

SAVE_COMMIT_PREFIX = "tmp: save work before switching branches"


def _tracked_repo(repo: Repository) -> Result[str, BmError]:
    checked = require_repository(repo)
    if isinstance(checked, Err):
        return checked
    return require_identity(repo)


def _configured_repo(repo: Repository, store: RegistryStore, action: str) -> Result[tuple[str, RepoConfig], BmError]:
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id
    clean = require_clean(repo, action)
    if isinstance(clean, Err):
        return clean
    config = require_config(store, repo_id.value)
    if isinstance(config, Err):
        return config
    return Ok((repo_id.value, config.value))


def _new_feature(store: RegistryStore, branch: str, doc: str, base_branch: str) -> Feature:
    now = store.now()
    return Feature(
        branch=branch,
        doc=doc,
        base_branch=base_branch,
        status=FeatureStatus.DEVELOPING,
        created_at=now,
        updated_at=now,
    )


def _confirm_overwrite(
    store: RegistryStore,
    repo_id: str,
    branch: str,
    console: ConsoleProtocol,
    prompter: Prompter,
) -> bool:
    existing = store.get_feature(repo_id, branch)
    if existing is None:
        return True
    console.warning(f"'{branch}' is already tracked")
    console.print(f"  status: {styled_status(existing.status)}", Style.DIM)
    console.print(f"  doc:    {escape_markup(existing.doc) or '(none)'}", Style.DIM)
    return prompter.confirm("Overwrite the existing record?", default=False)


def _print_feature(feature: Feature, console: ConsoleProtocol) -> None:
    console.print(f"  branch: [bold]{feature.branch}[/bold]")
    console.print(f"  base:   {feature.base_branch}")
    console.print(f"  status: {styled_status(feature.status)}")
    console.print(f"  doc:    {escape_markup(feature.doc) or '(none)'}")


def _print_history(feature: Feature, console: ConsoleProtocol) -> None:
    if not feature.deploy_history:
        console.print("  deploys: none", Style.DIM)
        return
    console.print(f"  deploys: {len(feature.deploy_history)}")
    for record in feature.deploy_history:
        console.print(f"    {format_timestamp(record.at)}  {env_label(record.env)}")


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


def add_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
    existing: bool | None = None,
) -> Result[Feature | None, BmError]:
    """Create or attach a feature branch; asks for the mode when `existing` is None.

    Returns Ok(None) when the operator cancels.
    """
    if existing is None:
        mode = prompter.choose(
            "What do you want to add?",
            ["Create a new branch", "Track an existing local branch"],
        )
        existing = mode == 1

    if existing:
        return add_existing_feature(repo=repo, store=store, console=console, prompter=prompter)
    return add_new_feature(repo=repo, store=store, console=console, prompter=prompter)


def add_new_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
) -> Result[Feature | None, BmError]:
    """Create a branch from the production branch and track it."""
    ready = _configured_repo(repo, store, "adding a feature branch")
    if isinstance(ready, Err):
        return ready
    repo_id, config = ready.value
    console.info(f"repository: {repo_id}")

    branch = prompter.text("New branch name")
    while not repo.is_valid_branch_name(branch):
        console.error(f"invalid branch name: {branch!r}")
        branch = prompter.text("New branch name")
    doc = prompter.text("Document link (optional)")

    on_local = repo.has_local_branch(branch)
    on_remote = repo.has_remote_branch(branch)
    if on_local or on_remote:
        where = " and ".join(
            name for name, present in (("locally", on_local), (repo.remote, on_remote)) if present
        )
        return Err(
            BmError(
                kind="branch_already_exists",
                message=f"branch '{branch}' already exists {where}",
                hint="track it instead with: bm add --existing",
            )
        )

    if not _confirm_overwrite(store, repo_id, branch, console, prompter):
        console.print("Add cancelled", Style.DIM)
        return Ok(None)

    base = config.prod_branch
    console.info(f"updating {base}")
    fetched = repo.fetch()
    if isinstance(fetched, Err):
        return Err(from_git(fetched.error, "sync_failed"))
    checked_out = checkout_target(repo, base)
    if isinstance(checked_out, Err):
        return checked_out
    pulled = repo.pull(base)
    if isinstance(pulled, Err):
        if repo.is_merging():
            aborted = repo.abort_merge()
            if isinstance(aborted, Err):
                return Err(from_git(aborted.error, "sync_failed"))
        console.warning(f"could not pull {base}, branching from the local copy: {escape_markup(pulled.error.message)}")

    created = repo.create_and_checkout(branch, base)
    if isinstance(created, Err):
        return Err(from_git(created.error))
    console.success(f"created and switched to {branch}")

    feature = _new_feature(store, branch, doc, base)
    saved = store.upsert_feature(repo_id, feature)
    if isinstance(saved, Err):
        return Err(
            BmError(
                kind="persistence_failed",
                message=f"branch created but not tracked: {saved.error.message}",
                hint="fix the problem, then run: bm add --existing",
            )
        )

    console.success("feature branch tracked")
    _print_feature(feature, console)
    return Ok(feature)


def add_existing_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
) -> Result[Feature | None, BmError]:
    """Track a local branch that already exists."""
    ready = _configured_repo(repo, store, "adding a feature branch")
    if isinstance(ready, Err):
        return ready
    repo_id, config = ready.value
    console.info(f"repository: {repo_id}")

    local = repo.local_branches()
    if isinstance(local, Err):
        return Err(from_git(local.error))
    candidates = sorted(local.value - config.environment_branches())
    if not candidates:
        return Err(
            BmError(
                kind="no_candidate_branches",
                message="no local branches besides the environment branches",
                hint="create one with: bm add",
            )
        )

    branch = candidates[prompter.choose("Branch to track", candidates)]
    doc = prompter.text("Document link (optional)")

    if not _confirm_overwrite(store, repo_id, branch, console, prompter):
        console.print("Add cancelled", Style.DIM)
        return Ok(None)

    current = repo.current_branch().unwrap_or(DETACHED_HEAD)
    if current != branch:
        switched = repo.checkout(branch)
        if isinstance(switched, Err):
            return Err(from_git(switched.error))
        console.success(f"switched to {branch}")

    feature = _new_feature(store, branch, doc, config.prod_branch)
    saved = store.upsert_feature(repo_id, feature)
    if isinstance(saved, Err):
        return Err(from_store(saved.error))

    console.success("feature branch tracked")
    _print_feature(feature, console)
    return Ok(feature)


# ---------------------------------------------------------------------------
# remove
# ---------------------------------------------------------------------------


def remove_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
    branch: str | None = None,
) -> Result[Feature | None, BmError]:
    """Stop tracking a feature, optionally deleting its local branch.

    Deleting the branch and removing the record are independent: a failed
    deletion is only a warning.
    """
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id

    features = store.list_features(repo_id.value)
    if not features:
        return Err(
            BmError(
                kind="no_tracked_features",
                message="no feature branches are tracked in this repository",
                hint="track one with: bm add",
            )
        )

    if branch is None:
        labels = [f"{f.branch} ({status_label(f.status)})" for f in features]
        feature = features[prompter.choose("Feature to remove", labels)]
    else:
        found = store.get_feature(repo_id.value, branch)
        if found is None:
            return Err(_not_tracked(branch))
        feature = found

    if repo.current_branch().unwrap_or(DETACHED_HEAD) == feature.branch:
        return Err(
            BmError(
                kind="cannot_remove_current_branch",
                message=f"'{feature.branch}' is checked out",
                hint="switch to another branch first",
            )
        )

    console.header(f"Feature {feature.branch}")
    _print_feature(feature, console)
    _print_history(feature, console)

    if not prompter.confirm(f"Stop tracking '{feature.branch}'?", default=False):
        console.print("Remove cancelled", Style.DIM)
        return Ok(None)

    if prompter.confirm(f"Also delete the local branch '{feature.branch}'?", default=False):
        if not repo.has_local_branch(feature.branch):
            console.warning(f"no local branch '{feature.branch}', nothing to delete")
        else:
            deleted = repo.delete_branch(feature.branch)
            if isinstance(deleted, Err):
                console.warning(f"could not delete '{feature.branch}': {escape_markup(deleted.error.message)}")
            else:
                console.success(f"deleted local branch {feature.branch}")

    removed = store.remove_feature(repo_id.value, feature.branch)
    if isinstance(removed, Err):
        return Err(from_store(removed.error))

    console.success(f"'{feature.branch}' is no longer tracked")
    return Ok(feature)


# ---------------------------------------------------------------------------
# checkout
# ---------------------------------------------------------------------------


def checkout_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
    branch: str | None = None,
) -> Result[str | None, BmError]:
    """Switch to another tracked branch. Never discards local changes.

    Returns Ok(branch) after switching, Ok(None) when nothing was switched.
    """
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id
    current = repo.current_branch()
    if isinstance(current, Err):
        return Err(from_git(current.error))

    tracked = [f.branch for f in store.list_features(repo_id.value)]
    if not tracked:
        console.info("no feature branches are tracked yet; add one with: bm add")
        return Ok(None)

    available = [name for name in tracked if name != current.value]
    if branch is None:
        if not available:
            console.info(f"no other tracked branch besides {current.value}")
            return Ok(None)
        target = available[prompter.choose(f"Switch from {current.value} to", available)]
    elif branch == current.value:
        console.info(f"already on {branch}")
        return Ok(None)
    elif branch not in available:
        return Err(_not_tracked(branch))
    else:
        target = branch

    dirty = repo.has_uncommitted_changes()
    if isinstance(dirty, Err):
        return Err(from_git(dirty.error))
    if dirty.value:
        console.warning(f"{current.value} has uncommitted changes")
        action = prompter.dirty_tree_action()
        match action:
            case DirtyTreeAction.AUTO_COMMIT:
                message = f"{SAVE_COMMIT_PREFIX} ({datetime.now():%Y-%m-%d %H:%M:%S})"
                committed = repo.commit_all(message)
                if isinstance(committed, Err):
                    return Err(from_git(committed.error))
                console.success("changes saved in a temporary commit")
                console.print(f"  {message}", Style.DIM)
            case DirtyTreeAction.MANUAL:
                console.info("commit your changes (git add, git commit), then run bm checkout again")
                return Ok(None)
            case DirtyTreeAction.CANCEL:
                console.print("Checkout cancelled", Style.DIM)
                return Ok(None)
            case _:
                assert_never(action)

    switched = checkout_target(repo, target)
    if isinstance(switched, Err):
        return switched

    console.success(f"switched to {target}")
    return Ok(target)


# ---------------------------------------------------------------------------
# edit
# ---------------------------------------------------------------------------


def edit_feature(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
    branch: str,
    doc: str | None = None,
    status: FeatureStatus | None = None,
) -> Result[Feature, BmError]:
    """Update the doc link and/or status; asks for both when neither is given."""
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id

    feature = store.get_feature(repo_id.value, branch)
    if feature is None:
        return Err(_not_tracked(branch))

    if doc is None and status is None:
        doc = prompter.text("Document link", default=feature.doc)
        status = prompter.choose_status("Status", feature.status)

    updated = store.update_feature(repo_id.value, branch, doc=doc, status=status)
    if isinstance(updated, Err):
        return Err(from_store(updated.error))

    result = store.get_feature(repo_id.value, branch)
    assert result is not None
    console.success(f"updated {branch}")
    _print_feature(result, console)
    return Ok(result)


# ---------------------------------------------------------------------------
# info / list
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FeatureView:
    feature: Feature
    is_current: bool
    missing: bool


@dataclass(frozen=True, slots=True)
class FeatureListing:
    repo_id: str
    views: tuple[FeatureView, ...]
    total: int

    def counts(self) -> Counter[FeatureStatus]:
        return Counter(v.feature.status for v in self.views)


def list_features(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    status: FeatureStatus | None = None,
) -> Result[FeatureListing, BmError]:
    """Print tracked features with their status and a per-status summary.

    A feature is marked missing when its branch exists neither locally nor
    on the remote (deleted or merged outside bm).
    """
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id

    current = repo.current_branch().unwrap_or(DETACHED_HEAD)
    features = store.list_features(repo_id.value)

    local = repo.local_branches()
    remote = repo.remote_branches()
    known: set[str] | None = None
    if isinstance(local, Ok):
        known = local.value | remote.unwrap_or(set())

    views = tuple(
        FeatureView(
            feature=f,
            is_current=f.branch == current,
            missing=known is not None and f.branch not in known,
        )
        for f in features
        if status is None or f.status is status
    )
    listing = FeatureListing(repo_id=repo_id.value, views=views, total=len(features))

    console.info(f"repository: {repo_id.value}")
    if not features:
        console.print("No feature branches tracked yet. Add one with: bm add", Style.DIM)
        return Ok(listing)
    if not views:
        assert status is not None
        console.print(f"No feature branches with status {status.value}", Style.DIM)
        return Ok(listing)

    console.header("Feature branches")
    for index, view in enumerate(views, start=1):
        _print_view(index, view, console)

    console.print("-" * 60, Style.DIM)
    console.print(f"total: {len(views)}")
    for feature_status, count in listing.counts().items():
        console.print(f"  {styled_status(feature_status)}: {count}")
    return Ok(listing)


def _print_view(index: int, view: FeatureView, console: ConsoleProtocol) -> None:
    f = view.feature
    marker = "[green]*[/green]" if view.is_current else " "
    name = f"[bold]{f.branch}[/bold]"
    if view.missing:
        name += " [red](missing)[/red]"
    console.print(f"{marker} {index:>2} {name}")
    console.print(f"      status:  {styled_status(f.status)}")
    console.print(f"      doc:     {escape_markup(f.doc) or '(none)'}")
    console.print(f"      base:    {f.base_branch}")
    console.print(f"      created: {format_timestamp(f.created_at)}")
    console.print(f"      updated: {format_timestamp(f.updated_at)}")
    console.print(f"      deploy:  {last_deploy_text(f)}")


# ---------------------------------------------------------------------------
# prune
# ---------------------------------------------------------------------------


def prune_features(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
    assume_yes: bool = False,
) -> Result[list[str], BmError]:
    """Drop records whose branch is gone both locally and on the remote."""
    repo_id = _tracked_repo(repo)
    if isinstance(repo_id, Err):
        return repo_id

    fetched = repo.fetch(prune=True)
    if isinstance(fetched, Err):
        return Err(from_git(fetched.error, "sync_failed"))

    local = repo.local_branches()
    if isinstance(local, Err):
        return Err(from_git(local.error))
    remote = repo.remote_branches()
    if isinstance(remote, Err):
        return Err(from_git(remote.error))
    known = local.value | remote.value

    stale = [f.branch for f in store.list_features(repo_id.value) if f.branch not in known]
    if not stale:
        console.success("every tracked branch still exists")
        return Ok([])

    console.warning("these tracked branches no longer exist locally or remotely:")
    for name in stale:
        console.print(f"  {name}")
    if not assume_yes and not prompter.confirm(f"Stop tracking {len(stale)} branch(es)?", default=False):
        console.print("Prune cancelled", Style.DIM)
        return Ok([])

    for name in stale:
        removed = store.remove_feature(repo_id.value, name)
        if isinstance(removed, Err):
            return Err(from_store(removed.error))

    console.success(f"pruned {len(stale)} record(s)")
    return Ok(stale)


def _not_tracked(branch: str) -> BmError:
    return BmError(
        kind="feature_not_found",
        message=f"'{branch}' is not a tracked feature branch",
        hint="list tracked branches with: bm info",
    )
