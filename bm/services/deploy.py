"""Deploy a feature branch into an environment branch.

The flow is a small state machine driven by `run_state_machine`:

    select_env -> sync -> merge -> push -> trigger -> confirm -> record -> return -> finish
                                \\-> conflict -> continue_merge -> push
                                             \\-> aborted -> return

Every precondition is checked before the first git mutation. Declining a
confirmation is a normal outcome (cancelled / unconfirmed), not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import assert_never

from bm.core.model import Env, Feature, FeatureStatus, RepoConfig, status_for_env
from bm.core.result import Err, Ok, Result
from bm.git.repository import PullOutcome, Repository
from bm.output.console import ConsoleProtocol, Style, escape_markup
from bm.output.render import env_label, styled_status
from bm.services.errors import BmError, from_git
from bm.services.preconditions import (
    checkout_target,
    require_branch,
    require_clean,
    require_config,
    require_identity,
    require_repository,
)
from bm.services.prompts import ConflictAction, Prompter
from bm.services.state_machine import FINISH, StepHandler, StepOutcome, advance, run_state_machine
from bm.store.registry import RegistryStore

__all__ = ["DeployOutcome", "DeployResult", "DeploySession", "DeployStep", "deploy"]

TOTAL_STEPS = 5


class DeployStep(StrEnum):
    SELECT_ENV = "select_env"
    SYNC = "sync"
    MERGE = "merge"
    CONFLICT = "conflict"
    CONTINUE_MERGE = "continue_merge"
    ABORTED = "aborted"
    PUSH = "push"
    TRIGGER = "trigger"
    CONFIRM = "confirm"
    RECORD = "record"
    RETURN = "return"
    FINISH = "finish"


class DeployResult(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNCONFIRMED = "unconfirmed"


@dataclass(frozen=True, slots=True)
class DeploySession:
    step: DeployStep
    repo_id: str
    source: str
    config: RepoConfig
    feature: Feature | None
    env: Env | None = None
    result: DeployResult | None = None
    new_status: FeatureStatus | None = None
    bookkeeping_failed: bool = False

    @property
    def target(self) -> str:
        assert self.env is not None
        branch = self.config.branch(self.env)
        assert branch is not None
        return branch

    @property
    def url(self) -> str:
        assert self.env is not None
        url = self.config.url(self.env)
        assert url is not None
        return url


@dataclass(frozen=True, slots=True)
class DeployOutcome:
    result: DeployResult
    env: Env | None = None
    new_status: FeatureStatus | None = None
    bookkeeping_failed: bool = False


CANCELLED = DeployOutcome(result=DeployResult.CANCELLED)


def deploy(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
) -> Result[DeployOutcome, BmError]:
    """Merge the current branch into a chosen environment branch and push it."""
    checked = require_repository(repo)
    if isinstance(checked, Err):
        return checked
    clean = require_clean(repo, "deploying")
    if isinstance(clean, Err):
        return clean

    repo_id = require_identity(repo)
    if isinstance(repo_id, Err):
        return repo_id
    config = require_config(store, repo_id.value)
    if isinstance(config, Err):
        return config
    source = require_branch(repo)
    if isinstance(source, Err):
        return source

    if source.value in config.value.environment_branches():
        return Err(
            BmError(
                kind="cannot_deploy_environment_branch",
                message=f"'{source.value}' is an environment branch",
                hint="check out a feature branch before deploying",
            )
        )
    if not config.value.deployable_envs():
        return Err(
            BmError(
                kind="no_environment_configured",
                message="no environment has both a branch and a deploy URL",
                hint="run: bm set",
            )
        )

    console.info(f"repository: {repo_id.value}")
    console.info(f"branch: {source.value}")

    feature = store.get_feature(repo_id.value, source.value)
    if feature is None:
        console.warning(f"branch '{source.value}' is not tracked by bm")
        if not prompter.confirm("Deploy it anyway?", default=False):
            console.print("Deploy cancelled", Style.DIM)
            return Ok(CANCELLED)
    else:
        _print_feature(feature, console)

    flow = _DeployFlow(repo=repo, store=store, console=console, prompter=prompter)
    session = DeploySession(
        step=DeployStep.SELECT_ENV,
        repo_id=repo_id.value,
        source=source.value,
        config=config.value,
        feature=feature,
    )

    final = run_state_machine(
        initial_state=session,
        get_step=lambda s: s.step.value,
        handlers=flow.handlers(),
    )
    if isinstance(final, Err):
        return final

    done = final.value
    return Ok(
        DeployOutcome(
            result=done.result or DeployResult.CANCELLED,
            env=done.env,
            new_status=done.new_status,
            bookkeeping_failed=done.bookkeeping_failed,
        )
    )


def _print_feature(feature: Feature, console: ConsoleProtocol) -> None:
    console.print(f"  status: {styled_status(feature.status)}")
    console.print(f"  doc:    {escape_markup(feature.doc) or '(none)'}")


_Step = Result[StepOutcome[DeploySession], BmError]


class _DeployFlow:
    def __init__(
        self,
        *,
        repo: Repository,
        store: RegistryStore,
        console: ConsoleProtocol,
        prompter: Prompter,
    ) -> None:
        self._repo = repo
        self._store = store
        self._console = console
        self._prompter = prompter

    def handlers(self) -> dict[str, StepHandler[DeploySession]]:
        return {
            DeployStep.SELECT_ENV.value: self._select_env,
            DeployStep.SYNC.value: self._sync,
            DeployStep.MERGE.value: self._merge,
            DeployStep.CONFLICT.value: self._conflict,
            DeployStep.CONTINUE_MERGE.value: self._continue_merge,
            DeployStep.ABORTED.value: self._aborted,
            DeployStep.PUSH.value: self._push,
            DeployStep.TRIGGER.value: self._trigger,
            DeployStep.CONFIRM.value: self._confirm,
            DeployStep.RECORD.value: self._record,
            DeployStep.RETURN.value: self._return,
            DeployStep.FINISH.value: self._finish,
        }

    def _select_env(self, s: DeploySession) -> _Step:
        envs = s.config.deployable_envs()
        labels = [f"{env_label(env)} ({env.value}) -> {s.config.branch(env)}" for env in envs]
        env = envs[self._prompter.choose("Deploy to which environment?", labels)]
        s = replace(s, env=env)

        self._console.header(f"Deploy {s.source} to {env_label(env)}")
        self._console.print(f"  branch: {s.target}")
        self._console.print(f"  url:    {escape_markup(s.url)}")

        if env is Env.PROD:
            if not self._prompter.confirm(
                f"This merges into '{s.target}' and deploys to production. Continue?",
                default=False,
            ):
                return self._cancel(s)
            if s.feature is not None and s.feature.status is not FeatureStatus.DEPLOYED_STAGING:
                self._console.warning(
                    f"'{s.source}' is {s.feature.status.value}; deploying to staging first is recommended"
                )
                if not self._prompter.confirm("Deploy to production anyway?", default=False):
                    return self._cancel(s)

        return Ok(advance(replace(s, step=DeployStep.SYNC)))

    def _sync(self, s: DeploySession) -> _Step:
        self._console.step(1, TOTAL_STEPS, f"updating {s.target}")

        fetched = self._repo.fetch()
        if isinstance(fetched, Err):
            return Err(from_git(fetched.error, "sync_failed"))

        checked_out = checkout_target(self._repo, s.target)
        if isinstance(checked_out, Err):
            error = checked_out.error
            if error.kind == "git_failed":
                return Err(replace(error, kind="sync_failed"))
            return checked_out

        pulled = self._repo.pull(s.target)
        match pulled:
            case Ok(PullOutcome.UP_TO_DATE):
                self._console.success(f"{s.target} is up to date")
            case Ok(_):
                self._console.success(f"{s.target} updated from {self._repo.remote}")
            case Err(e):
                if self._repo.is_merging():
                    self._repo.abort_merge()
                return Err(
                    BmError(
                        kind="sync_failed",
                        message=f"git pull failed: {e.message}",
                        hint=f"check the network, then run: git pull {self._repo.remote} {s.target}",
                    )
                )

        return Ok(advance(replace(s, step=DeployStep.MERGE)))

    def _merge(self, s: DeploySession) -> _Step:
        self._console.step(2, TOTAL_STEPS, f"merging {s.source} into {s.target}")

        merged = self._repo.merge(s.source)
        if isinstance(merged, Ok):
            self._console.success("merged")
            return Ok(advance(replace(s, step=DeployStep.PUSH)))

        if self._repo.has_merge_conflicts():
            return Ok(advance(replace(s, step=DeployStep.CONFLICT)))
        if self._repo.is_merging():
            self._repo.abort_merge()

        return Err(
            BmError(
                kind="unrecoverable_merge_failure",
                message=f"git merge failed: {merged.error.message}",
                hint=f"you are on '{s.target}'; inspect it with: git status",
            )
        )

    def _conflict(self, s: DeploySession) -> _Step:
        self._console.warning(f"merge conflict between {s.source} and {s.target}")
        status = self._repo.status()
        if isinstance(status, Ok):
            for entry in status.value.conflicted:
                self._console.print(f"  {entry.xy} {escape_markup(entry.path)}", Style.DIM)

        action = self._prompter.conflict_action()
        match action:
            case ConflictAction.ABORT:
                aborted = self._repo.abort_merge()
                if isinstance(aborted, Err):
                    return Err(from_git(aborted.error, "unrecoverable_merge_failure"))
                return Ok(advance(replace(s, step=DeployStep.ABORTED)))
            case ConflictAction.RESOLVE:
                return Ok(advance(replace(s, step=DeployStep.CONTINUE_MERGE)))
            case _:
                assert_never(action)

    def _continue_merge(self, s: DeploySession) -> _Step:
        self._console.info("resolve the conflicts and stage the files (git add), then continue")
        self._prompter.wait_for_conflict_resolution()

        committed = self._repo.continue_merge()
        if isinstance(committed, Err):
            self._repo.abort_merge()
            return Err(
                BmError(
                    kind="continue_merge_failed",
                    message=f"could not conclude the merge: {committed.error.message}",
                    hint="check for unresolved or unstaged conflicts; the merge was aborted",
                )
            )

        self._console.success("conflicts resolved, merge concluded")
        return Ok(advance(replace(s, step=DeployStep.PUSH)))

    def _aborted(self, s: DeploySession) -> _Step:
        self._console.print("Merge aborted, deploy cancelled", Style.DIM)
        return Ok(advance(replace(s, step=DeployStep.RETURN, result=DeployResult.CANCELLED)))

    def _push(self, s: DeploySession) -> _Step:
        self._console.step(3, TOTAL_STEPS, f"pushing {s.target}")

        pushed = self._repo.push(s.target)
        if isinstance(pushed, Err):
            return Err(
                BmError(
                    kind="push_failed",
                    message=f"git push failed: {pushed.error.message}",
                    hint=f"the remote may have new commits; update '{s.target}' and push manually",
                )
            )

        self._console.success("pushed")
        return Ok(advance(replace(s, step=DeployStep.TRIGGER)))

    def _trigger(self, s: DeploySession) -> _Step:
        self._console.step(4, TOTAL_STEPS, "opening the deploy page")
        if self._prompter.open_url(s.url):
            self._console.success("deploy page opened in the browser")
        else:
            self._console.warning("could not open a browser, visit:")
            self._console.print(f"  {escape_markup(s.url)}")
        return Ok(advance(replace(s, step=DeployStep.CONFIRM)))

    def _confirm(self, s: DeploySession) -> _Step:
        if self._prompter.confirm("Has the deploy finished?", default=False):
            return Ok(advance(replace(s, step=DeployStep.RECORD)))

        self._console.warning("deploy not confirmed, status unchanged")
        return Ok(advance(replace(s, step=DeployStep.RETURN, result=DeployResult.UNCONFIRMED)))

    def _record(self, s: DeploySession) -> _Step:
        assert s.env is not None
        self._console.step(5, TOTAL_STEPS, "recording the deploy")
        s = replace(s, step=DeployStep.RETURN, result=DeployResult.COMPLETED)

        if s.feature is None:
            self._console.warning(f"'{s.source}' is not tracked, nothing recorded")
            self._console.success("deploy complete")
            return Ok(advance(s))

        status = status_for_env(s.env)
        updated = self._store.update_feature(s.repo_id, s.source, status=status)
        if isinstance(updated, Ok):
            updated = self._store.append_deploy_history(s.repo_id, s.source, s.env)

        if isinstance(updated, Err):
            self._console.warning(
                f"deploy succeeded but the registry was not updated: {escape_markup(updated.error.message)}"
            )
            if updated.error.hint:
                self._console.print(f"hint: {escape_markup(updated.error.hint)}", Style.DIM)
            return Ok(advance(replace(s, bookkeeping_failed=True)))

        self._console.success(f"status is now {styled_status(status)}")
        self._console.success("deploy complete")
        return Ok(advance(replace(s, new_status=status)))

    def _return(self, s: DeploySession) -> _Step:
        done = replace(s, step=DeployStep.FINISH)
        if not self._prompter.confirm(f"Switch back to '{s.source}'?", default=True):
            self._console.print(f"Staying on {s.target}", Style.DIM)
            return Ok(advance(done))

        switched = self._repo.checkout(s.source)
        if isinstance(switched, Err):
            self._console.warning(f"could not switch back: {escape_markup(switched.error.message)}")
            self._console.print(f"  still on {s.target}; run: git checkout {s.source}", Style.DIM)
        else:
            self._console.success(f"back on {s.source}")
        return Ok(advance(done))

    def _finish(self, s: DeploySession) -> _Step:
        return Ok(FINISH)

    def _cancel(self, s: DeploySession) -> _Step:
        self._console.print("Deploy cancelled", Style.DIM)
        return Ok(advance(replace(s, step=DeployStep.FINISH, result=DeployResult.CANCELLED)))
