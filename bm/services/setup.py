"""Configure environment branches and deploy URLs for a repository."""

from __future__ import annotations

from bm.core.model import ENV_ORDER, Env, RepoConfig
from bm.core.result import Err, Ok, Result
from bm.git.repository import Repository
from bm.output.console import ConsoleProtocol, Style, escape_markup
from bm.output.render import env_label
from bm.services.errors import BmError, from_store
from bm.services.preconditions import require_identity, require_repository
from bm.services.prompts import Prompter
from bm.store.registry import RegistryStore

__all__ = ["configure_repo", "is_deploy_url", "print_config"]

URL_SCHEMES = ("http://", "https://")


def is_deploy_url(url: str) -> bool:
    return url.startswith(URL_SCHEMES) and len(url) > len("https://")


def print_config(config: RepoConfig, console: ConsoleProtocol) -> None:
    for env in ENV_ORDER:
        branch = config.branch(env)
        url = config.url(env)
        if branch is None and url is None:
            console.print(f"  {env_label(env):<10} (not configured)", Style.DIM)
            continue
        console.print(f"  {env_label(env):<10} {escape_markup(branch or '-')}  {escape_markup(url or '-')}")


def _ask_branch(env: Env, default: str | None, console: ConsoleProtocol, prompter: Prompter) -> str:
    while True:
        branch = prompter.text(f"{env_label(env)} branch", default=default or "")
        if branch:
            return branch
        console.error("branch name cannot be empty")


def _ask_url(env: Env, default: str | None, console: ConsoleProtocol, prompter: Prompter) -> str:
    while True:
        url = prompter.text(f"{env_label(env)} deploy URL", default=default or "")
        if is_deploy_url(url):
            return url
        console.error("URL must start with http:// or https://")


def configure_repo(
    *,
    repo: Repository,
    store: RegistryStore,
    console: ConsoleProtocol,
    prompter: Prompter,
) -> Result[RepoConfig | None, BmError]:
    """Ask for the environment branches and URLs and store them.

    test and pre are optional (both branch and URL, or neither); prod is
    required. Returns Ok(None) when the operator keeps the existing config.
    """
    checked = require_repository(repo)
    if isinstance(checked, Err):
        return checked
    repo_id = require_identity(repo)
    if isinstance(repo_id, Err):
        return repo_id

    console.info(f"repository: {repo_id.value}")
    existing = store.get_config(repo_id.value)
    if existing is not None:
        console.header("Current configuration")
        print_config(existing, console)
        if not prompter.confirm("Update it?", default=False):
            console.print("Configuration unchanged", Style.DIM)
            return Ok(None)

    pairs: dict[Env, tuple[str | None, str | None]] = {}
    for env in (Env.TEST, Env.PRE):
        old_branch = existing.branch(env) if existing else None
        old_url = existing.url(env) if existing else None
        if prompter.confirm(f"Configure the {env_label(env)} environment?", default=old_branch is not None):
            pairs[env] = (
                _ask_branch(env, old_branch, console, prompter),
                _ask_url(env, old_url, console, prompter),
            )
        else:
            pairs[env] = (None, None)

    config = RepoConfig(
        prod_branch=_ask_branch(Env.PROD, existing.prod_branch if existing else None, console, prompter),
        prod_url=_ask_url(Env.PROD, existing.prod_url if existing else None, console, prompter),
        test_branch=pairs[Env.TEST][0],
        test_url=pairs[Env.TEST][1],
        pre_branch=pairs[Env.PRE][0],
        pre_url=pairs[Env.PRE][1],
    )

    saved = store.set_config(repo_id.value, config)
    if isinstance(saved, Err):
        return Err(from_store(saved.error))

    console.success("configuration saved")
    print_config(config, console)
    return Ok(config)
