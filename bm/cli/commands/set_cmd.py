from __future__ import annotations

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.setup import configure_repo


def set_config() -> None:
    """Configure environment branches and deploy URLs for this repository."""
    ctx = build_context()
    exit_on_error(
        configure_repo(repo=ctx.repo, store=ctx.store, console=ctx.console, prompter=ctx.prompter),
        ctx,
    )
