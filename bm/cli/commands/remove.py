from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.features import remove_feature


def remove(
    branch: str | None = typer.Argument(None, help="Tracked branch to remove (asks when omitted)"),
) -> None:
    """Stop tracking a feature branch, optionally deleting the local branch."""
    ctx = build_context()
    exit_on_error(
        remove_feature(
            repo=ctx.repo,
            store=ctx.store,
            console=ctx.console,
            prompter=ctx.prompter,
            branch=branch,
        ),
        ctx,
    )
