from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.features import checkout_feature


def checkout(
    branch: str | None = typer.Argument(None, help="Tracked branch to switch to (asks when omitted)"),
) -> None:
    """Switch to another tracked feature branch."""
    ctx = build_context()
    exit_on_error(
        checkout_feature(
            repo=ctx.repo,
            store=ctx.store,
            console=ctx.console,
            prompter=ctx.prompter,
            branch=branch,
        ),
        ctx,
    )
