from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.features import add_feature


def add(
    existing: bool | None = typer.Option(
        None,
        "--existing/--new",
        help="Track an existing local branch, or create a new one (asks when omitted)",
    ),
) -> None:
    """Create a feature branch from the production branch, or track an existing one."""
    ctx = build_context()
    exit_on_error(
        add_feature(
            repo=ctx.repo,
            store=ctx.store,
            console=ctx.console,
            prompter=ctx.prompter,
            existing=existing,
        ),
        ctx,
    )
