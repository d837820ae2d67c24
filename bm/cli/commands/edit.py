from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.core.model import FeatureStatus
from bm.services.features import edit_feature


def edit(
    branch: str = typer.Argument(..., help="Tracked branch to edit"),
    doc: str | None = typer.Option(None, "--doc", help="New document link"),
    status: FeatureStatus | None = typer.Option(None, "--status", help="New status"),
) -> None:
    """Change the document link or status of a tracked branch.

    Without options both are asked for. This is the only way to mark a
    feature as done.
    """
    ctx = build_context()
    exit_on_error(
        edit_feature(
            repo=ctx.repo,
            store=ctx.store,
            console=ctx.console,
            prompter=ctx.prompter,
            branch=branch,
            doc=doc,
            status=status,
        ),
        ctx,
    )
