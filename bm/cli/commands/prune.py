from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.features import prune_features


def prune(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Stop tracking branches that no longer exist locally or on the remote."""
    ctx = build_context()
    exit_on_error(
        prune_features(
            repo=ctx.repo,
            store=ctx.store,
            console=ctx.console,
            prompter=ctx.prompter,
            assume_yes=yes,
        ),
        ctx,
    )
