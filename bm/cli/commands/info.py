from __future__ import annotations

import typer

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.core.model import FeatureStatus
from bm.services.features import list_features


def info(
    status: FeatureStatus | None = typer.Option(None, "--status", help="Only show this status"),
) -> None:
    """List tracked feature branches with their status and last deploy."""
    ctx = build_context()
    exit_on_error(
        list_features(repo=ctx.repo, store=ctx.store, console=ctx.console, status=status),
        ctx,
    )
