from __future__ import annotations

from bm.cli.commands._helpers import exit_on_error
from bm.cli.context import build_context
from bm.services.deploy import deploy as run_deploy


def deploy() -> None:
    """Merge the current branch into an environment branch, push and open the deploy page.

    Conflicts can be resolved by hand or aborted. The feature status only
    changes once the deploy is confirmed.
    """
    ctx = build_context()
    exit_on_error(
        run_deploy(repo=ctx.repo, store=ctx.store, console=ctx.console, prompter=ctx.prompter),
        ctx,
    )
