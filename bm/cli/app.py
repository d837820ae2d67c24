from __future__ import annotations

import typer

from bm import __version__
from bm.cli.commands.add import add
from bm.cli.commands.checkout import checkout
from bm.cli.commands.deploy import deploy
from bm.cli.commands.edit import edit
from bm.cli.commands.info import info
from bm.cli.commands.prune import prune
from bm.cli.commands.remove import remove
from bm.cli.commands.set_cmd import set_config


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Track feature branches and deploy them to environment branches.",
)


# Commands
app.command("set")(set_config)
app.command()(add)
app.command()(deploy)
app.command()(checkout)
app.command()(remove)
app.command()(edit)
app.command()(info)
app.command("list")(info)
app.command()(prune)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    pass


def main() -> None:
    app()
