"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from bm.core.errors import ErrorCode
from bm.core.result import Err, Result
from bm.output.errors import print_error
from bm.services.errors import BmError

if TYPE_CHECKING:
    from bm.cli.context import CLIContext


T = TypeVar("T")


def exit_on_error(result: Result[T, BmError], ctx: CLIContext) -> T:
    """Print the error and exit 1 if result is Err, otherwise return its value.

    Replaces the usual:
        match result:
            case Err(e):
                print_error(e, ctx.console)
                raise typer.Exit(code=int(ErrorCode.FAILURE))
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        print_error(result.error, ctx.console)
        raise typer.Exit(code=int(ErrorCode.FAILURE))
    return result.value
