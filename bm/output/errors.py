"""Error presentation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bm.output.console import Style, escape_markup

if TYPE_CHECKING:
    from bm.output.console import ConsoleProtocol
    from bm.services.errors import BmError

__all__ = ["print_error"]


def print_error(error: BmError, console: ConsoleProtocol) -> None:
    console.error(escape_markup(error.message))
    if error.hint:
        console.print(f"hint: {escape_markup(error.hint)}", Style.DIM)
