from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from bm.cli.prompter import TerminalPrompter
from bm.core.errors import ErrorCode
from bm.core.result import Err
from bm.git.repository import Repository
from bm.output.console import ConsoleProtocol, RichConsole, Style, escape_markup
from bm.platform.paths import data_dir
from bm.services.prompts import Prompter
from bm.store.registry import RegistryStore


@dataclass(frozen=True, slots=True)
class CLIContext:
    console: ConsoleProtocol
    store: RegistryStore
    repo: Repository
    prompter: Prompter


def build_context() -> CLIContext:
    console = RichConsole()

    store = RegistryStore.open(data_dir())
    if isinstance(store, Err):
        console.error(escape_markup(store.error.message))
        if store.error.hint:
            console.print(f"hint: {escape_markup(store.error.hint)}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return CLIContext(
        console=console,
        store=store.value,
        repo=Repository(Path.cwd()),
        prompter=TerminalPrompter(console),
    )
