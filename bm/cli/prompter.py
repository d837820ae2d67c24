"""Terminal implementation of the Prompter port (typer prompts)."""

from __future__ import annotations

from collections.abc import Sequence

import typer

from bm.core.model import FeatureStatus
from bm.output.console import ConsoleProtocol
from bm.output.render import styled_status
from bm.services.prompts import ConflictAction, DirtyTreeAction

_CONFLICT_CHOICES = (
    (ConflictAction.RESOLVE, "Resolve the conflicts by hand, then continue"),
    (ConflictAction.ABORT, "Abort the merge and cancel the deploy"),
)

_DIRTY_CHOICES = (
    (DirtyTreeAction.AUTO_COMMIT, "Save everything in a temporary commit and switch"),
    (DirtyTreeAction.MANUAL, "Stop here, I will commit by hand"),
    (DirtyTreeAction.CANCEL, "Cancel"),
)


class TerminalPrompter:
    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def confirm(self, message: str, *, default: bool = False) -> bool:
        return typer.confirm(message, default=default)

    def text(self, message: str, *, default: str = "") -> str:
        raw: str = typer.prompt(message, default=default, show_default=bool(default))
        return raw.strip()

    def choose(self, message: str, options: Sequence[str], *, default: int = 0) -> int:
        self._console.print(message)
        for i, option in enumerate(options, start=1):
            self._console.print(f"{i:2}. {option}")

        while True:
            raw = typer.prompt("Pick a number", default=str(default + 1))
            try:
                idx = int(raw)
            except ValueError:
                self._console.error("invalid number")
                continue
            if idx < 1 or idx > len(options):
                self._console.error("out of range")
                continue
            return idx - 1

    def choose_status(self, message: str, current: FeatureStatus) -> FeatureStatus:
        statuses = list(FeatureStatus)
        idx = self.choose(
            message,
            [styled_status(s) for s in statuses],
            default=statuses.index(current),
        )
        return statuses[idx]

    def conflict_action(self) -> ConflictAction:
        idx = self.choose("How do you want to handle the conflict?", [label for _, label in _CONFLICT_CHOICES])
        return _CONFLICT_CHOICES[idx][0]

    def wait_for_conflict_resolution(self) -> None:
        typer.prompt("Press Enter once the conflicts are resolved and staged", default="", show_default=False)

    def dirty_tree_action(self) -> DirtyTreeAction:
        idx = self.choose("What should happen to the uncommitted changes?", [label for _, label in _DIRTY_CHOICES])
        return _DIRTY_CHOICES[idx][0]

    def open_url(self, url: str) -> bool:
        try:
            return typer.launch(url) == 0
        except OSError:
            return False
