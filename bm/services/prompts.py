"""Interaction port.

Services never read the terminal themselves: every operator decision goes
through a Prompter. Calls block until the operator answers.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from bm.core.model import FeatureStatus

__all__ = ["ConflictAction", "DirtyTreeAction", "Prompter"]


class ConflictAction(Enum):
    RESOLVE = "resolve"
    ABORT = "abort"


class DirtyTreeAction(Enum):
    AUTO_COMMIT = "auto"
    MANUAL = "manual"
    CANCEL = "cancel"


class Prompter(Protocol):
    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Yes/no question."""
        ...

    def text(self, message: str, *, default: str = "") -> str:
        """Free-text answer, stripped."""
        ...

    def choose(self, message: str, options: Sequence[str]) -> int:
        """Index of the picked option. `options` is never empty."""
        ...

    def choose_status(self, message: str, current: FeatureStatus) -> FeatureStatus:
        ...

    def conflict_action(self) -> ConflictAction:
        ...

    def wait_for_conflict_resolution(self) -> None:
        """Block until the operator reports the conflicts are resolved."""
        ...

    def dirty_tree_action(self) -> DirtyTreeAction:
        ...

    def open_url(self, url: str) -> bool:
        """Open `url` in a browser. False when it could not be opened."""
        ...
