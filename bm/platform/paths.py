"""User-level locations for bm's registry documents.

Location: $BM_HOME when set, otherwise ~/.bm
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

__all__ = [
    "config_file",
    "data_dir",
    "home",
    "state_file",
]

DATA_DIR_ENV = "BM_HOME"
DATA_DIR_NAME = ".bm"


@lru_cache(maxsize=1)
def home() -> Path:
    """User's home directory (USERPROFILE on Windows, HOME elsewhere)."""
    var = "USERPROFILE" if os.name == "nt" else "HOME"
    value = os.environ.get(var)
    if value:
        return Path(value)
    return Path.home()


@lru_cache(maxsize=1)
def data_dir() -> Path:
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return home() / DATA_DIR_NAME


def config_file(root: Path) -> Path:
    return root / "config.json"


def state_file(root: Path) -> Path:
    return root / "state.json"


def clear_caches() -> None:
    """Forget cached locations (tests change HOME / BM_HOME)."""
    home.cache_clear()
    data_dir.cache_clear()
