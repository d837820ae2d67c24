"""Filesystem helpers for the registry documents."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_json", "read_json"]


def atomic_write_json(path: Path, payload: object) -> None:
    """Write `payload` as pretty-printed UTF-8 JSON, replacing `path` atomically.

    Raises OSError when the directory or file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def read_json(path: Path) -> object | None:
    """Parse a JSON file; None if it does not exist.

    Raises OSError or ValueError (json.JSONDecodeError, UnicodeDecodeError).
    """
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))
