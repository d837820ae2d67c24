"""Platform helpers: processes, files, user paths."""

from .files import atomic_write_json, read_json
from .paths import config_file, data_dir, state_file
from .process import ProcessError, ProcessResult, Runner, run

__all__ = [
    "ProcessError",
    "ProcessResult",
    "Runner",
    "atomic_write_json",
    "config_file",
    "data_dir",
    "read_json",
    "run",
    "state_file",
]
