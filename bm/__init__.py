"""bm - feature-branch manager for git repositories."""

from importlib import metadata

try:
    __version__ = metadata.version("bm-branch-manager")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
