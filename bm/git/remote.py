"""Repository identity derived from the remote URL.

The identity is the key under which bm stores configuration and tracked
features, so every URL spelling of the same remote must map to one key:

    https://host/group/proj.git    -> host/group/proj
    git@host:group/proj.git        -> host/group/proj
    ssh://git@host/group/proj.git  -> host/group/proj
"""

from __future__ import annotations

import re

__all__ = ["derive_identity"]

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def derive_identity(remote_url: str) -> str:
    """Normalize a remote URL into a repository identity."""
    key = remote_url.strip().rstrip("/")
    if key.endswith(".git"):
        key = key[: -len(".git")]

    key = _SCHEME.sub("", key)

    # Drop userinfo (git@, user:token@) that precedes the host.
    at = key.find("@")
    slash = key.find("/")
    if at >= 0 and (slash < 0 or at < slash):
        key = key[at + 1 :]

    return key.replace(":", "/", 1)
