"""Durable registry of repository configuration and tracked features.

Two JSON documents live in the data directory:

    config.json  {"repos": {<identity>: {"branches": {...}, "deployUrls": {...}}}}
    state.json   {"repos": {<identity>: {"features": [<feature>, ...]}}}

Both are read once by `RegistryStore.open` and rewritten in full after every
mutation. Entries for other repositories (and unknown keys) are carried over
untouched.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from bm.core.model import DeployRecord, Env, Feature, FeatureStatus, RepoConfig
from bm.core.result import Err, Ok, Result
from bm.core.structured import StrDict, as_str_dict, get_list, get_table
from bm.platform.files import atomic_write_json, read_json
from bm.platform.paths import config_file, state_file

__all__ = ["RegistryStore", "StoreError"]

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class StoreError:
    kind: Literal["corrupt", "write_failed"]
    message: str
    hint: str | None = None


def _load_document(path: Path) -> Result[StrDict, StoreError]:
    try:
        raw = read_json(path)
    except (OSError, ValueError) as e:
        return Err(
            StoreError(
                kind="corrupt",
                message=f"cannot read {path.name}: {e}",
                hint=f"fix or remove {path}",
            )
        )

    if raw is None:
        return Ok({"repos": {}})

    data = as_str_dict(raw)
    if data is None:
        return Err(
            StoreError(
                kind="corrupt",
                message=f"{path.name} root must be a JSON object",
                hint=f"fix or remove {path}",
            )
        )
    if get_table(data, "repos") is None:
        data["repos"] = {}
    return Ok(data)


class RegistryStore:
    """Config and feature records keyed by repository identity.

    Attributes:
        root: Directory holding config.json and state.json
    """

    def __init__(
        self,
        root: Path,
        config_doc: StrDict,
        state_doc: StrDict,
        *,
        now_ms: Clock = _now_ms,
    ) -> None:
        self.root = root
        self._config = config_doc
        self._state = state_doc
        self._now_ms = now_ms

    @classmethod
    def open(cls, root: Path, *, now_ms: Clock = _now_ms) -> Result[RegistryStore, StoreError]:
        """Load both documents; missing files start out empty."""
        config_doc = _load_document(config_file(root))
        if isinstance(config_doc, Err):
            return config_doc
        state_doc = _load_document(state_file(root))
        if isinstance(state_doc, Err):
            return state_doc
        return Ok(cls(root, config_doc.value, state_doc.value, now_ms=now_ms))

    def now(self) -> int:
        return self._now_ms()

    # ------------------------------------------------------------------
    # Repository configuration
    # ------------------------------------------------------------------

    def get_config(self, repo_id: str) -> RepoConfig | None:
        entry = get_table(self._repos(self._config), repo_id)
        if entry is None:
            return None
        return RepoConfig.from_dict(entry)

    def set_config(self, repo_id: str, config: RepoConfig) -> Result[None, StoreError]:
        """Replace the whole configuration of `repo_id`."""
        self._repos(self._config)[repo_id] = config.to_dict()
        return self._write(config_file(self.root), self._config)

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def list_features(self, repo_id: str) -> list[Feature]:
        features: list[Feature] = []
        for raw in self._feature_entries(repo_id, create=False):
            entry = as_str_dict(raw)
            if entry is None:
                continue
            feature = Feature.from_dict(entry)
            if feature is not None:
                features.append(feature)
        return features

    def get_feature(self, repo_id: str, branch: str) -> Feature | None:
        for feature in self.list_features(repo_id):
            if feature.branch == branch:
                return feature
        return None

    def upsert_feature(self, repo_id: str, feature: Feature) -> Result[None, StoreError]:
        """Replace the record for `feature.branch`, or append it."""
        entries = self._feature_entries(repo_id, create=True)
        index = self._index_of(entries, feature.branch)
        if index is None:
            entries.append(feature.to_dict())
        else:
            entries[index] = feature.to_dict()
        return self._write(state_file(self.root), self._state)

    def update_feature(
        self,
        repo_id: str,
        branch: str,
        *,
        doc: str | None = None,
        status: FeatureStatus | None = None,
        base_branch: str | None = None,
    ) -> Result[bool, StoreError]:
        """Merge the given fields into a record and stamp `updatedAt`.

        Returns Ok(False) when no record exists for `branch`.
        """
        feature = self.get_feature(repo_id, branch)
        if feature is None:
            return Ok(False)

        updated = replace(
            feature,
            doc=feature.doc if doc is None else doc,
            status=feature.status if status is None else status,
            base_branch=feature.base_branch if base_branch is None else base_branch,
            updated_at=self._now_ms(),
        )
        return self.upsert_feature(repo_id, updated).map(lambda _: True)

    def remove_feature(self, repo_id: str, branch: str) -> Result[bool, StoreError]:
        entries = self._feature_entries(repo_id, create=False)
        index = self._index_of(entries, branch)
        if index is None:
            return Ok(False)
        del entries[index]
        return self._write(state_file(self.root), self._state).map(lambda _: True)

    def append_deploy_history(self, repo_id: str, branch: str, env: Env) -> Result[bool, StoreError]:
        """Append a `{env, at}` record; Ok(False) when the branch is untracked."""
        feature = self.get_feature(repo_id, branch)
        if feature is None:
            return Ok(False)

        at = self._now_ms()
        updated = replace(
            feature,
            deploy_history=(*feature.deploy_history, DeployRecord(env=env, at=at)),
            updated_at=at,
        )
        return self.upsert_feature(repo_id, updated).map(lambda _: True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _repos(self, document: StrDict) -> StrDict:
        repos = get_table(document, "repos")
        if repos is None:
            repos = {}
            document["repos"] = repos
        return repos

    def _feature_entries(self, repo_id: str, *, create: bool) -> list[object]:
        repos = self._repos(self._state)
        entry = get_table(repos, repo_id)
        if entry is None:
            if not create:
                return []
            entry = {}
            repos[repo_id] = entry
        features = get_list(entry, "features")
        if features is None:
            features = []
            if create:
                entry["features"] = features
        return features

    def _index_of(self, entries: list[object], branch: str) -> int | None:
        for index, raw in enumerate(entries):
            entry = as_str_dict(raw)
            if entry is not None and entry.get("branch") == branch:
                return index
        return None

    def _write(self, path: Path, document: StrDict) -> Result[None, StoreError]:
        try:
            atomic_write_json(path, document)
        except OSError as e:
            return Err(
                StoreError(
                    kind="write_failed",
                    message=f"failed to write {path}: {e}",
                    hint=f"check permissions and free disk space for {path.parent}",
                )
            )
        return Ok(None)
