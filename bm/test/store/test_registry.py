"""Tests for store/registry.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bm.core.model import DeployRecord, Env, Feature, FeatureStatus, RepoConfig
from bm.core.result import Err, Ok
from bm.store.registry import RegistryStore

REPO = "git.example.com/team/app"
OTHER = "git.example.com/team/other"


class Clock:
    def __init__(self) -> None:
        self.now = 1_000

    def __call__(self) -> int:
        self.now += 10
        return self.now


def _feature(branch: str = "feat/a", **overrides: object) -> Feature:
    values: dict[str, object] = {
        "branch": branch,
        "doc": "https://docs/a",
        "base_branch": "main",
        "status": FeatureStatus.DEVELOPING,
        "created_at": 500,
        "updated_at": 500,
    }
    values.update(overrides)
    return Feature(**values)  # type: ignore[arg-type]


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store(tmp_path: Path, clock: Clock) -> RegistryStore:
    return RegistryStore.open(tmp_path, now_ms=clock).unwrap()


class TestOpen:
    def test_missing_files_start_empty(self, tmp_path: Path) -> None:
        result = RegistryStore.open(tmp_path / "nested")

        assert isinstance(result, Ok)
        assert result.value.get_config(REPO) is None
        assert result.value.list_features(REPO) == []

    def test_invalid_json_is_corrupt(self, tmp_path: Path) -> None:
        (tmp_path / "state.json").write_text("{not json", encoding="utf-8")

        result = RegistryStore.open(tmp_path)

        assert isinstance(result, Err)
        assert result.error.kind == "corrupt"
        assert result.error.hint is not None

    def test_non_object_root_is_corrupt(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text("[]", encoding="utf-8")

        result = RegistryStore.open(tmp_path)

        assert isinstance(result, Err)
        assert result.error.kind == "corrupt"

    def test_reads_legacy_documents(self, tmp_path: Path) -> None:
        state = {
            "repos": {
                REPO: {
                    "features": [
                        {"branch": "feat/old", "doc": "", "baseBranch": "master", "status": "testing", "createdAt": 1},
                        {"branch": "feat/cn", "status": "已完成", "createdAt": 2, "updatedAt": 3},
                        {"doc": "no branch, skipped"},
                    ]
                }
            }
        }
        (tmp_path / "state.json").write_text(json.dumps(state), encoding="utf-8")

        store = RegistryStore.open(tmp_path).unwrap()
        features = store.list_features(REPO)

        assert [f.branch for f in features] == ["feat/old", "feat/cn"]
        assert features[0].status is FeatureStatus.DEPLOYED_TEST
        assert features[0].updated_at == 1
        assert features[1].status is FeatureStatus.DONE


class TestConfig:
    def test_round_trip(self, store: RegistryStore, tmp_path: Path) -> None:
        config = RepoConfig(
            prod_branch="main",
            prod_url="https://deploy/prod",
            pre_branch="pre",
            pre_url="https://deploy/pre",
        )
        assert store.set_config(REPO, config) == Ok(None)

        reloaded = RegistryStore.open(tmp_path).unwrap()
        assert reloaded.get_config(REPO) == config
        assert reloaded.get_config(OTHER) is None

    def test_document_shape(self, store: RegistryStore, tmp_path: Path) -> None:
        store.set_config(REPO, RepoConfig(prod_branch="main", prod_url="https://deploy/prod"))

        text = (tmp_path / "config.json").read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert '\n  "repos"' in text
        assert json.loads(text) == {
            "repos": {REPO: {"branches": {"prod": "main"}, "deployUrls": {"prod": "https://deploy/prod"}}}
        }

    def test_other_repositories_preserved(self, tmp_path: Path) -> None:
        doc = {"repos": {OTHER: {"branches": {"prod": "trunk"}, "deployUrls": {"prod": "https://x"}}}}
        (tmp_path / "config.json").write_text(json.dumps(doc), encoding="utf-8")
        store = RegistryStore.open(tmp_path).unwrap()

        store.set_config(REPO, RepoConfig(prod_branch="main", prod_url="https://deploy/prod"))

        reloaded = RegistryStore.open(tmp_path).unwrap()
        other = reloaded.get_config(OTHER)
        assert other is not None
        assert other.prod_branch == "trunk"


class TestFeatures:
    def test_round_trip(self, store: RegistryStore, tmp_path: Path) -> None:
        feature = _feature(deploy_history=(DeployRecord(env=Env.TEST, at=700),))
        store.upsert_feature(REPO, feature)

        reloaded = RegistryStore.open(tmp_path).unwrap()
        assert reloaded.get_feature(REPO, "feat/a") == feature

    def test_upsert_is_idempotent_on_branch(self, store: RegistryStore) -> None:
        store.upsert_feature(REPO, _feature("feat/a"))
        store.upsert_feature(REPO, _feature("feat/b"))
        store.upsert_feature(REPO, _feature("feat/a", doc="replaced"))

        features = store.list_features(REPO)
        assert [f.branch for f in features] == ["feat/a", "feat/b"]
        assert features[0].doc == "replaced"

    def test_update_stamps_updated_at(self, store: RegistryStore, clock: Clock) -> None:
        store.upsert_feature(REPO, _feature())

        assert store.update_feature(REPO, "feat/a", status=FeatureStatus.DONE) == Ok(True)

        feature = store.get_feature(REPO, "feat/a")
        assert feature is not None
        assert feature.status is FeatureStatus.DONE
        assert feature.doc == "https://docs/a"
        assert feature.created_at == 500
        assert feature.updated_at == clock.now

    def test_update_absent_feature(self, store: RegistryStore) -> None:
        assert store.update_feature(REPO, "ghost", doc="x") == Ok(False)

    def test_remove(self, store: RegistryStore) -> None:
        store.upsert_feature(REPO, _feature("feat/a"))

        assert store.remove_feature(REPO, "feat/a") == Ok(True)
        assert store.remove_feature(REPO, "feat/a") == Ok(False)
        assert store.list_features(REPO) == []

    def test_append_deploy_history(self, store: RegistryStore, clock: Clock) -> None:
        store.upsert_feature(REPO, _feature())

        store.append_deploy_history(REPO, "feat/a", Env.TEST)
        store.append_deploy_history(REPO, "feat/a", Env.PRE)

        feature = store.get_feature(REPO, "feat/a")
        assert feature is not None
        assert [r.env for r in feature.deploy_history] == [Env.TEST, Env.PRE]
        assert feature.deploy_history[-1].at == clock.now
        assert feature.updated_at == clock.now

    def test_append_to_absent_feature_is_noop(self, store: RegistryStore) -> None:
        assert store.append_deploy_history(REPO, "ghost", Env.PROD) == Ok(False)
        assert store.list_features(REPO) == []

    def test_features_are_per_repository(self, store: RegistryStore) -> None:
        store.upsert_feature(REPO, _feature("feat/a"))
        store.upsert_feature(OTHER, _feature("feat/z"))

        assert [f.branch for f in store.list_features(REPO)] == ["feat/a"]
        assert [f.branch for f in store.list_features(OTHER)] == ["feat/z"]


def test_write_failure_has_hint(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import bm.store.registry as registry

    def boom(path: Path, payload: object) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(registry, "atomic_write_json", boom)
    store = RegistryStore.open(tmp_path).unwrap()

    result = store.upsert_feature(REPO, _feature())

    assert isinstance(result, Err)
    assert result.error.kind == "write_failed"
    assert result.error.hint is not None
    assert "permissions" in result.error.hint
