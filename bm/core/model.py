"""Domain model: environments, feature lifecycle, repository configuration.

Serialization to the registry documents lives here too (`to_dict` /
`from_dict`), keeping the JSON field names (`baseBranch`, `deployUrls`, ...)
in one place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import assert_never

from .structured import StrDict, as_str_dict, get_int, get_list, get_str, get_table

__all__ = [
    "DeployRecord",
    "Env",
    "Feature",
    "FeatureStatus",
    "RepoConfig",
    "ENV_ORDER",
    "parse_status",
    "status_for_env",
]


class Env(StrEnum):
    """Deployment environment. `prod` is always configured."""

    TEST = "test"
    PRE = "pre"
    PROD = "prod"


ENV_ORDER: tuple[Env, ...] = (Env.TEST, Env.PRE, Env.PROD)


class FeatureStatus(StrEnum):
    """Lifecycle of a tracked feature branch."""

    DEVELOPING = "developing"
    DEPLOYED_TEST = "deployed-test"
    DEPLOYED_STAGING = "deployed-staging"
    DEPLOYED_PRODUCTION = "deployed-production"
    DONE = "done"


# Status values written by older releases of the tool.
_LEGACY_STATUS: dict[str, FeatureStatus] = {
    "testing": FeatureStatus.DEPLOYED_TEST,
    "completed": FeatureStatus.DONE,
    "开发中": FeatureStatus.DEVELOPING,
    "已发布测试": FeatureStatus.DEPLOYED_TEST,
    "已发布预发": FeatureStatus.DEPLOYED_STAGING,
    "已发布线上": FeatureStatus.DEPLOYED_PRODUCTION,
    "已完成": FeatureStatus.DONE,
}


def parse_status(raw: str | None) -> FeatureStatus:
    """Map a stored status string onto the canonical enum.

    Unknown values fall back to `developing`.
    """
    if raw is None:
        return FeatureStatus.DEVELOPING
    try:
        return FeatureStatus(raw)
    except ValueError:
        return _LEGACY_STATUS.get(raw, FeatureStatus.DEVELOPING)


def status_for_env(env: Env) -> FeatureStatus:
    """Status a feature reaches after a confirmed deploy to `env`."""
    match env:
        case Env.TEST:
            return FeatureStatus.DEPLOYED_TEST
        case Env.PRE:
            return FeatureStatus.DEPLOYED_STAGING
        case Env.PROD:
            return FeatureStatus.DEPLOYED_PRODUCTION
        case _:
            assert_never(env)


@dataclass(frozen=True, slots=True)
class DeployRecord:
    env: Env
    at: int  # epoch milliseconds

    def to_dict(self) -> StrDict:
        return {"env": self.env.value, "at": self.at}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> DeployRecord | None:
        env = get_str(data, "env")
        at = get_int(data, "at")
        if env not in {e.value for e in Env} or at is None:
            return None
        return cls(env=Env(env), at=at)


@dataclass(frozen=True, slots=True)
class Feature:
    """One tracked feature branch."""

    branch: str
    doc: str
    base_branch: str
    status: FeatureStatus
    created_at: int
    updated_at: int
    deploy_history: tuple[DeployRecord, ...] = field(default_factory=tuple)

    @property
    def last_deploy(self) -> DeployRecord | None:
        return self.deploy_history[-1] if self.deploy_history else None

    def to_dict(self) -> StrDict:
        return {
            "branch": self.branch,
            "doc": self.doc,
            "baseBranch": self.base_branch,
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deployHistory": [record.to_dict() for record in self.deploy_history],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Feature | None:
        """Parse a stored feature; returns None when `branch` is missing."""
        branch = get_str(data, "branch")
        if branch is None:
            return None

        history: list[DeployRecord] = []
        for raw in get_list(data, "deployHistory") or []:
            entry = as_str_dict(raw)
            if entry is None:
                continue
            record = DeployRecord.from_dict(entry)
            if record is not None:
                history.append(record)

        created_at = get_int(data, "createdAt") or 0
        return cls(
            branch=branch,
            doc=get_str(data, "doc") or "",
            base_branch=get_str(data, "baseBranch") or "",
            status=parse_status(get_str(data, "status")),
            created_at=created_at,
            updated_at=get_int(data, "updatedAt") or created_at,
            deploy_history=tuple(history),
        )


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """Environment branches and deploy URLs of one repository."""

    prod_branch: str
    prod_url: str
    test_branch: str | None = None
    test_url: str | None = None
    pre_branch: str | None = None
    pre_url: str | None = None

    def branch(self, env: Env) -> str | None:
        match env:
            case Env.TEST:
                return self.test_branch
            case Env.PRE:
                return self.pre_branch
            case Env.PROD:
                return self.prod_branch
            case _:
                assert_never(env)

    def url(self, env: Env) -> str | None:
        match env:
            case Env.TEST:
                return self.test_url
            case Env.PRE:
                return self.pre_url
            case Env.PROD:
                return self.prod_url
            case _:
                assert_never(env)

    def is_deployable(self, env: Env) -> bool:
        """Both the branch and the deploy URL are set."""
        return bool(self.branch(env)) and bool(self.url(env))

    def deployable_envs(self) -> tuple[Env, ...]:
        return tuple(env for env in ENV_ORDER if self.is_deployable(env))

    def environment_branches(self) -> frozenset[str]:
        """Names of every configured environment branch."""
        names = (self.branch(env) for env in ENV_ORDER)
        return frozenset(name for name in names if name)

    def to_dict(self) -> StrDict:
        branches: StrDict = {}
        urls: StrDict = {}
        for env in ENV_ORDER:
            b = self.branch(env)
            u = self.url(env)
            if b:
                branches[env.value] = b
            if u:
                urls[env.value] = u
        return {"branches": branches, "deployUrls": urls}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RepoConfig | None:
        """Parse a stored config; returns None when prod is incomplete."""
        branches = get_table(data, "branches") or {}
        urls = get_table(data, "deployUrls") or {}

        prod_branch = get_str(branches, "prod")
        prod_url = get_str(urls, "prod")
        if prod_branch is None or prod_url is None:
            return None

        return cls(
            prod_branch=prod_branch,
            prod_url=prod_url,
            test_branch=get_str(branches, "test"),
            test_url=get_str(urls, "test"),
            pre_branch=get_str(branches, "pre"),
            pre_url=get_str(urls, "pre"),
        )
