"""Presentation of statuses, environments and timestamps."""

from __future__ import annotations

from datetime import datetime
from typing import assert_never

from bm.core.model import Env, Feature, FeatureStatus

__all__ = [
    "env_label",
    "format_timestamp",
    "last_deploy_text",
    "status_colour",
    "status_label",
    "styled_status",
]


def status_label(status: FeatureStatus) -> str:
    match status:
        case FeatureStatus.DEVELOPING:
            return "developing"
        case FeatureStatus.DEPLOYED_TEST:
            return "deployed to test"
        case FeatureStatus.DEPLOYED_STAGING:
            return "deployed to staging"
        case FeatureStatus.DEPLOYED_PRODUCTION:
            return "deployed to production"
        case FeatureStatus.DONE:
            return "done"
        case _:
            assert_never(status)


def status_colour(status: FeatureStatus) -> str:
    match status:
        case FeatureStatus.DEVELOPING:
            return "yellow"
        case FeatureStatus.DEPLOYED_TEST:
            return "blue"
        case FeatureStatus.DEPLOYED_STAGING:
            return "magenta"
        case FeatureStatus.DEPLOYED_PRODUCTION:
            return "green"
        case FeatureStatus.DONE:
            return "dim"
        case _:
            assert_never(status)


def styled_status(status: FeatureStatus) -> str:
    colour = status_colour(status)
    return f"[{colour}]{status_label(status)}[/{colour}]"


def env_label(env: Env) -> str:
    match env:
        case Env.TEST:
            return "test"
        case Env.PRE:
            return "staging"
        case Env.PROD:
            return "production"
        case _:
            assert_never(env)


def format_timestamp(epoch_ms: int) -> str:
    """Local time, minute precision; "-" for unset (0) timestamps."""
    if epoch_ms <= 0:
        return "-"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")


def last_deploy_text(feature: Feature) -> str:
    record = feature.last_deploy
    if record is None:
        return "never"
    return f"{env_label(record.env)} at {format_timestamp(record.at)}"
