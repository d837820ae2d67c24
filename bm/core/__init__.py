"""Core domain types and logic."""

from .errors import ErrorCode
from .model import DeployRecord, Env, Feature, FeatureStatus, RepoConfig, status_for_env
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # errors
    "ErrorCode",
    # model
    "DeployRecord",
    "Env",
    "Feature",
    "FeatureStatus",
    "RepoConfig",
    "status_for_env",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
