"""Operations behind the bm commands."""

from .deploy import DeployOutcome, DeployResult, deploy
from .errors import BmError
from .features import (
    add_feature,
    checkout_feature,
    edit_feature,
    list_features,
    prune_features,
    remove_feature,
)
from .prompts import ConflictAction, DirtyTreeAction, Prompter
from .setup import configure_repo

__all__ = [
    "BmError",
    "ConflictAction",
    "DeployOutcome",
    "DeployResult",
    "DirtyTreeAction",
    "Prompter",
    "add_feature",
    "checkout_feature",
    "configure_repo",
    "deploy",
    "edit_feature",
    "list_features",
    "prune_features",
    "remove_feature",
]
