"""Persistent registry of repository config and tracked features."""

from .registry import RegistryStore, StoreError

__all__ = ["RegistryStore", "StoreError"]
