"""Registry persistence backends."""

from kata.workspaces.store.base import RegistryStore
from kata.workspaces.store.local import LocalRegistryStore

__all__ = ["LocalRegistryStore", "RegistryStore"]
