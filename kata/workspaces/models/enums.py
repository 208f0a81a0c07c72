"""Shared enumerations used across the workspace service."""

from __future__ import annotations

from enum import StrEnum


class WorkspaceStatus(StrEnum):
    """Durable workspace status persisted in the registry."""

    CREATING = "creating"
    READY = "ready"
    ERROR = "error"
    ARCHIVED = "archived"


class WorkspaceSourceType(StrEnum):
    LOCAL = "local"
    GITHUB = "github"


class CreateKind(StrEnum):
    """Which provisioning path a create request takes."""

    LOCAL = "local"
    GITHUB_EXISTING = "github_existing"
    GITHUB_NEW = "github_new"
