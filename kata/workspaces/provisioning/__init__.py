"""Workspace provisioning: turn a repository reference into a fresh worktree."""

from kata.workspaces.provisioning.local import LocalWorkspaceProvisioner
from kata.workspaces.provisioning.remote import RemoteRepositoryResolver

__all__ = ["LocalWorkspaceProvisioner", "RemoteRepositoryResolver"]
