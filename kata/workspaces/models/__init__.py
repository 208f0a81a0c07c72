"""Data models for the workspace service."""

from kata.workspaces.models.api import (
    ActiveWorkspaceResponse,
    CreateGithubWorkspaceInput,
    CreateLocalWorkspaceInput,
    CreateNewGithubWorkspaceInput,
    CreateWorkspaceInput,
    RepositoryCandidate,
    RepositorySuggestion,
)
from kata.workspaces.models.enums import CreateKind, WorkspaceSourceType, WorkspaceStatus
from kata.workspaces.models.workspace import (
    PreparedWorkspace,
    RegistryDocument,
    Workspace,
    derive_branch_name,
    derive_name_from_source,
    derive_unique_workspace_name,
    next_workspace_id,
    now_iso8601,
    slugify,
    workspace_suffix,
)

__all__ = [
    "ActiveWorkspaceResponse",
    "CreateGithubWorkspaceInput",
    "CreateKind",
    "CreateLocalWorkspaceInput",
    "CreateNewGithubWorkspaceInput",
    "CreateWorkspaceInput",
    "PreparedWorkspace",
    "RegistryDocument",
    "RepositoryCandidate",
    "RepositorySuggestion",
    "Workspace",
    "WorkspaceSourceType",
    "WorkspaceStatus",
    "derive_branch_name",
    "derive_name_from_source",
    "derive_unique_workspace_name",
    "next_workspace_id",
    "now_iso8601",
    "slugify",
    "workspace_suffix",
]
