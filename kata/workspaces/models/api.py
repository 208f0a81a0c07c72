"""Request / response schemas for the workspace operations.

Field names are snake_case in Python and camelCase on the wire, matching
the registry file.  Inputs carry no validation beyond types: the
provisioners own validation so that every rejection surfaces as an
``InvalidInputError`` with a descriptive message.
"""

from __future__ import annotations

from pydantic import Field

from kata.workspaces.models.workspace import CamelModel


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class CreateLocalWorkspaceInput(CamelModel):
    """Create a workspace from a repository already on disk."""

    repo_path: str
    workspace_name: str
    branch_name: str | None = None
    base_ref: str | None = None


class CreateGithubWorkspaceInput(CamelModel):
    """Create a workspace from an existing ``https://github.com/<owner>/<repo>`` repository."""

    repo_url: str
    workspace_name: str
    clone_root_path: str | None = Field(default=None, description="Cache root; defaults to the app data directory.")
    branch_name: str | None = None
    base_ref: str | None = None


class CreateNewGithubWorkspaceInput(CamelModel):
    """Create a private GitHub repository and a workspace on top of it."""

    repository: str = Field(description="``name`` or ``owner/name``; a trailing ``.git`` is ignored.")
    workspace_name: str
    clone_root_path: str | None = None
    branch_name: str | None = None
    base_ref: str | None = None


CreateWorkspaceInput = CreateLocalWorkspaceInput | CreateGithubWorkspaceInput | CreateNewGithubWorkspaceInput


# ---------------------------------------------------------------------------
# Remote repositories
# ---------------------------------------------------------------------------


class RepositoryCandidate(CamelModel):
    """One entry from ``gh repo list --json nameWithOwner,url,isPrivate,updatedAt``."""

    name_with_owner: str
    url: str
    is_private: bool = False
    updated_at: str = ""


class RepositorySuggestion(RepositoryCandidate):
    """A ranked candidate."""

    score: int


class ActiveWorkspaceResponse(CamelModel):
    active_workspace_id: str | None = None
