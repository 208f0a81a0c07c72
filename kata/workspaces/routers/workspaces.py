"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  Domain exceptions are
translated to HTTP errors here and nowhere else; ``detail`` always carries
the plain error message.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, HTTPException, Query, status

from kata.workspaces.deps import WorkspaceService
from kata.workspaces.errors import (
    ExternalToolFailureError,
    InvalidInputError,
    IoFailureError,
    MalformedStateError,
    NotFoundError,
    StateUnavailableError,
    ToolUnavailableError,
    WorkspaceError,
)
from kata.workspaces.models.api import (
    ActiveWorkspaceResponse,
    CreateGithubWorkspaceInput,
    CreateLocalWorkspaceInput,
    CreateNewGithubWorkspaceInput,
    RepositorySuggestion,
)
from kata.workspaces.models.workspace import Workspace

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

_STATUS_BY_ERROR: list[tuple[type[WorkspaceError], int]] = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ToolUnavailableError, status.HTTP_424_FAILED_DEPENDENCY),
    (ExternalToolFailureError, status.HTTP_502_BAD_GATEWAY),
    (StateUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MalformedStateError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (IoFailureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: WorkspaceError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def _domain_errors() -> Iterator[None]:
    try:
        yield
    except WorkspaceError as exc:
        raise HTTPException(status_for(exc), detail=str(exc)) from None


# -- Create --------------------------------------------------------------------


@router.post("/create-local", response_model=Workspace, status_code=status.HTTP_201_CREATED)
async def create_local_workspace(body: CreateLocalWorkspaceInput, service: WorkspaceService) -> Workspace:
    """Create a workspace from a repository on disk."""
    with _domain_errors():
        return await service.create_local_workspace(body)


@router.post("/create-github", response_model=Workspace, status_code=status.HTTP_201_CREATED)
async def create_github_workspace(body: CreateGithubWorkspaceInput, service: WorkspaceService) -> Workspace:
    """Create a workspace from an existing GitHub repository."""
    with _domain_errors():
        return await service.create_github_workspace(body)


@router.post("/create-new-github", response_model=Workspace, status_code=status.HTTP_201_CREATED)
async def create_new_github_workspace(body: CreateNewGithubWorkspaceInput, service: WorkspaceService) -> Workspace:
    """Create a private GitHub repository and a workspace on top of it."""
    with _domain_errors():
        return await service.create_new_github_workspace(body)


# -- Read ----------------------------------------------------------------------


@router.get("/list", response_model=list[Workspace])
async def list_workspaces(
    service: WorkspaceService,
    include_archived: bool = Query(default=True, alias="includeArchived"),
) -> list[Workspace]:
    """List workspaces in creation order."""
    with _domain_errors():
        return await service.list_workspaces(include_archived=include_archived)


@router.get("/active", response_model=ActiveWorkspaceResponse)
async def get_active_workspace_id(service: WorkspaceService) -> ActiveWorkspaceResponse:
    with _domain_errors():
        return ActiveWorkspaceResponse(active_workspace_id=await service.get_active_workspace_id())


@router.get("/github/suggestions", response_model=list[RepositorySuggestion])
async def suggest_remote_repositories(
    service: WorkspaceService,
    query: str | None = None,
) -> list[RepositorySuggestion]:
    """Rank the user's GitHub repositories against ``query``."""
    with _domain_errors():
        return await service.suggest_remote_repositories(query)


@router.get("/{workspace_id}/get", response_model=Workspace)
async def get_workspace(workspace_id: str, service: WorkspaceService) -> Workspace:
    with _domain_errors():
        return await service.get_workspace(workspace_id)


# -- Lifecycle -----------------------------------------------------------------


@router.post("/{workspace_id}/activate", response_model=Workspace)
async def set_active_workspace(workspace_id: str, service: WorkspaceService) -> Workspace:
    with _domain_errors():
        return await service.set_active_workspace(workspace_id)


@router.post("/{workspace_id}/archive", response_model=Workspace)
async def archive_workspace(workspace_id: str, service: WorkspaceService) -> Workspace:
    with _domain_errors():
        return await service.archive_workspace(workspace_id)


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(
    workspace_id: str,
    service: WorkspaceService,
    remove_files: bool = Query(default=False, alias="removeFiles"),
) -> None:
    """Delete a workspace record, optionally removing its worktree from disk."""
    with _domain_errors():
        await service.delete_workspace(workspace_id, remove_files=remove_files)
