"""FastAPI dependency injection for the workspace service.

Usage in route handlers::

    @router.get("/things")
    async def list_things(service: WorkspaceService) -> list[Workspace]:
        ...

The dependency raises HTTP 503 if the service was not initialised (the
registry failed to load at startup).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from kata.workspaces.managers.workspaces import WorkspaceLifecycleService


def get_workspace_service(request: Request) -> WorkspaceLifecycleService:
    service: WorkspaceLifecycleService | None = getattr(request.app.state, "workspace_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workspace state is unavailable; restart the application.",
        )
    return service


WorkspaceService = Annotated[WorkspaceLifecycleService, Depends(get_workspace_service)]
"""Annotated dependency: the process-wide lifecycle service."""
