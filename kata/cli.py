from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import anyio
import click

from kata.workspaces.errors import WorkspaceError

if TYPE_CHECKING:
    from pydantic import BaseModel

    from kata.workspaces.managers.workspaces import WorkspaceLifecycleService
    from kata.workspaces.models.workspace import Workspace

T = TypeVar("T")


@click.group()
def main() -> None:
    """Kata - disposable git worktree workspaces."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from KATA_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from KATA_PORT or 8765).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the workspace API server."""
    import uvicorn

    from kata.workspaces.settings import KataSettings

    settings = KataSettings()

    uvicorn.run(
        "kata.workspaces.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Direct workspace commands (no server required)
# ---------------------------------------------------------------------------


def _call(action: Callable[[WorkspaceLifecycleService], Awaitable[T]]) -> T:
    """Build the service from settings and run *action(service)* to completion.

    Domain errors become a one-line ``Error: ...`` message and exit status 1.
    """
    from kata.workspaces.log import setup_logging
    from kata.workspaces.managers.workspaces import create_workspace_service
    from kata.workspaces.settings import KataSettings

    settings = KataSettings()
    setup_logging(settings.log_level, compact=True)

    async def _runner() -> T:
        return await action(create_workspace_service(settings))

    try:
        return anyio.run(_runner)
    except WorkspaceError as exc:
        raise click.ClickException(str(exc)) from None


def _echo_model(model: BaseModel) -> None:
    click.echo(model.model_dump_json(by_alias=True, indent=2))


def _echo_models(models: list[BaseModel]) -> None:
    click.echo(json.dumps([m.model_dump(by_alias=True, mode="json") for m in models], indent=2))


async def _default_name(service: WorkspaceLifecycleService, source: str, name: str | None) -> str:
    from kata.workspaces.models.workspace import derive_name_from_source, derive_unique_workspace_name

    if name and name.strip():
        return name
    existing = [ws.name for ws in await service.list_workspaces()]
    return derive_unique_workspace_name(derive_name_from_source(source), existing)


@main.command("list")
@click.option("--hide-archived", is_flag=True, default=False, help="Skip archived workspaces.")
def list_(hide_archived: bool) -> None:
    """List workspaces as JSON."""
    _echo_models(_call(lambda s: s.list_workspaces(include_archived=not hide_archived)))


@main.command()
def active() -> None:
    """Print the active workspace id (empty if none)."""
    click.echo(_call(lambda s: s.get_active_workspace_id()) or "")


@main.command("create-local")
@click.argument("repo_path")
@click.option("--name", default=None, help="Workspace name (default: derived from the repository).")
@click.option("--branch", default=None, help="Branch to create (default: workspace/<slug>-<suffix>).")
@click.option("--base-ref", default=None, help="Ref to branch from (default: origin HEAD, current branch, HEAD).")
def create_local(repo_path: str, name: str | None, branch: str | None, base_ref: str | None) -> None:
    """Create a workspace from a local repository."""
    from kata.workspaces.models.api import CreateLocalWorkspaceInput

    async def action(service: WorkspaceLifecycleService) -> Workspace:
        body = CreateLocalWorkspaceInput(
            repo_path=repo_path,
            workspace_name=await _default_name(service, repo_path, name),
            branch_name=branch,
            base_ref=base_ref,
        )
        return await service.create_local_workspace(body)

    _echo_model(_call(action))


@main.command("create-github")
@click.argument("repo_url")
@click.option("--name", default=None, help="Workspace name (default: derived from the URL).")
@click.option("--clone-root", default=None, help="Directory holding cached clones.")
@click.option("--branch", default=None)
@click.option("--base-ref", default=None)
def create_github(
    repo_url: str, name: str | None, clone_root: str | None, branch: str | None, base_ref: str | None
) -> None:
    """Create a workspace from an existing GitHub repository."""
    from kata.workspaces.models.api import CreateGithubWorkspaceInput

    async def action(service: WorkspaceLifecycleService) -> Workspace:
        body = CreateGithubWorkspaceInput(
            repo_url=repo_url,
            workspace_name=await _default_name(service, repo_url, name),
            clone_root_path=clone_root,
            branch_name=branch,
            base_ref=base_ref,
        )
        return await service.create_github_workspace(body)

    _echo_model(_call(action))


@main.command("create-new-github")
@click.argument("repository")
@click.option("--name", default=None, help="Workspace name (default: the repository name).")
@click.option("--clone-root", default=None, help="Directory holding cached clones.")
@click.option("--branch", default=None)
@click.option("--base-ref", default=None)
def create_new_github(
    repository: str, name: str | None, clone_root: str | None, branch: str | None, base_ref: str | None
) -> None:
    """Create a private GitHub repository (<name> or <owner>/<name>) and a workspace on it."""
    from kata.workspaces.models.api import CreateNewGithubWorkspaceInput

    async def action(service: WorkspaceLifecycleService) -> Workspace:
        body = CreateNewGithubWorkspaceInput(
            repository=repository,
            workspace_name=await _default_name(service, repository, name),
            clone_root_path=clone_root,
            branch_name=branch,
            base_ref=base_ref,
        )
        return await service.create_new_github_workspace(body)

    _echo_model(_call(action))


@main.command()
@click.argument("workspace_id")
def activate(workspace_id: str) -> None:
    """Make a workspace the active one."""
    _echo_model(_call(lambda s: s.set_active_workspace(workspace_id)))


@main.command()
@click.argument("workspace_id")
def archive(workspace_id: str) -> None:
    """Archive a workspace (its files are kept)."""
    _echo_model(_call(lambda s: s.archive_workspace(workspace_id)))


@main.command()
@click.argument("workspace_id")
@click.option("--remove-files", is_flag=True, default=False, help="Also remove the worktree from disk.")
def delete(workspace_id: str, remove_files: bool) -> None:
    """Delete a workspace record."""
    removed = _call(lambda s: s.delete_workspace(workspace_id, remove_files=remove_files))
    click.echo(f"Deleted {removed.id} ({removed.name}).")


@main.command()
@click.argument("query", required=False)
def suggest(query: str | None) -> None:
    """Rank your GitHub repositories against QUERY."""
    _echo_models(_call(lambda s: s.suggest_remote_repositories(query)))


if __name__ == "__main__":
    main()
