"""Workspace lifecycle service -- orchestrates provisioning and the registry.

The WorkspaceLifecycleService is a process-level singleton created at
startup.  It coordinates three collaborators:

- **LocalWorkspaceProvisioner**: worktrees cut from repositories on disk
- **RemoteRepositoryResolver**: GitHub cache clones (existing or new repos)
- **WorkspaceRegistry**: the persisted catalog and active pointer

Subprocess work (clone, fetch, worktree add/remove, gh calls) and registry
commits are blocking, so they run in worker threads through
``anyio.to_thread.run_sync``, bounded by a shared ``CapacityLimiter``.
Provisioning never touches the registry: a failed create leaves no record.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any, TypeVar

from anyio import CapacityLimiter, to_thread
from loguru import logger

from kata.workspaces.errors import ExternalToolFailureError, IoFailureError, ToolUnavailableError
from kata.workspaces.models.api import (
    CreateGithubWorkspaceInput,
    CreateLocalWorkspaceInput,
    CreateNewGithubWorkspaceInput,
    CreateWorkspaceInput,
    RepositorySuggestion,
)
from kata.workspaces.models.enums import CreateKind, WorkspaceSourceType, WorkspaceStatus
from kata.workspaces.models.workspace import (
    PreparedWorkspace,
    Workspace,
    next_workspace_id,
    now_iso8601,
    workspace_suffix,
)
from kata.workspaces.provisioning.local import LocalWorkspaceProvisioner
from kata.workspaces.provisioning.remote import RemoteRepositoryResolver
from kata.workspaces.ranking import rank_repositories
from kata.workspaces.registry import WorkspaceRegistry
from kata.workspaces.runner import CommandRunner, SubprocessCommandRunner, Tool
from kata.workspaces.settings import KataSettings
from kata.workspaces.store.local import LocalRegistryStore

T = TypeVar("T")

_INPUT_TYPES: dict[CreateKind, type] = {
    CreateKind.LOCAL: CreateLocalWorkspaceInput,
    CreateKind.GITHUB_EXISTING: CreateGithubWorkspaceInput,
    CreateKind.GITHUB_NEW: CreateNewGithubWorkspaceInput,
}


class WorkspaceLifecycleService:
    """Implements create / list / set-active / archive / delete.

    Stateless beyond its references to the registry, the provisioners and
    the worker limiter.
    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        runner: CommandRunner,
        *,
        worktrees_root: Path,
        github_cache_root: Path,
        limiter: CapacityLimiter | None = None,
    ) -> None:
        self._registry = registry
        self._runner = runner
        self._worktrees_root = worktrees_root
        self._local = LocalWorkspaceProvisioner(runner)
        self._remote = RemoteRepositoryResolver(runner, self._local, default_cache_root=github_cache_root)
        self._limiter = limiter or CapacityLimiter(4)

    async def _in_worker(self, func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        return await to_thread.run_sync(partial(func, *args, **kwargs), limiter=self._limiter)

    # -- Create ----------------------------------------------------------------

    async def create(self, kind: CreateKind, body: CreateWorkspaceInput) -> Workspace:
        """Provision a workspace of *kind*, then insert it as the active workspace.

        The id (and the suffix derived from it) is generated up front so
        branch and directory names are known before any git call.
        """
        expected = _INPUT_TYPES[kind]
        if not isinstance(body, expected):
            msg = f"{kind} workspaces take {expected.__name__}, got {type(body).__name__}"
            raise TypeError(msg)

        workspace_id = next_workspace_id()
        suffix = workspace_suffix(workspace_id)
        source_type = WorkspaceSourceType.LOCAL if kind == CreateKind.LOCAL else WorkspaceSourceType.GITHUB
        logger.info("Creating {} workspace {} ({!r})", kind, workspace_id, body.workspace_name)

        if isinstance(body, CreateLocalWorkspaceInput):
            source = body.repo_path
            prepared = await self._in_worker(
                self._local.provision,
                body.repo_path,
                body.workspace_name,
                suffix=suffix,
                worktrees_root=self._worktrees_root,
                branch_name=body.branch_name,
                base_ref=body.base_ref,
            )
        elif isinstance(body, CreateGithubWorkspaceInput):
            source = body.repo_url
            prepared = await self._in_worker(
                self._remote.provision_existing,
                body.repo_url,
                body.workspace_name,
                suffix=suffix,
                worktrees_root=self._worktrees_root,
                clone_root_path=body.clone_root_path,
                branch_name=body.branch_name,
                base_ref=body.base_ref,
            )
        else:
            prepared, source = await self._in_worker(
                self._remote.provision_new,
                body.repository,
                body.workspace_name,
                suffix=suffix,
                worktrees_root=self._worktrees_root,
                clone_root_path=body.clone_root_path,
                branch_name=body.branch_name,
                base_ref=body.base_ref,
            )

        workspace = _assemble(workspace_id, body.workspace_name, source_type, source, prepared)
        created = await self._in_worker(self._registry.insert, workspace, activate=True)
        logger.info("Workspace ready: {} at {}", created.id, created.worktree_path)
        return created

    async def create_local_workspace(self, body: CreateLocalWorkspaceInput) -> Workspace:
        return await self.create(CreateKind.LOCAL, body)

    async def create_github_workspace(self, body: CreateGithubWorkspaceInput) -> Workspace:
        return await self.create(CreateKind.GITHUB_EXISTING, body)

    async def create_new_github_workspace(self, body: CreateNewGithubWorkspaceInput) -> Workspace:
        return await self.create(CreateKind.GITHUB_NEW, body)

    # -- Registry pass-throughs -------------------------------------------------

    async def list_workspaces(self, *, include_archived: bool = True) -> list[Workspace]:
        workspaces = await self._in_worker(self._registry.list)
        if include_archived:
            return workspaces
        return [ws for ws in workspaces if ws.status != WorkspaceStatus.ARCHIVED]

    async def get_active_workspace_id(self) -> str | None:
        return await self._in_worker(self._registry.active_workspace_id)

    async def get_workspace(self, workspace_id: str) -> Workspace:
        return await self._in_worker(self._registry.get, workspace_id)

    async def set_active_workspace(self, workspace_id: str) -> Workspace:
        return await self._in_worker(self._registry.set_active, workspace_id)

    async def archive_workspace(self, workspace_id: str) -> Workspace:
        return await self._in_worker(self._registry.archive, workspace_id)

    # -- Delete ----------------------------------------------------------------

    async def delete_workspace(self, workspace_id: str, *, remove_files: bool = False) -> Workspace:
        """Remove the record (and persist), then optionally clean up the worktree.

        The registry is updated first so the catalog stays consistent even if
        cleanup fails; a cleanup failure is raised but the record stays gone.
        """
        removed = await self._in_worker(self._registry.remove, workspace_id)
        if remove_files:
            await self._in_worker(self._cleanup_worktree, removed)
        return removed

    def _cleanup_worktree(self, workspace: Workspace) -> None:
        path = Path(workspace.worktree_path)
        if not path.exists():
            logger.info("Worktree {} already gone; nothing to clean up", path)
            return

        repo_root = Path(workspace.repo_root_path)
        if repo_root.is_dir():
            try:
                self._runner.run(Tool.GIT, ["worktree", "remove", "--force", str(path)], cwd=repo_root)
            except (ExternalToolFailureError, ToolUnavailableError) as exc:
                logger.warning("git worktree remove failed for {}; deleting directory instead: {}", path, exc)
            else:
                if not path.exists():
                    logger.info("Worktree removed: {}", path)
                    return

        try:
            shutil.rmtree(path)
        except OSError as exc:
            msg = f"Failed to delete worktree directory {path}: {exc}"
            raise IoFailureError(msg) from exc
        logger.info("Worktree directory deleted: {}", path)

    # -- Suggestions -----------------------------------------------------------

    async def suggest_remote_repositories(self, query: str | None = None) -> list[RepositorySuggestion]:
        candidates = await self._in_worker(self._remote.list_repositories)
        return rank_repositories(candidates, query)


def _assemble(
    workspace_id: str,
    name: str,
    source_type: WorkspaceSourceType,
    source: str,
    prepared: PreparedWorkspace,
) -> Workspace:
    timestamp = now_iso8601()
    return Workspace(
        id=workspace_id,
        name=name,
        source_type=source_type,
        source=source,
        repo_root_path=prepared.repo_root_path,
        worktree_path=prepared.worktree_path,
        branch=prepared.branch,
        base_ref=prepared.base_ref,
        status=WorkspaceStatus.READY,
        created_at=timestamp,
        updated_at=timestamp,
    )


def create_workspace_service(settings: KataSettings, runner: CommandRunner | None = None) -> WorkspaceLifecycleService:
    """Load the registry from ``settings.data_root`` and wire up the service."""
    registry = WorkspaceRegistry.load(LocalRegistryStore(settings.data_path), lock_timeout=settings.lock_timeout)
    runner = runner or SubprocessCommandRunner({Tool.GIT: settings.git_binary, Tool.GH: settings.gh_binary})
    return WorkspaceLifecycleService(
        registry,
        runner,
        worktrees_root=settings.worktrees_root,
        github_cache_root=settings.github_cache_root,
        limiter=CapacityLimiter(settings.worker_limit),
    )
