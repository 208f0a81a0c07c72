"""GitHub-backed provisioning.

Remote repositories are never used directly.  Each one gets a local cache
clone that is reused (and refreshed with ``git fetch --all --prune``) across
workspace creations; the worktree is then cut from that cache exactly like a
local repository::

    {cache_root}/{owner}__{repo}/          cache clone
    {worktrees_root}/{slug}-{suffix}/      workspace worktree

Only ``https://github.com/<owner>/<repo>`` references are accepted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from kata.workspaces.errors import ExternalToolFailureError, InvalidInputError, IoFailureError
from kata.workspaces.models.api import RepositoryCandidate
from kata.workspaces.models.workspace import PreparedWorkspace
from kata.workspaces.provisioning.local import (
    LocalWorkspaceProvisioner,
    validate_branch_name,
    validate_workspace_name,
)
from kata.workspaces.runner import CommandRunner, Tool

GITHUB_HOST = "github.com"
REPO_LIST_LIMIT = 200
REPO_LIST_FIELDS = "nameWithOwner,url,isPrivate,updatedAt"

_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")
_candidates = TypeAdapter(list[RepositoryCandidate])


@dataclass(frozen=True)
class GithubRepoRef:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def url(self) -> str:
        return f"https://{GITHUB_HOST}/{self.owner}/{self.repo}"

    @property
    def cache_dirname(self) -> str:
        return f"{self.owner}__{self.repo}"


def parse_github_repo_url(repo_url: str) -> GithubRepoRef:
    """Parse ``https://github.com/<owner>/<repo>[.git]``.  Raises ``InvalidInputError`` otherwise."""
    expected = f"https://{GITHUB_HOST}/<owner>/<repo>"
    try:
        parts = urlsplit(repo_url.strip())
    except ValueError:
        parts = None
    if parts is None or parts.scheme != "https" or parts.netloc != GITHUB_HOST:
        msg = f"Only {expected} repositories are supported"
        raise InvalidInputError(msg)

    segments = parts.path.split("/")[1:]
    owner = segments[0] if segments else ""
    repo = segments[1].removesuffix(".git") if len(segments) > 1 else ""
    if not owner or not repo:
        msg = f"Invalid GitHub repository URL: {repo_url} (expected {expected})"
        raise InvalidInputError(msg)
    return GithubRepoRef(owner=owner, repo=repo)


def split_new_repo_name(value: str) -> tuple[str | None, str]:
    """Split ``name`` or ``owner/name`` (optionally ``.git``-suffixed) into (owner, name)."""
    shape = "Repository must be given as <name> or <owner>/<name>"
    parts = [part.strip() for part in value.strip().split("/")]
    if len(parts) > 2:
        msg = f"{shape}: {value!r}"
        raise InvalidInputError(msg)

    owner = parts[0] if len(parts) == 2 else None
    name = parts[-1].removesuffix(".git")
    if not name or (owner is not None and not owner):
        msg = f"{shape}: {value!r}"
        raise InvalidInputError(msg)
    for part in (owner, name):
        if part is not None and not _NAME_RE.match(part):
            msg = f"Invalid repository name segment {part!r}; use letters, digits, '.', '_' or '-'"
            raise InvalidInputError(msg)
    return owner, name


class RemoteRepositoryResolver:
    """Resolves a GitHub reference to a local cache clone, then provisions a worktree."""

    def __init__(self, runner: CommandRunner, local: LocalWorkspaceProvisioner, *, default_cache_root: Path) -> None:
        self._runner = runner
        self._local = local
        self._default_cache_root = default_cache_root

    def cache_root(self, clone_root_path: str | None) -> Path:
        if clone_root_path and clone_root_path.strip():
            return Path(clone_root_path.strip()).expanduser().resolve()
        return self._default_cache_root.expanduser().resolve()

    # -- Existing repository ---------------------------------------------------

    def provision_existing(
        self,
        repo_url: str,
        workspace_name: str,
        *,
        suffix: str,
        worktrees_root: Path,
        clone_root_path: str | None = None,
        branch_name: str | None = None,
        base_ref: str | None = None,
    ) -> PreparedWorkspace:
        """Clone or refresh the cache for *repo_url* and cut a worktree from it."""
        validate_workspace_name(workspace_name)
        validate_branch_name(branch_name)
        ref = parse_github_repo_url(repo_url)
        cache_path = self.cache_root(clone_root_path) / ref.cache_dirname

        if cache_path.exists():
            logger.info("Refreshing cached clone {} ({})", cache_path, ref.full_name)
            self._runner.run(Tool.GIT, ["fetch", "--all", "--prune"], cwd=cache_path)
        else:
            _mkdir(cache_path.parent)
            logger.info("Cloning {} into {}", ref.url, cache_path)
            self._runner.run(Tool.GIT, ["clone", ref.url, str(cache_path)], cwd=cache_path.parent)

        return self._local.provision(
            cache_path,
            workspace_name,
            suffix=suffix,
            worktrees_root=worktrees_root,
            branch_name=branch_name,
            base_ref=base_ref,
        )

    # -- New repository --------------------------------------------------------

    def provision_new(
        self,
        repository: str,
        workspace_name: str,
        *,
        suffix: str,
        worktrees_root: Path,
        clone_root_path: str | None = None,
        branch_name: str | None = None,
        base_ref: str | None = None,
    ) -> tuple[PreparedWorkspace, str]:
        """Create a private GitHub repository, clone it, and cut a worktree.

        Returns the prepared workspace and the canonical URL of the new
        repository.
        """
        validate_workspace_name(workspace_name)
        validate_branch_name(branch_name)
        owner, name = split_new_repo_name(repository)
        if owner is None:
            owner = self.authenticated_user()
        ref = GithubRepoRef(owner=owner, repo=name)

        root = self.cache_root(clone_root_path)
        destination = root / ref.cache_dirname
        if destination.exists():
            msg = f"Clone destination already exists: {destination}"
            raise InvalidInputError(msg)
        _mkdir(root)

        logger.info("Creating private repository {}", ref.full_name)
        self._runner.run(Tool.GH, ["repo", "create", ref.full_name, "--private", "--add-readme"], cwd=root)
        self._runner.run(Tool.GH, ["repo", "clone", ref.full_name, str(destination)], cwd=root)

        prepared = self._local.provision(
            destination,
            workspace_name,
            suffix=suffix,
            worktrees_root=worktrees_root,
            branch_name=branch_name,
            base_ref=base_ref,
        )
        return prepared, ref.url

    # -- GitHub CLI queries ----------------------------------------------------

    def authenticated_user(self) -> str:
        login = self._runner.run(Tool.GH, ["api", "user", "--jq", ".login"])
        if not login:
            msg = "Could not determine the GitHub user; run `gh auth login` or pass <owner>/<name>"
            raise InvalidInputError(msg)
        return login

    def list_repositories(self) -> list[RepositoryCandidate]:
        """Source (non-fork), non-archived repositories visible to the authenticated user."""
        args = [
            "repo",
            "list",
            "--json",
            REPO_LIST_FIELDS,
            "--source",
            "--no-archived",
            "--limit",
            str(REPO_LIST_LIMIT),
        ]
        raw = self._runner.run(Tool.GH, args)
        if not raw:
            return []
        try:
            return _candidates.validate_json(raw)
        except ValidationError as exc:
            raise ExternalToolFailureError(
                str(Tool.GH), args, str(exc), 0, summary="Unexpected output from gh repo list"
            ) from exc


def _mkdir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create directory {path}: {exc}"
        raise IoFailureError(msg) from exc
