"""Worktree provisioning against a repository on disk.

Validation runs before anything is mutated, in this order:

1. workspace name is not blank and an explicit branch is not ``main`` / ``master``
2. repository path is an existing directory
3. repository path canonicalizes and ``git rev-parse --is-inside-work-tree``
   succeeds (a git failure here is reported as-is, not as bad input)

Then the branch and base ref are resolved, the worktree directory is
checked, and ``git worktree add <path> -b <branch> <base>`` creates both the
branch and the checkout in one step.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from kata.workspaces.errors import ExternalToolFailureError, InvalidInputError, IoFailureError
from kata.workspaces.models.workspace import (
    PROTECTED_BRANCHES,
    PreparedWorkspace,
    derive_branch_name,
    worktree_dirname,
)
from kata.workspaces.runner import CommandRunner, Tool


def validate_workspace_name(workspace_name: str) -> None:
    if not workspace_name.strip():
        msg = "Workspace name must not be empty"
        raise InvalidInputError(msg)


def validate_branch_name(branch_name: str | None) -> None:
    """Reject an explicit ``main`` / ``master`` branch.  Blank means "derive one"."""
    if branch_name and branch_name.strip() in PROTECTED_BRANCHES:
        msg = "Workspace branch cannot be main/master"
        raise InvalidInputError(msg)


class LocalWorkspaceProvisioner:
    """Creates an isolated worktree + branch for a new workspace."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def provision(
        self,
        repo_path: str | Path,
        workspace_name: str,
        *,
        suffix: str,
        worktrees_root: str | Path,
        branch_name: str | None = None,
        base_ref: str | None = None,
    ) -> PreparedWorkspace:
        """Create the worktree and return its canonical paths, branch and base ref."""
        validate_workspace_name(workspace_name)
        validate_branch_name(branch_name)

        repo = Path(repo_path).expanduser()
        if not repo.is_dir():
            msg = f"Repository path does not exist: {repo}"
            raise InvalidInputError(msg)

        try:
            repo_root = repo.resolve(strict=True)
        except OSError as exc:
            msg = f"Repository path cannot be resolved: {repo} ({exc})"
            raise InvalidInputError(msg) from exc

        self._runner.run(Tool.GIT, ["rev-parse", "--is-inside-work-tree"], cwd=repo_root)

        branch = branch_name if branch_name and branch_name.strip() else derive_branch_name(workspace_name, suffix)
        if self.branch_exists(repo_root, branch):
            msg = f"Branch already exists: {branch}"
            raise InvalidInputError(msg)

        resolved_base = base_ref if base_ref and base_ref.strip() else self.detect_default_base_ref(repo_root)

        root = Path(worktrees_root).expanduser().resolve()
        worktree = root / worktree_dirname(workspace_name, suffix)
        if worktree.exists():
            msg = f"Worktree path already exists: {worktree}"
            raise InvalidInputError(msg)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Failed to create worktree root {root}: {exc}"
            raise IoFailureError(msg) from exc

        self._runner.run(
            Tool.GIT,
            ["worktree", "add", str(worktree), "-b", branch, resolved_base],
            cwd=repo_root,
        )

        try:
            worktree_path = worktree.resolve(strict=True)
        except OSError as exc:
            msg = f"Worktree was not created at {worktree}: {exc}"
            raise IoFailureError(msg) from exc

        logger.info("Worktree created: {} (branch={}, base={})", worktree_path, branch, resolved_base)
        return PreparedWorkspace(
            repo_root_path=str(repo_root),
            worktree_path=str(worktree_path),
            branch=branch,
            base_ref=resolved_base,
        )

    # -- Probes ----------------------------------------------------------------

    def branch_exists(self, repo_root: Path, branch: str) -> bool:
        """Whether ``refs/heads/<branch>`` exists.

        ``show-ref --verify --quiet`` exits 1 for a missing ref; any other
        non-zero status is a real git failure.
        """
        args = ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"]
        output = self._runner.execute(Tool.GIT, args, cwd=repo_root)
        if output.ok:
            return True
        if output.returncode == 1:
            return False
        raise ExternalToolFailureError(
            str(Tool.GIT),
            args,
            output.stderr.strip(),
            output.returncode,
            summary="Failed to check branch existence",
        )

    def detect_default_base_ref(self, repo_root: Path) -> str:
        """Pick a base ref: origin's default branch, else the current branch, else ``HEAD``."""
        probes = (
            ["symbolic-ref", "--short", "refs/remotes/origin/HEAD"],
            ["branch", "--show-current"],
        )
        for args in probes:
            try:
                ref = self._runner.run(Tool.GIT, args, cwd=repo_root)
            except ExternalToolFailureError as exc:
                logger.debug("Base ref probe failed ({}): {}", " ".join(args), exc)
                continue
            if ref.strip():
                return ref.strip()
        return "HEAD"
