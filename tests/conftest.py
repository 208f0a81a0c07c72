"""Shared test fixtures.

Most tests run against a recording ``FakeCommandRunner`` and never spawn a
process.  Tests that need a real repository use the ``git_repo`` fixture,
which is skipped when ``git`` is not on PATH.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import pytest

from kata.workspaces.errors import ToolUnavailableError
from kata.workspaces.models.enums import WorkspaceSourceType, WorkspaceStatus
from kata.workspaces.models.workspace import Workspace, now_iso8601
from kata.workspaces.runner import CommandOutput, CommandRunner, Tool

# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Call:
    tool: Tool
    args: list[str]
    cwd: str | None


@dataclass
class _Rule:
    tool: Tool
    prefix: tuple[str, ...]
    output: CommandOutput
    effect: Callable[[list[str]], None] | None


def _mkdir_arg(index: int) -> Callable[[list[str]], None]:
    def effect(args: list[str]) -> None:
        Path(args[index]).mkdir(parents=True)

    return effect


class FakeCommandRunner(CommandRunner):
    """Records every call and answers from prefix rules (latest rule wins).

    Defaults mimic a healthy repository: the branch probe reports "missing"
    (exit 1) and worktree add / clone calls create their target directory.
    Anything else succeeds with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self.missing: set[Tool] = set()
        self._rules: list[_Rule] = []
        self.on(Tool.GIT, "show-ref", returncode=1)
        self.on(Tool.GIT, "worktree", "add", effect=_mkdir_arg(2))
        self.on(Tool.GIT, "clone", effect=_mkdir_arg(2))
        self.on(Tool.GH, "repo", "clone", effect=_mkdir_arg(3))

    def on(
        self,
        tool: Tool,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        effect: Callable[[list[str]], None] | None = None,
    ) -> None:
        self._rules.append(_Rule(tool, prefix, CommandOutput(returncode, stdout, stderr), effect))

    def execute(self, tool: Tool, args: Sequence[str], cwd: str | Path | None = None) -> CommandOutput:
        args = list(args)
        self.calls.append(Call(tool, args, None if cwd is None else str(cwd)))
        if tool in self.missing:
            raise ToolUnavailableError(str(tool), "Install it.")
        for rule in reversed(self._rules):
            if rule.tool == tool and tuple(args[: len(rule.prefix)]) == rule.prefix:
                if rule.effect is not None and rule.output.ok:
                    rule.effect(args)
                return rule.output
        return CommandOutput(0, "", "")

    def commands(self, tool: Tool | None = None) -> list[list[str]]:
        return [c.args for c in self.calls if tool is None or c.tool == tool]


@pytest.fixture
def runner() -> FakeCommandRunner:
    return FakeCommandRunner()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def make_workspace(workspace_id: str = "ws_1", **overrides: object) -> Workspace:
    """A valid registry record for tests that do not provision anything."""
    now = now_iso8601()
    fields: dict[str, object] = {
        "id": workspace_id,
        "name": "KAT-154",
        "source_type": WorkspaceSourceType.LOCAL,
        "source": "/tmp/repo",
        "repo_root_path": "/tmp/repo",
        "worktree_path": f"/tmp/repo.worktrees/{workspace_id}",
        "branch": f"workspace/kat-154-{workspace_id}",
        "base_ref": "main",
        "status": WorkspaceStatus.READY,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Workspace(**fields)


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Kata Test",
    "GIT_AUTHOR_EMAIL": "kata@example.com",
    "GIT_COMMITTER_NAME": "Kata Test",
    "GIT_COMMITTER_EMAIL": "kata@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(repo: Path, *args: str) -> str:
    env = {**os.environ, **_GIT_ENV}
    result = subprocess.run(["git", *args], cwd=repo, env=env, capture_output=True, text=True, check=True)
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository on ``main`` with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init")
    git(repo, "checkout", "-B", "main")
    (repo / "README.md").write_text("# fixture\n", encoding="utf-8")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "initial")
    return repo
