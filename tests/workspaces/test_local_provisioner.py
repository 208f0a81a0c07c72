"""Tests for LocalWorkspaceProvisioner.

The first group uses the recording fake runner and asserts on the exact git
calls; the second group runs against a real repository.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from kata.workspaces.errors import ExternalToolFailureError, InvalidInputError
from kata.workspaces.provisioning.local import LocalWorkspaceProvisioner
from kata.workspaces.runner import SubprocessCommandRunner, Tool
from conftest import FakeCommandRunner, git, requires_git

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def worktrees_root(tmp_path: Path) -> Path:
    return tmp_path / "data" / "workspaces"


def _provision(runner: FakeCommandRunner, repo: Path, worktrees_root: Path, name: str = "KAT 154!!", **kwargs):  # noqa: ANN202
    return LocalWorkspaceProvisioner(runner).provision(
        repo, name, suffix="ab12", worktrees_root=worktrees_root, **kwargs
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_name_rejected_before_any_call(
    runner: FakeCommandRunner, repo: Path, worktrees_root: Path, name: str
) -> None:
    with pytest.raises(InvalidInputError, match="must not be empty"):
        _provision(runner, repo, worktrees_root, name=name)
    assert runner.calls == []


def test_missing_repository_rejected_without_git(runner: FakeCommandRunner, tmp_path: Path, worktrees_root: Path) -> None:
    with pytest.raises(InvalidInputError, match="does not exist"):
        _provision(runner, tmp_path / "nope", worktrees_root)
    assert runner.calls == []


def test_file_instead_of_directory_rejected(runner: FakeCommandRunner, tmp_path: Path, worktrees_root: Path) -> None:
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x", encoding="utf-8")
    with pytest.raises(InvalidInputError):
        _provision(runner, not_a_dir, worktrees_root)
    assert runner.calls == []


def test_not_a_work_tree_surfaces_git_failure(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "rev-parse", returncode=128, stderr="fatal: not a git repository")
    with pytest.raises(ExternalToolFailureError, match="not a git repository"):
        _provision(runner, repo, worktrees_root)


@pytest.mark.parametrize("branch", ["main", "master"])
def test_protected_branch_rejected(runner: FakeCommandRunner, repo: Path, worktrees_root: Path, branch: str) -> None:
    with pytest.raises(InvalidInputError, match="main/master"):
        _provision(runner, repo, worktrees_root, branch_name=branch)
    assert runner.calls == []


def test_existing_branch_rejected(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "show-ref", returncode=0)
    with pytest.raises(InvalidInputError, match="feature/existing"):
        _provision(runner, repo, worktrees_root, branch_name="feature/existing")


def test_branch_probe_error_is_git_failure(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "show-ref", returncode=128, stderr="fatal: corrupt refs")
    with pytest.raises(ExternalToolFailureError, match="Failed to check branch existence: fatal: corrupt refs"):
        _provision(runner, repo, worktrees_root)


def test_existing_worktree_path_rejected(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    (worktrees_root / "kat-154-ab12").mkdir(parents=True)
    with pytest.raises(InvalidInputError, match="already exists"):
        _provision(runner, repo, worktrees_root)
    assert ["worktree", "add"] not in [args[:2] for args in runner.commands()]


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


def test_derives_branch_and_path(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "symbolic-ref", stdout="origin/main\n")
    prepared = _provision(runner, repo, worktrees_root)

    expected_path = (worktrees_root / "kat-154-ab12").resolve()
    assert prepared.branch == "workspace/kat-154-ab12"
    assert prepared.base_ref == "origin/main"
    assert prepared.worktree_path == str(expected_path)
    assert prepared.repo_root_path == str(repo.resolve())
    assert prepared.worktree_path != prepared.repo_root_path
    assert runner.commands()[-1] == [
        "worktree",
        "add",
        str((worktrees_root / "kat-154-ab12").resolve()),
        "-b",
        "workspace/kat-154-ab12",
        "origin/main",
    ]
    assert runner.calls[-1].cwd == str(repo.resolve())


def test_explicit_branch_and_base_used_verbatim(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    prepared = _provision(runner, repo, worktrees_root, branch_name="feature/login", base_ref="v1.2.0")
    assert prepared.branch == "feature/login"
    assert prepared.base_ref == "v1.2.0"
    assert not any(args[0] in ("symbolic-ref", "branch") for args in runner.commands())


def test_blank_branch_falls_back_to_derived(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    prepared = _provision(runner, repo, worktrees_root, branch_name="  ", base_ref=" ")
    assert prepared.branch == "workspace/kat-154-ab12"
    assert prepared.base_ref == "HEAD"


def test_base_ref_falls_back_to_current_branch(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "symbolic-ref", returncode=128, stderr="fatal: ref refs/remotes/origin/HEAD is not a symbolic ref")
    runner.on(Tool.GIT, "branch", "--show-current", stdout="develop\n")
    assert _provision(runner, repo, worktrees_root).base_ref == "develop"


def test_base_ref_falls_back_to_head(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "symbolic-ref", returncode=128, stderr="fatal")
    runner.on(Tool.GIT, "branch", "--show-current", returncode=128, stderr="fatal")
    assert _provision(runner, repo, worktrees_root).base_ref == "HEAD"


def test_worktree_add_failure_propagates(runner: FakeCommandRunner, repo: Path, worktrees_root: Path) -> None:
    runner.on(Tool.GIT, "worktree", "add", returncode=128, stderr="fatal: invalid reference: nope")
    with pytest.raises(ExternalToolFailureError, match="invalid reference: nope"):
        _provision(runner, repo, worktrees_root, base_ref="nope")


# ---------------------------------------------------------------------------
# Real git
# ---------------------------------------------------------------------------


@requires_git
def test_creates_worktree_in_separate_path(git_repo: Path, tmp_path: Path) -> None:
    provisioner = LocalWorkspaceProvisioner(SubprocessCommandRunner())
    root = tmp_path / "workspaces"
    prepared = provisioner.provision(git_repo, "KAT-154", suffix="ab12", worktrees_root=root)

    assert prepared.worktree_path != prepared.repo_root_path
    assert Path(prepared.worktree_path) == (root / "kat-154-ab12").resolve()
    assert (Path(prepared.worktree_path) / "README.md").is_file()
    assert prepared.base_ref == "main"
    assert git(Path(prepared.worktree_path), "branch", "--show-current") == "workspace/kat-154-ab12"


@requires_git
def test_real_repo_rejects_main(git_repo: Path, tmp_path: Path) -> None:
    provisioner = LocalWorkspaceProvisioner(SubprocessCommandRunner())
    with pytest.raises(InvalidInputError, match="main/master"):
        provisioner.provision(git_repo, "KAT-154", suffix="ab12", worktrees_root=tmp_path / "w", branch_name="main")


@requires_git
def test_real_repo_rejects_existing_branch(git_repo: Path, tmp_path: Path) -> None:
    git(git_repo, "branch", "feature/existing")
    provisioner = LocalWorkspaceProvisioner(SubprocessCommandRunner())
    with pytest.raises(InvalidInputError, match="feature/existing"):
        provisioner.provision(
            git_repo, "KAT-154", suffix="ab12", worktrees_root=tmp_path / "w", branch_name="feature/existing"
        )
    assert not (tmp_path / "w").exists()


@requires_git
def test_real_directory_without_git_is_git_failure(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    provisioner = LocalWorkspaceProvisioner(SubprocessCommandRunner())
    with pytest.raises(ExternalToolFailureError):
        provisioner.provision(plain, "KAT-154", suffix="ab12", worktrees_root=tmp_path / "w")


@requires_git
def test_relative_worktree_root_lands_outside_repository(
    git_repo: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)

    provisioner = LocalWorkspaceProvisioner(SubprocessCommandRunner())
    prepared = provisioner.provision(git_repo, "KAT-154", suffix="ab12", worktrees_root="data/workspaces")

    assert Path(prepared.worktree_path) == (elsewhere / "data" / "workspaces" / "kat-154-ab12").resolve()
    assert (Path(prepared.worktree_path) / "README.md").is_file()
    assert not (git_repo / "data").exists()
