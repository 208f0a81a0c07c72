"""External tool execution (git and the GitHub CLI).

Every repository operation is delegated to a real ``git`` / ``gh`` binary.
All invocations go through a ``CommandRunner`` so tests can substitute a
recording fake instead of spawning processes.

Two outcomes are kept apart on purpose:

- the binary cannot be located -> ``ToolUnavailableError`` (install guidance)
- the binary ran and exited non-zero -> ``ExternalToolFailureError`` (stderr)

No retries: each call spawns exactly one process.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from loguru import logger

from kata.workspaces.errors import ExternalToolFailureError, IoFailureError, ToolUnavailableError


class Tool(StrEnum):
    GIT = "git"
    GH = "gh"


_REMEDIATION: dict[Tool, str] = {
    Tool.GIT: "Install git and make sure it is on PATH.",
    Tool.GH: "Install the GitHub CLI (gh) and authenticate with `gh auth login`.",
}


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one process run."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Base runner.

    Subclasses implement ``execute`` (spawn and capture, never judge the exit
    status).  ``run`` layers the success/failure contract on top.
    """

    def execute(self, tool: Tool, args: Sequence[str], cwd: str | Path | None = None) -> CommandOutput:
        """Run *tool* with *args* and return whatever it produced.

        Raises ``ToolUnavailableError`` if the binary cannot be located.
        """
        raise NotImplementedError

    def run(self, tool: Tool, args: Sequence[str], cwd: str | Path | None = None) -> str:
        """Run *tool* and return trimmed stdout.

        Raises ``ExternalToolFailureError`` on a non-zero exit, carrying the
        trimmed stderr.
        """
        output = self.execute(tool, args, cwd)
        if not output.ok:
            raise ExternalToolFailureError(str(tool), args, output.stderr.strip(), output.returncode)
        return output.stdout.strip()


class SubprocessCommandRunner(CommandRunner):
    """Runs tools as real subprocesses.

    ``binaries`` maps a tool to the executable to launch (a name looked up
    on PATH or an absolute path), e.g. ``{Tool.GIT: "/usr/local/bin/git"}``.
    """

    def __init__(self, binaries: Mapping[Tool, str] | None = None) -> None:
        self._binaries = {tool: tool.value for tool in Tool}
        if binaries:
            self._binaries.update(binaries)

    def _resolve(self, tool: Tool) -> str:
        executable = shutil.which(self._binaries[tool])
        if executable is None:
            raise ToolUnavailableError(str(tool), _REMEDIATION[tool])
        return executable

    def execute(self, tool: Tool, args: Sequence[str], cwd: str | Path | None = None) -> CommandOutput:
        executable = self._resolve(tool)
        logger.debug("exec: {} {} (cwd={})", tool, " ".join(args), cwd)
        try:
            completed = subprocess.run(  # noqa: S603
                [executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as exc:
            # which() found it, so a missing file here means the cwd is gone
            # or the binary vanished in between.
            if cwd is not None and not Path(cwd).is_dir():
                msg = f"Working directory does not exist: {cwd}"
                raise IoFailureError(msg) from exc
            raise ToolUnavailableError(str(tool), _REMEDIATION[tool]) from exc
        except OSError as exc:
            msg = f"Failed to launch {tool}: {exc}"
            raise IoFailureError(msg) from exc
        return CommandOutput(completed.returncode, completed.stdout, completed.stderr)
