"""Domain exceptions for workspace provisioning and the registry.

One class per failure category.  Managers and provisioners raise these and
never HTTP exceptions -- the router (and the CLI) turn them into plain text
for the surrounding application.  ``str(exc)`` is always the user-facing
message.
"""

from __future__ import annotations

from collections.abc import Sequence


class WorkspaceError(Exception):
    """Base class for all workspace failures."""


class IoFailureError(WorkspaceError):
    """Filesystem read or write failed."""


class MalformedStateError(WorkspaceError):
    """The registry file exists but cannot be parsed or violates its invariants."""


class InvalidInputError(WorkspaceError, ValueError):
    """Caller-supplied data failed validation."""


class NotFoundError(WorkspaceError, LookupError):
    """An operation referenced an unknown workspace id."""


class StateUnavailableError(WorkspaceError):
    """The shared registry cannot be used safely any more."""

    def __init__(self, reason: str = "Workspace state is unavailable; restart the application") -> None:
        super().__init__(reason)


class ToolUnavailableError(WorkspaceError):
    """A required external binary could not be located."""

    def __init__(self, tool: str, remediation: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} was not found on PATH. {remediation}")


class ExternalToolFailureError(WorkspaceError):
    """An external binary ran and exited with a non-zero status."""

    def __init__(
        self,
        tool: str,
        args: Sequence[str],
        stderr: str,
        returncode: int | None = None,
        *,
        summary: str | None = None,
    ) -> None:
        self.tool = tool
        self.command_args = list(args)
        self.stderr = stderr
        self.returncode = returncode
        command = " ".join([tool, *self.command_args])
        detail = stderr or f"exited with status {returncode}"
        super().__init__(f"{summary or f'{command} failed'}: {detail}")
