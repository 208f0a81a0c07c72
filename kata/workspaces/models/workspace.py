"""Workspace data model and naming rules.

A workspace is an isolated git worktree (plus its own branch) cut from a
local repository or a cached clone of a GitHub repository.  Records live in
a single JSON registry file::

    {data_root}/workspaces/workspaces.json

Keys are camelCase on disk and over the API; Python code uses snake_case.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kata.workspaces.models.enums import WorkspaceSourceType, WorkspaceStatus

WORKSPACE_ID_PREFIX = "ws_"
SUFFIX_LENGTH = 4
PROTECTED_BRANCHES = frozenset({"main", "master"})
DEFAULT_WORKSPACE_NAME = "Workspace"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Workspace(CamelModel):
    """Persisted workspace record."""

    id: str
    name: str
    source_type: WorkspaceSourceType
    source: str = Field(description="Path or URL exactly as given by the caller.")
    repo_root_path: str = Field(description="Canonical path of the origin repository.")
    worktree_path: str = Field(description="Canonical path of the isolated checkout.")
    branch: str
    base_ref: str | None = None
    status: WorkspaceStatus
    created_at: str
    updated_at: str
    last_opened_at: str | None = None


class RegistryDocument(CamelModel):
    """On-disk registry: ordered workspaces plus the active pointer."""

    workspaces: list[Workspace] = Field(default_factory=list)
    active_workspace_id: str | None = None


@dataclass(frozen=True)
class PreparedWorkspace:
    """Result of a successful provisioning call (never persisted)."""

    repo_root_path: str
    worktree_path: str
    branch: str
    base_ref: str


# -- Timestamps ----------------------------------------------------------------


def now_iso8601() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. ``2026-02-28T00:00:00.000Z``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# -- Identity ------------------------------------------------------------------


def next_workspace_id() -> str:
    """Generate a fresh workspace id: ``ws_`` followed by 32 hex characters."""
    return f"{WORKSPACE_ID_PREFIX}{uuid.uuid4().hex}"


def workspace_suffix(workspace_id: str) -> str:
    """Short disambiguating suffix derived from a workspace id.

    The first four characters after the ``ws_`` prefix.  Ids without the
    prefix fall back to ``ws``.  Branch and worktree directory names embed
    this suffix, so it must stay a pure function of the id.
    """
    if not workspace_id.startswith(WORKSPACE_ID_PREFIX):
        return "ws"
    return workspace_id[len(WORKSPACE_ID_PREFIX) :][:SUFFIX_LENGTH]


# -- Naming --------------------------------------------------------------------


def slugify(value: str) -> str:
    """Lower-case ASCII slug with single ``-`` separators.

    ``slugify("KAT 154!!") == "kat-154"``; an input with no ASCII letters or
    digits becomes ``"workspace"``.
    """
    chars: list[str] = []
    prev_dash = False
    for ch in value:
        lowered = ch.lower() if ch.isascii() else ch
        if lowered.isascii() and lowered.isalnum():
            chars.append(lowered)
            prev_dash = False
        elif not prev_dash:
            chars.append("-")
            prev_dash = True
    return "".join(chars).strip("-") or "workspace"


def derive_branch_name(name: str, suffix: str) -> str:
    return f"workspace/{slugify(name)}-{suffix}"


def worktree_dirname(name: str, suffix: str) -> str:
    return f"{slugify(name)}-{suffix}"


def derive_name_from_source(source: str) -> str:
    """Suggest a workspace name from a repository path, URL or ``owner/name``."""
    trimmed = source.strip().rstrip("/\\")
    last = trimmed.replace("\\", "/").rsplit("/", 1)[-1]
    last = last.removesuffix(".git")
    return last or DEFAULT_WORKSPACE_NAME


def derive_unique_workspace_name(name: str, existing: Iterable[str]) -> str:
    """Return *name*, or ``"<name> N"`` for the smallest N >= 2 not already taken."""
    base = name.strip() or DEFAULT_WORKSPACE_NAME
    taken = set(existing)
    if base not in taken:
        return base
    n = 2
    while f"{base} {n}" in taken:
        n += 1
    return f"{base} {n}"
