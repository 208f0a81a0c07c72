"""In-process workspace registry.

Holds the registry document in memory, guarded by a single lock, and
persists it through a ``RegistryStore`` after every mutation.  Each public
mutator works on a draft copy: the draft replaces the live document only
after the store write succeeds, so a failed save leaves memory and disk in
agreement.

Invariants re-established by every mutation:

- workspace ids are unique
- ``active_workspace_id`` (if set) names an existing workspace
- archiving / removing the active workspace clears the pointer
- ``worktree_path != repo_root_path``
- ``branch`` is never ``main`` / ``master``

The lock is held for the in-memory change plus the synchronous write only.
Callers must never hold it across a git / gh subprocess.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from loguru import logger

from kata.workspaces.errors import (
    InvalidInputError,
    MalformedStateError,
    NotFoundError,
    StateUnavailableError,
    WorkspaceError,
)
from kata.workspaces.models.enums import WorkspaceStatus
from kata.workspaces.models.workspace import PROTECTED_BRANCHES, RegistryDocument, Workspace, now_iso8601
from kata.workspaces.store.base import RegistryStore


def invariant_violations(document: RegistryDocument) -> list[str]:
    """Describe every invariant the document breaks (empty list when valid)."""
    problems: list[str] = []
    seen: set[str] = set()
    for ws in document.workspaces:
        if ws.id in seen:
            problems.append(f"duplicate workspace id {ws.id}")
        seen.add(ws.id)
        problems.extend(_record_violations(ws))
    if document.active_workspace_id is not None and document.active_workspace_id not in seen:
        problems.append(f"active workspace {document.active_workspace_id} does not exist")
    return problems


def _record_violations(ws: Workspace) -> list[str]:
    problems: list[str] = []
    if ws.worktree_path == ws.repo_root_path:
        problems.append(f"workspace {ws.id} worktree path equals its repository root")
    if ws.branch in PROTECTED_BRANCHES:
        problems.append(f"workspace {ws.id} uses protected branch {ws.branch}")
    return problems


def _find(document: RegistryDocument, workspace_id: str) -> Workspace:
    for ws in document.workspaces:
        if ws.id == workspace_id:
            return ws
    msg = f"Workspace not found: {workspace_id}"
    raise NotFoundError(msg)


class WorkspaceRegistry:
    """Thread-safe, persisted catalog of workspaces plus the active pointer.

    Constructed once at startup (see ``load``) and shared by reference.
    """

    def __init__(
        self,
        store: RegistryStore,
        *,
        document: RegistryDocument | None = None,
        lock_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._document = document or RegistryDocument()
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._poisoned = False

    @classmethod
    def load(cls, store: RegistryStore, *, lock_timeout: float = 10.0) -> WorkspaceRegistry:
        """Read the stored registry.  A missing file yields an empty registry."""
        document = store.read()
        problems = invariant_violations(document)
        if problems:
            msg = f"Workspace registry is inconsistent: {'; '.join(problems)}"
            raise MalformedStateError(msg)
        logger.info(
            "Workspace registry loaded: {} workspaces (active={})",
            len(document.workspaces),
            document.active_workspace_id,
        )
        return cls(store, document=document, lock_timeout=lock_timeout)

    # -- Locking ---------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if self._poisoned:
            raise StateUnavailableError
        if not self._lock.acquire(timeout=self._lock_timeout):
            msg = "Workspace state is unavailable (registry lock timed out); restart the application"
            raise StateUnavailableError(msg)
        try:
            yield
        except WorkspaceError:
            raise
        except BaseException:
            self._poisoned = True
            logger.exception("Registry: unexpected failure while holding the lock; state marked unavailable")
            raise
        finally:
            self._lock.release()

    def _mutate(self, change: Callable[[RegistryDocument], Workspace]) -> Workspace:
        with self._locked():
            draft = self._document.model_copy(deep=True)
            result = change(draft)
            problems = invariant_violations(draft)
            if problems:
                msg = f"Workspace registry change rejected: {'; '.join(problems)}"
                raise MalformedStateError(msg)
            self._store.write(draft)
            self._document = draft
            return result.model_copy()

    # -- Query -----------------------------------------------------------------

    def list(self) -> list[Workspace]:
        """Snapshot of all workspaces in insertion order."""
        with self._locked():
            return [ws.model_copy() for ws in self._document.workspaces]

    def get(self, workspace_id: str) -> Workspace:
        with self._locked():
            return _find(self._document, workspace_id).model_copy()

    def active_workspace_id(self) -> str | None:
        with self._locked():
            return self._document.active_workspace_id

    # -- Mutation --------------------------------------------------------------

    def save(self) -> None:
        with self._locked():
            self._store.write(self._document)

    def insert(self, workspace: Workspace, *, activate: bool = False) -> Workspace:
        """Append a workspace (and optionally make it active) and persist."""

        def change(doc: RegistryDocument) -> Workspace:
            if any(ws.id == workspace.id for ws in doc.workspaces):
                msg = f"Workspace already exists: {workspace.id}"
                raise InvalidInputError(msg)
            problems = _record_violations(workspace)
            if problems:
                msg = f"Invalid workspace record: {'; '.join(problems)}"
                raise InvalidInputError(msg)
            record = workspace.model_copy()
            doc.workspaces.append(record)
            if activate:
                _activate(doc, record, at=record.updated_at)
            return record

        inserted = self._mutate(change)
        logger.info("Registry: inserted workspace {} (active={})", inserted.id, activate)
        return inserted

    def set_active(self, workspace_id: str) -> Workspace:
        """Make a workspace active and stamp ``updated_at`` / ``last_opened_at``."""

        def change(doc: RegistryDocument) -> Workspace:
            record = _find(doc, workspace_id)
            _activate(doc, record)
            return record

        return self._mutate(change)

    def archive(self, workspace_id: str) -> Workspace:
        """Mark a workspace archived; clears the active pointer if it pointed here."""

        def change(doc: RegistryDocument) -> Workspace:
            record = _find(doc, workspace_id)
            record.status = WorkspaceStatus.ARCHIVED
            record.updated_at = now_iso8601()
            if doc.active_workspace_id == workspace_id:
                doc.active_workspace_id = None
            return record

        archived = self._mutate(change)
        logger.info("Registry: archived workspace {}", workspace_id)
        return archived

    def remove(self, workspace_id: str) -> Workspace:
        """Remove and return a workspace; clears the active pointer if it pointed here."""

        def change(doc: RegistryDocument) -> Workspace:
            record = _find(doc, workspace_id)
            doc.workspaces = [ws for ws in doc.workspaces if ws.id != workspace_id]
            if doc.active_workspace_id == workspace_id:
                doc.active_workspace_id = None
            return record

        removed = self._mutate(change)
        logger.info("Registry: removed workspace {}", workspace_id)
        return removed


def _activate(doc: RegistryDocument, record: Workspace, *, at: str | None = None) -> None:
    now = at or now_iso8601()
    record.last_opened_at = now
    record.updated_at = now
    doc.active_workspace_id = record.id
