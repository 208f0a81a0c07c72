"""Local filesystem registry store.

Layout::

    {data_root}/workspaces/workspaces.json

Writes are atomic: data is written to a temporary file in the same directory,
then renamed over the target.  A crash mid-write never leaves a truncated
registry behind.  The file and its parent directory are created lazily on
the first write.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from kata.workspaces.errors import IoFailureError, MalformedStateError
from kata.workspaces.models.workspace import RegistryDocument

REGISTRY_RELATIVE_PATH = Path("workspaces") / "workspaces.json"


class LocalRegistryStore:
    """Local filesystem implementation of the RegistryStore protocol."""

    def __init__(self, data_root: str | Path) -> None:
        self._path = Path(data_root) / REGISTRY_RELATIVE_PATH

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> RegistryDocument:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return RegistryDocument()
        except OSError as exc:
            msg = f"Failed to read workspace registry {self._path}: {exc}"
            raise IoFailureError(msg) from exc

        try:
            return RegistryDocument.model_validate_json(raw)
        except ValidationError as exc:
            msg = f"Workspace registry {self._path} is malformed: {exc}"
            raise MalformedStateError(msg) from None

    def write(self, document: RegistryDocument) -> None:
        data = document.model_dump_json(by_alias=True, indent=2)
        try:
            _atomic_write(self._path, data)
        except OSError as exc:
            msg = f"Failed to write workspace registry {self._path}: {exc}"
            raise IoFailureError(msg) from exc


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
