"""Registry persistence interface.

The registry is a single small JSON document, read once at startup and
rewritten in full after every mutation.  Implementations translate their
own failures into ``IoFailureError`` / ``MalformedStateError``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kata.workspaces.models.workspace import RegistryDocument


@runtime_checkable
class RegistryStore(Protocol):
    """Sync protocol for reading and writing the registry document."""

    def read(self) -> RegistryDocument:
        """Read the registry.  A missing document is an empty registry, not an error."""
        ...

    def write(self, document: RegistryDocument) -> None:
        """Replace the stored registry atomically."""
        ...
