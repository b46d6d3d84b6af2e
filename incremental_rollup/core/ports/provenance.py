"""Provenance and schema protocols."""

from __future__ import annotations

from typing import Any, Protocol

from incremental_rollup.core.domain.types import DateWindow


class ProvenanceCodec(Protocol):
    """Reads and writes the date window embedded in a published output."""

    def read(self, location: str) -> DateWindow:
        """Return the window the output at ``location`` covers."""

    def write(self, location: str, window: DateWindow) -> None:
        """Record ``window`` inside the output at ``location``."""


class SchemaResolver(Protocol):
    """Resolves the record schema of a single input partition."""

    def schema_for(self, location: str) -> Any:
        """Return the schema of the records stored at ``location``."""
