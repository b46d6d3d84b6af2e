"""Storage protocol.

This module defines the storage-facing boundary used by the planners and the
publisher. Concrete implementations adapt a local filesystem or an object
store to this protocol.
"""

from __future__ import annotations

import posixpath
from typing import Protocol


def join_location(parent: str, *parts: str) -> str:
    """Join location components with '/' regardless of backend."""
    return posixpath.join(parent.rstrip("/") or "/", *parts)


def location_name(location: str) -> str:
    """Return the last component of a location."""
    return posixpath.basename(location.rstrip("/"))


def is_hidden_name(name: str) -> bool:
    return name.startswith(".") or name.startswith("_")


class Storage(Protocol):
    """Directory-like storage boundary.

    Locations are '/'-separated strings. A location may hold files or other
    locations. Names starting with '.' or '_' are hidden: they are never
    listed and never counted towards byte sizes.
    """

    def list_dirs(self, root: str, depth: int = 1) -> list[str]:
        """Return non-hidden relative paths exactly ``depth`` levels below root."""

    def exists(self, location: str) -> bool:
        """Return True if anything exists at the location."""

    def delete(self, location: str) -> None:
        """Recursively delete the location. Missing locations are ignored."""

    def rename(self, source: str, destination: str) -> None:
        """Move source to destination. The destination must not exist."""

    def byte_size(self, location: str) -> int:
        """Return the total size of non-hidden files under the location."""

    def read_text(self, location: str) -> str:
        """Read a single text object."""

    def write_text(self, location: str, text: str) -> None:
        """Write a single text object, creating parents as needed."""

    def make_dirs(self, location: str) -> None:
        """Ensure the location exists as a container."""
