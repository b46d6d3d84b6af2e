from __future__ import annotations

import logging
import shutil
from pathlib import Path

from incremental_rollup.core.ports.storage import is_hidden_name

LOGGER = logging.getLogger(__name__)


class LocalStorage:
    """Storage backed by the local filesystem.

    Locations are plain filesystem paths. Hidden names ('.' or '_' prefix)
    are skipped by listings and byte counts.
    """

    def list_dirs(self, root: str, depth: int = 1) -> list[str]:
        if depth < 1:
            raise ValueError("depth must be >= 1")

        base = Path(root)
        if not base.is_dir():
            return []

        level: list[Path] = [base]
        for _ in range(depth):
            level = [
                child
                for parent in level
                for child in sorted(parent.iterdir())
                if child.is_dir() and not is_hidden_name(child.name)
            ]

        return [child.relative_to(base).as_posix() for child in level]

    def exists(self, location: str) -> bool:
        return Path(location).exists()

    def delete(self, location: str) -> None:
        path = Path(location)
        if path.is_dir():
            LOGGER.info("Deleting %s", location)
            shutil.rmtree(path)
        elif path.exists():
            LOGGER.info("Deleting %s", location)
            path.unlink()

    def rename(self, source: str, destination: str) -> None:
        dst = Path(destination)
        if dst.exists():
            raise FileExistsError(destination)

        dst.parent.mkdir(parents=True, exist_ok=True)
        Path(source).rename(dst)

    def byte_size(self, location: str) -> int:
        path = Path(location)
        if path.is_file():
            return path.stat().st_size

        total = 0
        for child in path.rglob("*"):
            relative = child.relative_to(path)
            if any(is_hidden_name(part) for part in relative.parts):
                continue
            if child.is_file():
                total += child.stat().st_size
        return total

    def read_text(self, location: str) -> str:
        return Path(location).read_text(encoding="utf-8")

    def write_text(self, location: str, text: str) -> None:
        path = Path(location)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def make_dirs(self, location: str) -> None:
        Path(location).mkdir(parents=True, exist_ok=True)
