"""
Semantic test: local filesystem storage.

Invariant:
Hidden names ('.' or '_' prefix) never appear in listings and never count
towards sizes. Rename refuses to overwrite and delete ignores missing
locations.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from incremental_rollup.core.domain.types import PartitionCalendar
from incremental_rollup.io.local_storage import LocalStorage
from incremental_rollup.planning.partition_index import (
    find_flat_dated_paths,
    find_nested_dated_paths,
)


def touch(path: Path, size: int = 1) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)


def test_listing_skips_hidden_names(tmp_path: Path) -> None:
    touch(tmp_path / "2024" / "01" / "01" / "part")
    touch(tmp_path / "_staging" / "01" / "01" / "part")
    touch(tmp_path / ".trash" / "01" / "01" / "part")

    assert LocalStorage().list_dirs(str(tmp_path), depth=3) == ["2024/01/01"]


def test_listing_missing_root_is_empty(tmp_path: Path) -> None:
    assert LocalStorage().list_dirs(str(tmp_path / "missing")) == []


def test_byte_size_skips_hidden_files(tmp_path: Path) -> None:
    touch(tmp_path / "out" / "part-00000", 7)
    touch(tmp_path / "out" / ".provenance.json", 100)
    touch(tmp_path / "out" / "_logs" / "history", 100)

    assert LocalStorage().byte_size(str(tmp_path / "out")) == 7


def test_rename_refuses_existing_destination(tmp_path: Path) -> None:
    touch(tmp_path / "a" / "part")
    touch(tmp_path / "b" / "part")

    with pytest.raises(FileExistsError):
        LocalStorage().rename(str(tmp_path / "a"), str(tmp_path / "b"))


def test_rename_creates_parents(tmp_path: Path) -> None:
    touch(tmp_path / "staging" / "part")
    LocalStorage().rename(str(tmp_path / "staging"), str(tmp_path / "out" / "2024" / "01" / "01"))

    assert (tmp_path / "out" / "2024" / "01" / "01" / "part").exists()
    assert not (tmp_path / "staging").exists()


def test_delete_ignores_missing_location(tmp_path: Path) -> None:
    LocalStorage().delete(str(tmp_path / "missing"))


def test_text_round_trip(tmp_path: Path) -> None:
    storage = LocalStorage()
    location = str(tmp_path / "nested" / "note.txt")

    storage.write_text(location, "hello")

    assert storage.read_text(location) == "hello"


def test_dated_listings_ignore_non_canonical_names(tmp_path: Path) -> None:
    calendar = PartitionCalendar()
    for name in ("20240101", "20240102", "2024011", "latest", "20241301"):
        (tmp_path / "flat" / name).mkdir(parents=True)
    for rel in ("2024/01/05", "2024/1/06", "2024/01/xx"):
        (tmp_path / "nested" / rel).mkdir(parents=True)

    storage = LocalStorage()
    flat = find_flat_dated_paths(storage, str(tmp_path / "flat"), calendar)
    nested = find_nested_dated_paths(storage, str(tmp_path / "nested"), calendar)

    assert [item.location.rsplit("/", 1)[-1] for item in flat] == ["20240101", "20240102"]
    assert [item.date.day for item in nested] == [5]
