"""
Semantic test: object storage directory emulation.

Invariant:
Over a flat key space, a location behaves like a directory: it exists while
objects live under it, listing sees only non-hidden directory names, and
rename or delete act on every object below the prefix.
"""

from __future__ import annotations

import io

import pytest

from incremental_rollup.io.object_storage import ObjectStorage


class FakeShim:
    """In-memory stand-in for the OCI shim's boto3-like surface."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects = dict(objects or {})

    def iter_objects(self, bucket, prefix=None):
        for key in sorted(self.objects):
            if prefix is None or key.startswith(prefix):
                yield {"Key": key, "Size": len(self.objects[key])}

    def put_object(self, bucket, key, body, content_type="application/octet-stream"):
        self.objects[key] = body
        return {"ETag": None}

    def get_object(self, bucket, key):
        return {"Body": io.BytesIO(self.objects[key])}

    def delete_object(self, bucket, key):
        del self.objects[key]

    def rename_object(self, bucket, source_key, destination_key):
        self.objects[destination_key] = self.objects.pop(source_key)


@pytest.fixture
def shim() -> FakeShim:
    return FakeShim(
        {
            "events/2024/01/01/part-00000": b"aaaa",
            "events/2024/01/02/part-00000": b"bb",
            "events/2024/01/02/.schema.json": b"{}",
            "events/_staging/job-1/part-00000": b"c",
            "rollup/20240108/part-00000": b"dddddd",
            "rollup/20240108/.provenance.json": b"{}",
        }
    )


@pytest.fixture
def store(shim: FakeShim) -> ObjectStorage:
    return ObjectStorage("analytics", client=shim)


def test_nested_listing_skips_hidden_prefixes(store: ObjectStorage) -> None:
    assert store.list_dirs("events", depth=3) == ["2024/01/01", "2024/01/02"]


def test_flat_listing(store: ObjectStorage) -> None:
    assert store.list_dirs("rollup", depth=1) == ["20240108"]


def test_prefix_exists_while_objects_live_under_it(store: ObjectStorage) -> None:
    assert store.exists("events/2024/01/01")
    assert store.exists("rollup/20240108/part-00000")
    assert not store.exists("events/2024/01/03")


def test_byte_size_skips_hidden_objects(store: ObjectStorage) -> None:
    assert store.byte_size("events/2024/01/02") == 2
    assert store.byte_size("rollup/20240108") == 6


def test_rename_moves_every_object(store: ObjectStorage, shim: FakeShim) -> None:
    store.rename("rollup/20240108", "rollup/20240110")

    assert "rollup/20240110/part-00000" in shim.objects
    assert "rollup/20240110/.provenance.json" in shim.objects
    assert not store.exists("rollup/20240108")


def test_rename_refuses_existing_destination(store: ObjectStorage) -> None:
    with pytest.raises(FileExistsError):
        store.rename("events/2024/01/01", "events/2024/01/02")


def test_rename_of_missing_location_fails(store: ObjectStorage) -> None:
    with pytest.raises(FileNotFoundError):
        store.rename("events/2024/01/09", "events/2024/01/10")


def test_delete_removes_prefix_only(store: ObjectStorage, shim: FakeShim) -> None:
    store.delete("events/2024/01/02")

    assert not store.exists("events/2024/01/02")
    assert store.exists("events/2024/01/01")


def test_text_round_trip_and_missing_read(store: ObjectStorage) -> None:
    store.write_text("rollup/20240108/.note", "hello")

    assert store.read_text("rollup/20240108/.note") == "hello"
    with pytest.raises(FileNotFoundError):
        store.read_text("rollup/20240108/.missing")
