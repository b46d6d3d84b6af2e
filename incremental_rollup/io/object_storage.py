"""Storage backed by OCI Object Storage.

Object stores have no directories: a location is a key prefix, and a
"directory" exists as long as at least one object lives under it. Renaming
a location renames every object below it one by one, so a concurrent reader
may observe a partially moved prefix. Planning only lists dated locations,
and staged outputs are renamed into names that planning does not read until
the move has finished.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from incremental_rollup.core.ports.storage import is_hidden_name
from incremental_rollup.io.s3_adapter import OCIObjectStorageS3Shim

LOGGER = logging.getLogger(__name__)


def _prefix(location: str) -> str:
    return location.strip("/") + "/"


class ObjectStorage:
    def __init__(
        self,
        bucket: str,
        *,
        client: Any | None = None,
        region: str | None = None,
        auth_mode: str = "instance_principal",
        oci_config_file: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.client = client or OCIObjectStorageS3Shim(
            region=region,
            auth_mode=auth_mode,
            oci_config_file=oci_config_file,
        )

    def _objects_under(self, location: str) -> Iterator[tuple[str, int]]:
        prefix = _prefix(location)
        for obj in self.client.iter_objects(self.bucket, prefix=prefix):
            yield obj["Key"][len(prefix):], int(obj["Size"] or 0)

    def _object(self, location: str) -> dict[str, Any] | None:
        key = location.strip("/")
        for obj in self.client.iter_objects(self.bucket, prefix=key):
            if obj["Key"] == key:
                return obj
        return None

    def list_dirs(self, root: str, depth: int = 1) -> list[str]:
        if depth < 1:
            raise ValueError("depth must be >= 1")

        found: set[str] = set()
        for relative, _ in self._objects_under(root):
            parts = relative.split("/")
            # the last part is the object itself, directories come before it
            if len(parts) <= depth:
                continue

            dirs = parts[:depth]
            if any(not part or is_hidden_name(part) for part in dirs):
                continue

            found.add("/".join(dirs))

        return sorted(found)

    def exists(self, location: str) -> bool:
        if self._object(location) is not None:
            return True
        return next(self._objects_under(location), None) is not None

    def delete(self, location: str) -> None:
        prefix = _prefix(location)
        keys = [prefix + relative for relative, _ in self._objects_under(location)]

        if self._object(location) is not None:
            keys.append(location.strip("/"))

        if keys:
            LOGGER.info("Deleting %d objects under %s", len(keys), location)

        for key in keys:
            self.client.delete_object(self.bucket, key)

    def rename(self, source: str, destination: str) -> None:
        if self.exists(destination):
            raise FileExistsError(destination)

        if self._object(source) is not None:
            self.client.rename_object(self.bucket, source.strip("/"), destination.strip("/"))
            return

        src_prefix = _prefix(source)
        dst_prefix = _prefix(destination)
        moved = list(self._objects_under(source))
        if not moved:
            raise FileNotFoundError(source)

        for relative, _ in moved:
            self.client.rename_object(self.bucket, src_prefix + relative, dst_prefix + relative)

    def byte_size(self, location: str) -> int:
        obj = self._object(location)
        if obj is not None:
            return int(obj["Size"] or 0)

        total = 0
        for relative, size in self._objects_under(location):
            if any(is_hidden_name(part) for part in relative.split("/")):
                continue
            total += size
        return total

    def read_text(self, location: str) -> str:
        if self._object(location) is None:
            raise FileNotFoundError(location)

        resp = self.client.get_object(self.bucket, location.strip("/"))
        return resp["Body"].read().decode("utf-8")

    def write_text(self, location: str, text: str) -> None:
        self.client.put_object(
            self.bucket,
            location.strip("/"),
            text.encode("utf-8"),
            content_type="text/plain; charset=utf-8",
        )

    def make_dirs(self, location: str) -> None:
        # prefixes come into existence with their first object
        return None
