"""Output provenance and schema sidecars.

A collapsed output records the window it covers in a hidden
``.provenance.json`` file inside the output location. Hidden files are
excluded from listings and byte sizes, so the record never leaks into the
data read by a later pass.

Document shape:
    {
      "schema_version": "1.0",
      "date_range": {"begin": "2024-01-01", "end": "2024-01-30"}
    }
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

from incremental_rollup.core.domain.types import DateWindow
from incremental_rollup.core.ports.storage import join_location

if TYPE_CHECKING:
    from incremental_rollup.core.ports.storage import Storage

LOGGER = logging.getLogger(__name__)

PROVENANCE_FILE = ".provenance.json"
SCHEMA_FILE = ".schema.json"


class DateRange(BaseModel):
    begin: date
    end: date

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_order(self) -> DateRange:
        if self.begin > self.end:
            raise ValueError("begin must be <= end")
        return self


class OutputProvenance(BaseModel):
    """Window covered by a published output."""

    schema_version: Literal["1.0"] = "1.0"
    date_range: DateRange

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_window(cls, window: DateWindow) -> OutputProvenance:
        return cls(date_range=DateRange(begin=window.begin, end=window.end))

    def to_window(self) -> DateWindow:
        return DateWindow(self.date_range.begin, self.date_range.end)


class JsonProvenanceCodec:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def read(self, location: str) -> DateWindow:
        """Return the window recorded in the output at ``location``.

        Raises FileNotFoundError when no provenance is present and
        ValueError (pydantic ``ValidationError``) when it is malformed.
        """
        raw = self._storage.read_text(join_location(location, PROVENANCE_FILE))
        window = OutputProvenance.model_validate_json(raw).to_window()
        LOGGER.debug("Read provenance %s from %s", window, location)
        return window

    def write(self, location: str, window: DateWindow) -> None:
        doc = OutputProvenance.from_window(window)
        self._storage.write_text(
            join_location(location, PROVENANCE_FILE),
            doc.model_dump_json(),
        )
        LOGGER.info("Recorded date range %s in %s", window, location)


class SidecarSchemaResolver:
    """Reads the record schema stored next to a partition's data.

    The schema is the parsed JSON document of ``.schema.json``. Partitions
    without a sidecar resolve to None.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def schema_for(self, location: str) -> Any:
        path = join_location(location, SCHEMA_FILE)
        if not self._storage.exists(path):
            LOGGER.warning("No schema sidecar found", extra={"location": location})
            return None
        return json.loads(self._storage.read_text(path))
