"""Incremental job configuration models."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from incremental_rollup.core.domain.errors import UnknownPropertyError
from incremental_rollup.core.domain.types import PartitionCalendar
from incremental_rollup.core.ports.storage import join_location

DEFAULT_TAG = "default"
DEFAULT_BYTES_PER_REDUCER = 256 * 1024 * 1024
DEFAULT_MAX_TO_PROCESS = 90

_COMPACT_DATE = re.compile(r"^\d{8}$")
_TAGGED_BYTES_PER_REDUCER = re.compile(r"^num\.reducers\.([a-z]+)\.bytes\.per\.reducer$")


class WindowConfig(BaseModel):
    """Date window options.

    Dates may be given as ISO strings ("2024-01-31") or compact strings
    ("20240131"). Whether the combination is consistent is decided when the
    window is resolved against available data.
    """

    start_date: date | None = None
    end_date: date | None = None
    days_ago: int | None = Field(default=None, ge=0)
    num_days: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_compact_dates(cls, value: Any) -> Any:
        if isinstance(value, str) and _COMPACT_DATE.match(value):
            return datetime.strptime(value, "%Y%m%d").date()
        return value


class ReduceSizingConfig(BaseModel):
    """Bytes-per-reducer ratios used to size the reduce stage."""

    bytes_per_reducer: int = Field(default=DEFAULT_BYTES_PER_REDUCER, gt=0)
    bytes_per_reducer_by_tag: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("bytes_per_reducer_by_tag")
    @classmethod
    def _positive_ratios(cls, value: dict[str, int]) -> dict[str, int]:
        for tag, ratio in value.items():
            if ratio <= 0:
                raise ValueError(f"bytes per reducer for tag {tag!r} must be > 0")
        return value

    @classmethod
    def from_properties(cls, props: Mapping[str, str]) -> ReduceSizingConfig:
        """Build from flat ``num.reducers.*`` properties.

        ``num.reducers.bytes.per.reducer`` sets the default ratio and
        ``num.reducers.<tag>.bytes.per.reducer`` sets a per-tag ratio. Any other
        key under ``num.reducers.`` is rejected.
        """
        default = DEFAULT_BYTES_PER_REDUCER
        by_tag: dict[str, int] = {}

        for key, raw in props.items():
            if not key.startswith("num.reducers."):
                continue

            if key == "num.reducers.bytes.per.reducer":
                default = int(raw)
                continue

            match = _TAGGED_BYTES_PER_REDUCER.match(key)
            if match is None:
                raise UnknownPropertyError(f"Property not recognized: {key}")

            by_tag[match.group(1)] = int(raw)

        return cls(bytes_per_reducer=default, bytes_per_reducer_by_tag=by_tag)

    def ratio_for(self, tag: str) -> int:
        return self.bytes_per_reducer_by_tag.get(tag, self.bytes_per_reducer)


class CalendarConfig(BaseModel):
    flat_format: str = "%Y%m%d"
    nested_format: str = "%Y/%m/%d"
    timezone: str = "UTC"

    model_config = ConfigDict(extra="forbid")

    def to_calendar(self) -> PartitionCalendar:
        return PartitionCalendar(
            flat_format=self.flat_format,
            nested_format=self.nested_format,
            timezone=self.timezone,
        )


class JobConfig(BaseModel):
    """Configuration of one incremental job.

    JSON example:
        {
          "name": "member-counts",
          "mode": "collapsing",
          "input_paths": ["/data/events"],
          "output_path": "/data/member_counts",
          "window": {"num_days": 30},
          "reuse_previous_output": true
        }
    """

    name: str = Field(..., min_length=1)
    mode: Literal["preserving", "collapsing"]

    input_paths: list[str] = Field(..., min_length=1)
    output_path: str = Field(..., min_length=1)

    window: WindowConfig = Field(default_factory=WindowConfig)

    max_to_process: int | None = Field(default=None, ge=1)
    max_iterations: int = Field(default=20, ge=1)
    fail_on_missing: bool = False
    reuse_previous_output: bool = False
    retention_count: int | None = Field(default=None, ge=1)

    # Fixed reducer count; bypasses the sizer when set
    num_reducers: int | None = Field(default=None, ge=1)
    use_combiner: bool = False

    statistics_path: str | None = None
    write_statistics: bool = True
    staging_path: str | None = None

    reducers: ReduceSizingConfig = Field(default_factory=ReduceSizingConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, job_obj: dict[str, Any]) -> JobConfig:
        """Create a JobConfig instance from a JSON-compatible object."""
        return cls.model_validate(job_obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> JobConfig:
        """Validate options that only make sense for one mode."""
        if self.reuse_previous_output and self.mode != "collapsing":
            raise ValueError("reuse_previous_output requires mode 'collapsing'")

        if len(set(self.input_paths)) != len(self.input_paths):
            raise ValueError("input_paths must be unique")

        if self.output_path in self.input_paths:
            raise ValueError("output_path must differ from every input path")

        return self

    @property
    def effective_max_to_process(self) -> int:
        if self.max_to_process is not None:
            return self.max_to_process
        if self.window.num_days is not None:
            return self.window.num_days
        return DEFAULT_MAX_TO_PROCESS

    @property
    def effective_retention_count(self) -> int | None:
        if self.retention_count is not None:
            return self.retention_count
        if self.mode == "collapsing":
            return 1
        return None

    @property
    def effective_staging_path(self) -> str:
        if self.staging_path is not None:
            return self.staging_path
        return join_location(self.output_path, "_staging")

    def to_calendar(self) -> PartitionCalendar:
        return self.calendar.to_calendar()
