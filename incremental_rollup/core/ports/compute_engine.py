"""Compute engine protocol.

The distributed engine that executes map/combine/reduce over the selected
partitions is an external collaborator. This module fixes the request and
result shapes exchanged with it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Mapping, Protocol

from incremental_rollup.core.domain.types import DateWindow

JobMode = Literal["preserving", "collapsing"]
TaskKind = Literal["setup", "map", "reduce", "cleanup"]


@dataclass(frozen=True, slots=True)
class TaskSchemas:
    """
    Record schema triple describing keys and values of the job.

    The schema objects are opaque to this package.
    """

    key_schema: Any
    intermediate_value_schema: Any
    output_value_schema: Any


@dataclass(frozen=True, slots=True)
class JobLogic:
    """
    User-supplied aggregation logic passed through to the engine.
    """

    mapper: Any
    reducer_accumulator: Any
    combiner_accumulator: Any = None
    record_merger: Any = None
    old_record_merger: Any = None


@dataclass(frozen=True, slots=True)
class JobDefinition:
    """
    Everything about a job the engine needs besides its inputs.

    ``parameters`` is passed through to every request unchanged.
    """

    schemas: TaskSchemas
    logic: JobLogic
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ComputeRequest:
    """
    One pass worth of work for the engine.

    Preserving jobs must write one sub-location per entry of
    ``partition_dates`` under ``staging_location``, named with the flat day
    format. Collapsing jobs write a single output directly into
    ``staging_location``.
    """

    job_name: str
    mode: JobMode
    new_inputs: tuple[str, ...]
    old_inputs: tuple[str, ...]
    previous_output: str | None
    input_schemas: Mapping[str, Any]
    schemas: TaskSchemas
    logic: JobLogic
    reducer_count: int
    staging_location: str
    output_window: DateWindow | None = None
    partition_dates: tuple[date, ...] = ()
    use_combiner: bool = False
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TaskTiming:
    kind: TaskKind
    start_ms: int
    finish_ms: int


@dataclass(frozen=True, slots=True)
class TaskAttempt:
    kind: TaskKind
    status: str  # e.g. "SUCCEEDED", "FAILED", "KILLED"


@dataclass(frozen=True, slots=True)
class RunStatistics:
    """
    Side-channel statistics exposed by the engine for a finished run.
    """

    counters: Mapping[str, int] = field(default_factory=dict)
    task_timings: tuple[TaskTiming, ...] = ()
    attempts: tuple[TaskAttempt, ...] = ()


@dataclass(frozen=True, slots=True)
class ComputeResult:
    succeeded: bool
    job_id: str
    statistics: RunStatistics | None = None
    message: str | None = None


class ComputeEngine(Protocol):
    """Engine-facing execution boundary.

    ``run`` blocks until the job completes. Engines may additionally expose
    ``abort()`` for best-effort cancellation of an outstanding job.
    """

    def run(self, request: ComputeRequest) -> ComputeResult:
        """Execute one pass and report success and statistics."""
