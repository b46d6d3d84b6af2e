"""Shared fixtures for the semantic test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

import pytest

from incremental_rollup.core.domain.types import PartitionCalendar
from incremental_rollup.core.ports.compute_engine import (
    ComputeRequest,
    ComputeResult,
    JobDefinition,
    JobLogic,
    RunStatistics,
    TaskAttempt,
    TaskSchemas,
    TaskTiming,
)
from incremental_rollup.io.local_storage import LocalStorage


@dataclass
class FakeEngine:
    """In-process engine writing one small file per output.

    Preserving requests get one flat-named directory per partition date.
    Collapsing requests get a single file listing the inputs consumed.
    """

    succeed: bool = True
    statistics: RunStatistics | None = None
    requests: list[ComputeRequest] = field(default_factory=list)
    aborted: bool = False

    def run(self, request: ComputeRequest) -> ComputeResult:
        self.requests.append(request)
        staging = Path(request.staging_location)
        staging.mkdir(parents=True, exist_ok=True)

        if request.mode == "preserving":
            for partition_date in request.partition_dates:
                out = staging / partition_date.strftime("%Y%m%d")
                out.mkdir(parents=True, exist_ok=True)
                (out / "part-00000.avro").write_text("rows", encoding="utf-8")
        else:
            consumed = list(request.old_inputs) + list(request.new_inputs)
            (staging / "part-00000.avro").write_text("\n".join(consumed), encoding="utf-8")

        return ComputeResult(
            succeeded=self.succeed,
            job_id=f"job_{len(self.requests):04d}",
            statistics=self.statistics,
            message=None if self.succeed else "task attempts exhausted",
        )

    def abort(self) -> None:
        self.aborted = True


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def calendar() -> PartitionCalendar:
    return PartitionCalendar()


@pytest.fixture
def storage() -> LocalStorage:
    return LocalStorage()


@pytest.fixture
def write_days(tmp_path: Path) -> Callable[..., str]:
    """Create nested day partitions for January 2024 under tmp_path/<source>."""

    def _write(source: str, days: Iterable[int], size: int = 10) -> str:
        root = tmp_path / source
        for n in days:
            partition = root / "2024" / "01" / f"{n:02d}"
            partition.mkdir(parents=True, exist_ok=True)
            (partition / "part-00000.avro").write_bytes(b"x" * size)
        root.mkdir(parents=True, exist_ok=True)
        return str(root)

    return _write


@pytest.fixture
def definition() -> JobDefinition:
    return JobDefinition(
        schemas=TaskSchemas(
            key_schema={"type": "record", "name": "Key"},
            intermediate_value_schema={"type": "long"},
            output_value_schema={"type": "long"},
        ),
        logic=JobLogic(mapper=object(), reducer_accumulator=object()),
    )


@pytest.fixture
def sample_statistics() -> RunStatistics:
    return RunStatistics(
        counters={"RECORDS_IN": 12, "RECORDS_OUT": 3},
        task_timings=(
            TaskTiming("setup", 1000, 1100),
            TaskTiming("map", 1200, 1500),
            TaskTiming("map", 1250, 1350),
            TaskTiming("reduce", 1600, 1900),
            TaskTiming("cleanup", 1950, 2000),
        ),
        attempts=(
            TaskAttempt("map", "SUCCEEDED"),
            TaskAttempt("map", "SUCCEEDED"),
            TaskAttempt("map", "FAILED"),
            TaskAttempt("reduce", "SUCCEEDED"),
        ),
    )
