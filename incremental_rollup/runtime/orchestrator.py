"""Bounded pass loop of an incremental job.

Each pass plans against the current storage state, runs the engine into a
private staging location, publishes the result and prunes old outputs. The
loop continues while a plan reports that more work remains, up to
``max_iterations`` passes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from incremental_rollup.core.domain.errors import (
    ComputeJobFailedError,
    IterationLimitExceededError,
    PublishError,
)
from incremental_rollup.core.ports.compute_engine import ComputeRequest
from incremental_rollup.core.ports.storage import join_location
from incremental_rollup.planning.planner import ExecutionPlanner
from incremental_rollup.runtime.publisher import StagedPublisher, StagingCleaner, apply_retention

if TYPE_CHECKING:
    from incremental_rollup.core.config.job_config import JobConfig
    from incremental_rollup.core.domain.types import PartitionCalendar
    from incremental_rollup.core.ports.compute_engine import (
        ComputeEngine,
        ComputeResult,
        JobDefinition,
    )
    from incremental_rollup.core.ports.provenance import ProvenanceCodec, SchemaResolver
    from incremental_rollup.core.ports.storage import Storage
    from incremental_rollup.planning.planner_models import ExecutionPlan
    from incremental_rollup.runtime.mlflow_pass_logger import MlflowPassLogger
    from incremental_rollup.runtime.prometheus_metrics import PrometheusMetricsClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PassReport:
    iteration: int
    job_name: str
    job_id: str
    window: str
    new_inputs: tuple[str, ...]
    old_inputs: tuple[str, ...]
    reused_output: str | None
    outputs: tuple[str, ...]
    statistics_path: str | None
    reducer_count: int
    duration_seconds: float


class PassOrchestrator:
    def __init__(
        self,
        *,
        config: JobConfig,
        storage: Storage,
        engine: ComputeEngine,
        definition: JobDefinition,
        provenance_codec: ProvenanceCodec | None = None,
        schema_resolver: SchemaResolver | None = None,
        metrics: PrometheusMetricsClient | None = None,
        tracker: MlflowPassLogger | None = None,
        calendar: PartitionCalendar | None = None,
    ) -> None:
        if config.mode == "collapsing" and provenance_codec is None:
            raise ValueError("Collapsing jobs require a provenance_codec")

        self._config = config
        self._storage = storage
        self._engine = engine
        self._definition = definition
        self._provenance_codec = provenance_codec
        self._schema_resolver = schema_resolver
        self._metrics = metrics
        self._tracker = tracker
        self._calendar = calendar or config.to_calendar()

        self._publisher = StagedPublisher(storage, self._calendar, config.effective_staging_path)
        self._cleaner = StagingCleaner(storage)
        self._reports: list[PassReport] = []

    @property
    def reports(self) -> tuple[PassReport, ...]:
        return tuple(self._reports)

    def run(self) -> tuple[PassReport, ...]:
        """Run passes until no work remains.

        Raises IterationLimitExceededError when ``max_iterations`` passes
        have completed and the next plan still has inputs.
        """
        self._remove_stale_staging()

        iterations = 0
        try:
            while True:
                plan = ExecutionPlanner(
                    config=self._config,
                    storage=self._storage,
                    provenance_codec=self._provenance_codec,
                    schema_resolver=self._schema_resolver,
                    calendar=self._calendar,
                ).create_plan()

                if plan.is_empty:
                    LOGGER.info("Found no new input data", extra={"job": self._config.name})
                    break

                if iterations >= self._config.max_iterations:
                    raise IterationLimitExceededError(
                        f"Already completed {iterations} iterations but the max is "
                        f"{self._config.max_iterations} and there are still "
                        f"{len(plan.inputs_to_process)} inputs to process"
                    )

                iterations += 1
                report = self._run_pass(iterations, plan)
                self._reports.append(report)
                self._emit_side_effects(report)

                if not plan.needs_another_pass:
                    break

                LOGGER.info("Job needs another pass", extra={"job": self._config.name})
        finally:
            self._cleaner.clean()

        return self.reports

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------

    def _run_pass(self, iteration: int, plan: ExecutionPlan) -> PassReport:
        config = self._config
        started = time.monotonic()

        with self._publisher.staging(config.name) as staging:
            self._cleaner.add(staging)

            result = self._execute(self._build_request(plan, staging))
            if not result.succeeded:
                raise ComputeJobFailedError(
                    f"{config.name} job {result.job_id} failed: {result.message or 'unknown error'}"
                )

            if config.mode == "collapsing":
                if plan.current_window is None:
                    raise PublishError("Collapsing plan has no output window")
                self._provenance_codec.write(staging, plan.current_window)
                final = join_location(
                    config.output_path,
                    self._calendar.format_flat(plan.current_window.end),
                )
                outputs = [self._publisher.publish(staging, final)]
            else:
                outputs = self._publisher.publish_partitions(
                    staging,
                    config.output_path,
                    plan.dates_to_process,
                )

        statistics_path = None
        if config.write_statistics and result.statistics is not None:
            parent = config.statistics_path
            if parent is None:
                parent = outputs[0] if config.mode == "collapsing" else config.output_path
            statistics_path = self._publisher.write_statistics(result.statistics, parent)

        apply_retention(
            self._storage,
            config.output_path,
            config.effective_retention_count,
            self._calendar,
            nested=config.mode == "preserving",
        )

        previous = plan.previous_output_to_process

        return PassReport(
            iteration=iteration,
            job_name=config.name,
            job_id=result.job_id,
            window=str(plan.current_window) if plan.current_window else "",
            new_inputs=tuple(item.location for item in plan.new_inputs_to_process),
            old_inputs=tuple(item.location for item in plan.old_inputs_to_process),
            reused_output=previous.location if previous else None,
            outputs=tuple(outputs),
            statistics_path=statistics_path,
            reducer_count=plan.reducer_count,
            duration_seconds=time.monotonic() - started,
        )

    def _build_request(self, plan: ExecutionPlan, staging: str) -> ComputeRequest:
        previous = plan.previous_output_to_process
        collapsing = self._config.mode == "collapsing"

        return ComputeRequest(
            job_name=self._config.name,
            mode=self._config.mode,
            new_inputs=tuple(item.location for item in plan.new_inputs_to_process),
            old_inputs=tuple(item.location for item in plan.old_inputs_to_process),
            previous_output=previous.location if previous else None,
            input_schemas=plan.schema_by_path,
            schemas=self._definition.schemas,
            logic=self._definition.logic,
            reducer_count=plan.reducer_count,
            staging_location=staging,
            output_window=plan.current_window if collapsing else None,
            partition_dates=() if collapsing else plan.dates_to_process,
            use_combiner=self._config.use_combiner,
            parameters=self._definition.parameters,
        )

    def _execute(self, request: ComputeRequest) -> ComputeResult:
        LOGGER.info(
            "Submitting job",
            extra={"job": request.job_name, "reducers": request.reducer_count},
        )
        try:
            return self._engine.run(request)
        except KeyboardInterrupt:
            abort = getattr(self._engine, "abort", None)
            if callable(abort):
                try:
                    abort()
                except Exception:
                    LOGGER.exception("Engine abort failed")
            raise

    def _remove_stale_staging(self) -> None:
        root = self._config.effective_staging_path

        if self._config.staging_path is None:
            # private staging root, nothing else lives there
            self._storage.delete(root)
            return

        for name in self._storage.list_dirs(root, depth=1):
            if name.startswith(f"{self._config.name}-"):
                LOGGER.info("Removing stale staging %s", name)
                self._storage.delete(join_location(root, name))

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _emit_side_effects(self, report: PassReport) -> None:
        if self._tracker is not None:
            try:
                self._tracker.log(
                    report=report,
                    duration_seconds=report.duration_seconds,
                    status="success",
                )
            except Exception:
                LOGGER.exception("MLflow logging failed")

        if self._metrics is not None and self._metrics.is_enabled():
            try:
                self._metrics.push_pass(report, mode=self._config.mode)
            except Exception:
                LOGGER.exception("Prometheus push failed")
