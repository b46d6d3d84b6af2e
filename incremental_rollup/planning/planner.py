from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from incremental_rollup.core.domain.errors import PlanAlreadyExistsError, PlanNotYetCreatedError
from incremental_rollup.planning.alignment import align_partitions, ensure_complete_coverage
from incremental_rollup.planning.collapsing import select_collapsing_inputs
from incremental_rollup.planning.partition_index import (
    build_partition_indices,
    find_flat_dated_paths,
    find_nested_dated_paths,
)
from incremental_rollup.planning.planner_models import (
    ExecutionPlan,
    InputSelection,
    StorageSnapshot,
)
from incremental_rollup.planning.preserving import select_preserving_inputs
from incremental_rollup.planning.reduce_sizer import ReduceSizer
from incremental_rollup.planning.window import resolve_configured_window

if TYPE_CHECKING:
    from datetime import date

    from incremental_rollup.core.config.job_config import JobConfig
    from incremental_rollup.core.domain.types import DatedLocation, DateWindow, PartitionCalendar
    from incremental_rollup.core.ports.provenance import ProvenanceCodec, SchemaResolver
    from incremental_rollup.core.ports.storage import Storage

LOGGER = logging.getLogger(__name__)

INPUT_TAG = "input"
PREVIOUS_TAG = "previous"


def take_snapshot(
    *,
    config: JobConfig,
    storage: Storage,
    calendar: PartitionCalendar,
    provenance_codec: ProvenanceCodec | None = None,
) -> StorageSnapshot:
    """
    Read everything planning needs from storage.

    Preserving outputs are listed as nested day paths, collapsing outputs as
    flat day names. The provenance of the latest collapsing output is read
    only when the job may reuse it; an unreadable provenance means there is
    nothing to reuse.
    """

    indices = build_partition_indices(storage, config.input_paths, calendar)

    if config.mode == "preserving":
        outputs = find_nested_dated_paths(storage, config.output_path, calendar)
    else:
        outputs = find_flat_dated_paths(storage, config.output_path, calendar)

    latest_output_window: DateWindow | None = None

    if config.mode == "collapsing" and config.reuse_previous_output and outputs:
        if provenance_codec is None:
            raise ValueError("provenance_codec is required to reuse previous output")

        latest = outputs[-1]
        try:
            latest_output_window = provenance_codec.read(latest.location)
        except (FileNotFoundError, ValueError):
            LOGGER.warning(
                "Cannot read date range of previous output, it will not be reused",
                extra={"location": latest.location},
                exc_info=True,
            )

    return StorageSnapshot(
        indices=indices,
        outputs=tuple(outputs),
        latest_output_window=latest_output_window,
    )


def select_inputs(
    config: JobConfig,
    snapshot: StorageSnapshot,
    calendar: PartitionCalendar,
) -> InputSelection:
    """
    Align the sources, resolve the window and pick the partitions to read.
    """

    availability = align_partitions(snapshot.indices, fail_on_missing=config.fail_on_missing)

    window = resolve_configured_window(config.window, availability.dates(), calendar)
    ensure_complete_coverage(availability, window)

    if config.mode == "preserving":
        return select_preserving_inputs(
            availability=availability,
            window=window,
            existing_outputs=snapshot.output_dates(),
            max_to_process=config.effective_max_to_process,
        )

    return select_collapsing_inputs(
        availability=availability,
        window=window,
        latest_output=snapshot.latest_output,
        latest_output_window=snapshot.latest_output_window,
        reuse_previous_output=config.reuse_previous_output,
        max_to_process=config.effective_max_to_process,
        fail_on_missing=config.fail_on_missing,
    )


def create_plan(
    *,
    config: JobConfig,
    storage: Storage,
    provenance_codec: ProvenanceCodec | None = None,
    schema_resolver: SchemaResolver | None = None,
    calendar: PartitionCalendar | None = None,
    snapshot: StorageSnapshot | None = None,
) -> ExecutionPlan:
    """
    Build the execution plan of a single pass.

    This function performs *planning only*. It lists and sizes partitions
    but never writes to storage and never runs the engine.

    Parameters
    ----------
    config:
        Job configuration.

    storage:
        Storage holding inputs and outputs, used for listings and sizes.

    provenance_codec:
        Reads the window covered by a previous collapsing output.

    schema_resolver:
        Resolves a schema per input source. Without it ``schema_by_path``
        is empty.

    calendar:
        Day spelling and timezone; defaults to the job's calendar.

    snapshot:
        Previously captured storage state. When omitted it is taken now.

    Returns
    -------
    ExecutionPlan
        Immutable plan. The same storage state always yields an equal plan.
    """

    calendar = calendar or config.to_calendar()

    # ------------------------------------------------------------------
    # 1. Capture storage state
    # ------------------------------------------------------------------

    if snapshot is None:
        snapshot = take_snapshot(
            config=config,
            storage=storage,
            calendar=calendar,
            provenance_codec=provenance_codec,
        )

    # ------------------------------------------------------------------
    # 2. Select inputs
    # ------------------------------------------------------------------

    selection = select_inputs(config, snapshot, calendar)

    # ------------------------------------------------------------------
    # 3. Size the reduce stage
    # ------------------------------------------------------------------

    sizer = ReduceSizer(config.reducers)

    for item in selection.inputs_to_process:
        sizer.add_input(item.location, storage.byte_size(item.location), INPUT_TAG)

    if selection.previous_output is not None:
        location = selection.previous_output.location
        sizer.add_input(location, storage.byte_size(location), PREVIOUS_TAG)

    if config.num_reducers is not None:
        LOGGER.info("Using fixed number of reducers: %d", config.num_reducers)
        reducer_count = config.num_reducers
    else:
        reducer_count = sizer.reducer_count()

    # ------------------------------------------------------------------
    # 4. Resolve schemas per source
    # ------------------------------------------------------------------

    schema_by_path = _resolve_schemas(snapshot, selection, schema_resolver)

    # ------------------------------------------------------------------
    # 5. Return final plan
    # ------------------------------------------------------------------

    return ExecutionPlan(
        mode=config.mode,
        window=selection.window,
        current_window=selection.current_window,
        inputs_to_process=selection.inputs_to_process,
        new_inputs_to_process=selection.new_inputs,
        old_inputs_to_process=selection.old_inputs,
        previous_output_to_process=selection.previous_output,
        reducer_count=reducer_count,
        needs_another_pass=selection.needs_another_pass,
        schema_by_path=MappingProxyType(schema_by_path),
        total_bytes=sizer.total_bytes,
        reuse_decision=selection.reuse_decision,
    )


def _resolve_schemas(
    snapshot: StorageSnapshot,
    selection: InputSelection,
    schema_resolver: SchemaResolver | None,
) -> dict[str, Any]:
    """
    Map each source root to the schema of its latest selected partition.
    """
    if schema_resolver is None:
        return {}

    selected = set(selection.inputs_to_process)
    schema_by_path: dict[str, Any] = {}

    for index in snapshot.indices:
        latest: DatedLocation | None = None
        for day in index.dates():
            item = index.get(day)
            if item in selected:
                latest = item

        if latest is None:
            continue

        LOGGER.info("Resolving schema of %s from %s", index.root, latest.location)
        schema_by_path[index.root] = schema_resolver.schema_for(latest.location)

    return schema_by_path


class ExecutionPlanner:
    """
    Single-use planner bound to one job configuration.

    ``create_plan`` may be called once. The plan accessors raise
    ``PlanNotYetCreatedError`` until it has been.
    """

    def __init__(
        self,
        *,
        config: JobConfig,
        storage: Storage,
        provenance_codec: ProvenanceCodec | None = None,
        schema_resolver: SchemaResolver | None = None,
        calendar: PartitionCalendar | None = None,
    ) -> None:
        self._config = config
        self._storage = storage
        self._provenance_codec = provenance_codec
        self._schema_resolver = schema_resolver
        self._calendar = calendar or config.to_calendar()

        self._plan: ExecutionPlan | None = None

    def create_plan(self) -> ExecutionPlan:
        """Build the plan. A failed attempt may be retried."""
        if self._plan is not None:
            raise PlanAlreadyExistsError("Plan already exists")

        self._plan = create_plan(
            config=self._config,
            storage=self._storage,
            provenance_codec=self._provenance_codec,
            schema_resolver=self._schema_resolver,
            calendar=self._calendar,
        )
        return self._plan

    @property
    def plan(self) -> ExecutionPlan:
        if self._plan is None:
            raise PlanNotYetCreatedError("Must call create_plan first")
        return self._plan

    @property
    def inputs_to_process(self) -> tuple[DatedLocation, ...]:
        return self.plan.inputs_to_process

    @property
    def new_inputs_to_process(self) -> tuple[DatedLocation, ...]:
        return self.plan.new_inputs_to_process

    @property
    def old_inputs_to_process(self) -> tuple[DatedLocation, ...]:
        return self.plan.old_inputs_to_process

    @property
    def previous_output_to_process(self) -> DatedLocation | None:
        return self.plan.previous_output_to_process

    @property
    def current_window(self) -> DateWindow | None:
        return self.plan.current_window

    @property
    def reducer_count(self) -> int:
        return self.plan.reducer_count

    @property
    def needs_another_pass(self) -> bool:
        return self.plan.needs_another_pass

    @property
    def schema_by_path(self) -> dict[str, Any]:
        return dict(self.plan.schema_by_path)

    @property
    def dates_to_process(self) -> tuple[date, ...]:
        return self.plan.dates_to_process
