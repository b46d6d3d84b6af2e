"""Public API for the incremental_rollup package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from incremental_rollup.core.config.engine_config import EngineConfig
from incremental_rollup.core.config.job_config import (
    JobConfig,
    ReduceSizingConfig,
    WindowConfig,
)

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from incremental_rollup.core.domain.errors import IncrementalJobError
from incremental_rollup.core.domain.types import DatedLocation, DateWindow, PartitionCalendar

# ----------------------------------------------------------------------
# Engine Interface
# ----------------------------------------------------------------------
from incremental_rollup.core.ports.compute_engine import (
    ComputeEngine,
    ComputeRequest,
    ComputeResult,
    JobDefinition,
    JobLogic,
    RunStatistics,
    TaskSchemas,
)

# ----------------------------------------------------------------------
# Storage
# ----------------------------------------------------------------------
from incremental_rollup.io.local_storage import LocalStorage
from incremental_rollup.io.provenance_codec import JsonProvenanceCodec, SidecarSchemaResolver

# ----------------------------------------------------------------------
# Planning and execution
# ----------------------------------------------------------------------
from incremental_rollup.planning.planner import ExecutionPlanner, create_plan
from incremental_rollup.planning.planner_models import ExecutionPlan
from incremental_rollup.runtime.orchestrator import PassOrchestrator, PassReport

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Config
    "JobConfig",
    "WindowConfig",
    "ReduceSizingConfig",
    "EngineConfig",

    # Domain
    "DatedLocation",
    "DateWindow",
    "PartitionCalendar",
    "IncrementalJobError",

    # Engine interface
    "ComputeEngine",
    "ComputeRequest",
    "ComputeResult",
    "JobDefinition",
    "JobLogic",
    "RunStatistics",
    "TaskSchemas",

    # Storage
    "LocalStorage",
    "JsonProvenanceCodec",
    "SidecarSchemaResolver",

    # Planning and execution
    "ExecutionPlanner",
    "ExecutionPlan",
    "create_plan",
    "PassOrchestrator",
    "PassReport",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("incremental-rollup")
except PackageNotFoundError:
    __version__ = "0.0.0"
