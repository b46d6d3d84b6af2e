from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any

from incremental_rollup.core.config.engine_config import EngineConfig
from incremental_rollup.core.config.job_config import JobConfig
from incremental_rollup.core.config.storage_config import StorageConfig
from incremental_rollup.core.ports.compute_engine import JobDefinition
from incremental_rollup.io.local_storage import LocalStorage
from incremental_rollup.io.object_storage import ObjectStorage
from incremental_rollup.io.provenance_codec import JsonProvenanceCodec, SidecarSchemaResolver
from incremental_rollup.planning.planner import ExecutionPlanner
from incremental_rollup.planning.summary import print_plan_summary, summarize_plan
from incremental_rollup.runtime.mlflow_pass_logger import MlflowPassLogger
from incremental_rollup.runtime.orchestrator import PassOrchestrator
from incremental_rollup.runtime.prometheus_metrics import PrometheusMetricsClient

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return json.loads(path.read_text(encoding="utf-8"))


def _build_storage(cfg: StorageConfig) -> Any:
    if cfg.backend == "oci":
        return ObjectStorage(
            cfg.bucket,
            region=cfg.region,
            auth_mode=cfg.auth_mode,
            oci_config_file=cfg.oci_config_file,
        )
    return LocalStorage()


def _load_definition(path: str) -> JobDefinition:
    """
    Resolve "module:attr" to a JobDefinition.

    The attribute may be a JobDefinition or a zero-argument callable
    returning one.
    """
    module_path, _, attr = path.partition(":")
    if not module_path or not attr:
        raise ValueError(f"definition must look like 'module:attr', got {path!r}")

    obj = getattr(importlib.import_module(module_path), attr)
    if callable(obj) and not isinstance(obj, JobDefinition):
        obj = obj()

    if not isinstance(obj, JobDefinition):
        raise TypeError(f"{path} did not resolve to a JobDefinition")

    return obj


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Incremental rollup entrypoint (plan or run)"
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to job JSON config.",
    )

    parser.add_argument(
        "--plan",
        action="store_true",
        help="Plan the next pass and print its summary (no execution).",
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Run passes until the job is up to date.",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root logging level.",
    )

    args = parser.parse_args(argv)

    if not args.plan and not args.run:
        print("Error: one of --plan or --run must be specified.", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ------------------------------------------------------------------
    # Load config
    # ------------------------------------------------------------------

    cfg = _load_json(args.config)

    job = JobConfig.from_json_obj(cfg["job"])
    storage = _build_storage(StorageConfig.model_validate(cfg.get("storage", {})))
    calendar = job.to_calendar()

    provenance_codec = JsonProvenanceCodec(storage)
    schema_resolver = SidecarSchemaResolver(storage)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    if args.plan and not args.run:
        plan = ExecutionPlanner(
            config=job,
            storage=storage,
            provenance_codec=provenance_codec,
            schema_resolver=schema_resolver,
            calendar=calendar,
        ).create_plan()

        print_plan_summary(summarize_plan(job_name=job.name, plan=plan))
        return

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    if "engine" not in cfg or "definition" not in cfg:
        print("Error: --run requires 'engine' and 'definition' in the config.", file=sys.stderr)
        sys.exit(2)

    engine = EngineConfig.model_validate(cfg["engine"]).build()
    definition = _load_definition(cfg["definition"])

    orchestrator = PassOrchestrator(
        config=job,
        storage=storage,
        engine=engine,
        definition=definition,
        provenance_codec=provenance_codec,
        schema_resolver=schema_resolver,
        metrics=PrometheusMetricsClient(),
        tracker=MlflowPassLogger(),
        calendar=calendar,
    )

    reports = orchestrator.run()

    if not reports:
        print("Nothing to do: outputs are up to date.")
        return

    for report in reports:
        print(
            f"pass {report.iteration}: {report.job_id} | "
            f"window {report.window} | "
            f"{len(report.new_inputs)} new / {len(report.old_inputs)} old inputs | "
            f"reused {report.reused_output or '-'} | "
            f"-> {', '.join(report.outputs)}"
        )


if __name__ == "__main__":
    main()
