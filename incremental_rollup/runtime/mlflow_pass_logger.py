from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import mlflow

if TYPE_CHECKING:
    from incremental_rollup.runtime.orchestrator import PassReport

LOGGER = logging.getLogger(__name__)


class MlflowPassLogger:
    """Logs one MLflow run per completed pass.

    Tracking is configured via environment variables:
    - MLFLOW_TRACKING_URI: HTTP(S) address of the MLflow tracking server.
      Example: http://mlflow.ml.svc.cluster.local:5000

    Without MLFLOW_TRACKING_URI the logger is disabled. It is best-effort:
    callers catch exceptions and continue.
    """

    def __init__(self) -> None:
        tracking_uri = os.environ.get("MLFLOW_TRACKING_URI")
        self._enabled = bool(tracking_uri)
        if tracking_uri:
            mlflow.set_tracking_uri(tracking_uri)

    def is_enabled(self) -> bool:
        return self._enabled

    def log(
        self,
        *,
        report: PassReport,
        duration_seconds: float,
        status: str,
    ) -> None:
        """Log pass metadata as MLflow parameters/metrics/tags."""
        if not self._enabled:
            return

        # set_experiment creates the experiment if it does not exist
        mlflow.set_experiment(report.job_name)

        with mlflow.start_run(run_name=f"{report.job_name}-pass-{report.iteration:03d}"):
            # Parameters
            mlflow.log_param("window", report.window)
            mlflow.log_param("reducer_count", report.reducer_count)
            mlflow.log_param("reused_output", report.reused_output or "")

            # Metrics
            mlflow.log_metric("new_inputs", len(report.new_inputs))
            mlflow.log_metric("old_inputs", len(report.old_inputs))
            mlflow.log_metric("duration_seconds", duration_seconds)

            # Tags
            mlflow.set_tag("status", status)
            mlflow.set_tag("job_id", report.job_id)
            mlflow.set_tag("iteration", str(report.iteration))

        LOGGER.info(
            "MLflow pass log submitted",
            extra={
                "job_name": report.job_name,
                "job_id": report.job_id,
                "status": status,
            },
        )
