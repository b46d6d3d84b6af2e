from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from incremental_rollup.runtime.orchestrator import PassReport

LOGGER = logging.getLogger(__name__)

PUSH_JOB = "incremental_rollup_pass"

PASS_GAUGES: dict[str, str] = {
    "incremental_rollup_pass_iteration": "Iteration number of the pass within its run",
    "incremental_rollup_pass_new_inputs": "New input partitions read by the pass",
    "incremental_rollup_pass_old_inputs": "Old input partitions subtracted by the pass",
    "incremental_rollup_pass_reused_output": "1 when the pass reused a previous output",
    "incremental_rollup_pass_outputs": "Outputs published by the pass",
    "incremental_rollup_pass_reducers": "Reduce workers requested for the pass",
    "incremental_rollup_pass_duration_seconds": "Wall-clock duration of the pass",
}


def pass_gauge_values(report: PassReport) -> dict[str, float]:
    return {
        "incremental_rollup_pass_iteration": float(report.iteration),
        "incremental_rollup_pass_new_inputs": float(len(report.new_inputs)),
        "incremental_rollup_pass_old_inputs": float(len(report.old_inputs)),
        "incremental_rollup_pass_reused_output": 1.0 if report.reused_output else 0.0,
        "incremental_rollup_pass_outputs": float(len(report.outputs)),
        "incremental_rollup_pass_reducers": float(report.reducer_count),
        "incremental_rollup_pass_duration_seconds": report.duration_seconds,
    }


class PrometheusMetricsClient:
    """Pushes per-pass gauges of an incremental job to a Pushgateway.

    Environment (used when no explicit value is passed):
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
      Example: http://pushgateway.monitoring.svc.cluster.local:9091
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object of string values
      added to the grouping key, e.g. {"cluster": "batch-eu"}.

    Each pass is pushed from its own registry and replaces the previous
    pass of the same job and grouping key on the gateway.
    """

    def __init__(
        self,
        gateway_url: str | None = None,
        grouping_key: dict[str, str] | None = None,
    ) -> None:
        self._gateway_url = gateway_url or os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        if grouping_key is None:
            grouping_key = self._load_grouping_key(
                os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
            )
        self._grouping_key = grouping_key

    def is_enabled(self) -> bool:
        return bool(self._gateway_url)

    @staticmethod
    def _load_grouping_key(raw: str | None) -> dict[str, str]:
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            LOGGER.warning("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON is not an object; ignoring")
            return {}

        dropped = sorted(str(k) for k, v in data.items() if not isinstance(v, str))
        if dropped:
            LOGGER.warning("Ignoring non-string grouping key entries: %s", ", ".join(dropped))

        return {k: v for k, v in data.items() if isinstance(v, str)}

    def push_pass(self, report: PassReport, *, mode: str) -> None:
        if not self.is_enabled():
            return

        registry = CollectorRegistry()
        labels = {"job_name": report.job_name, "mode": mode}

        for name, value in pass_gauge_values(report).items():
            Gauge(
                name,
                PASS_GAUGES[name],
                labelnames=list(labels),
                registry=registry,
            ).labels(**labels).set(value)

        push_to_gateway(
            gateway=self._gateway_url,
            job=PUSH_JOB,
            registry=registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus pass metrics pushed",
            extra={"job_name": report.job_name, "iteration": report.iteration},
        )
