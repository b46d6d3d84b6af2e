"""
Semantic test: per-pass observability side effects.

Invariant:
Metrics and tracking are optional. Unconfigured clients do nothing, and a
configured pushgateway receives one gauge per pass figure labelled with the
job name and mode.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry

from incremental_rollup.core.config.job_config import JobConfig
from incremental_rollup.runtime import prometheus_metrics
from incremental_rollup.runtime.mlflow_pass_logger import MlflowPassLogger
from incremental_rollup.runtime.orchestrator import PassOrchestrator
from incremental_rollup.runtime.prometheus_metrics import PASS_GAUGES, PrometheusMetricsClient


def test_unconfigured_clients_are_disabled(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    monkeypatch.delenv("MLFLOW_TRACKING_URI", raising=False)

    assert PrometheusMetricsClient().is_enabled() is False
    assert MlflowPassLogger().is_enabled() is False


def test_grouping_key_keeps_string_values_only() -> None:
    load = PrometheusMetricsClient._load_grouping_key

    assert load("{not json") == {}
    assert load('["cluster"]') == {}
    assert load('{"cluster": "batch-eu", "shard": 3}') == {"cluster": "batch-eu"}


def test_pass_gauges_pushed(monkeypatch, tmp_path, storage, write_days, engine, definition) -> None:
    pushes: list[dict] = []

    def fake_push(*, gateway: str, job: str, registry: CollectorRegistry, grouping_key: dict) -> None:
        pushes.append(
            {
                "gateway": gateway,
                "job": job,
                "grouping_key": grouping_key,
                "samples": {
                    sample.name: (sample.labels, sample.value)
                    for metric in registry.collect()
                    for sample in metric.samples
                },
            }
        )

    monkeypatch.setattr(prometheus_metrics, "push_to_gateway", fake_push)

    config = JobConfig(
        name="daily",
        mode="preserving",
        input_paths=[write_days("events", [1, 2])],
        output_path=str(tmp_path / "daily"),
    )
    PassOrchestrator(
        config=config,
        storage=storage,
        engine=engine,
        definition=definition,
        metrics=PrometheusMetricsClient(
            gateway_url="http://pushgateway:9091",
            grouping_key={"cluster": "batch-eu"},
        ),
    ).run()

    assert len(pushes) == 1
    push = pushes[0]
    assert push["gateway"] == "http://pushgateway:9091"
    assert push["job"] == "incremental_rollup_pass"
    assert push["grouping_key"] == {"cluster": "batch-eu"}
    assert set(push["samples"]) == set(PASS_GAUGES)

    labels, value = push["samples"]["incremental_rollup_pass_new_inputs"]
    assert labels == {"job_name": "daily", "mode": "preserving"}
    assert value == 2.0
    assert push["samples"]["incremental_rollup_pass_outputs"][1] == 2.0
    assert push["samples"]["incremental_rollup_pass_reused_output"][1] == 0.0
