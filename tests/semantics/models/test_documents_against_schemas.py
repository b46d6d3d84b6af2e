"""Schema conformance tests for persisted and emitted documents.

The provenance record written inside every collapsed output and the plan
summary emitted by the CLI must match their JSON Schemas. Pydantic must be
at least as strict as the schema: whatever the schema rejects, the model
rejects too.
"""

# pylint: disable=missing-function-docstring,redefined-outer-name
from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

import pytest
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate as jsonschema_validate
from pydantic import ValidationError as PydanticValidationError

from incremental_rollup.core.domain.types import DatedLocation, DateWindow
from incremental_rollup.io.provenance_codec import OutputProvenance
from incremental_rollup.planning.planner_models import ExecutionPlan, ReuseDecision
from incremental_rollup.planning.summary import summarize_plan


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_schema(name: str) -> dict:
    """
    Load JSON schema from the package's schema directory.
    """
    root = Path(__file__).parent.parent.parent.parent
    schema_path = root / "incremental_rollup" / "core" / "schemas" / name

    with schema_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def make_provenance(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "schema_version": "1.0",
        "date_range": {"begin": "2024-01-03", "end": "2024-01-10"},
    }
    data.update(overrides)
    return data


def assert_schema_invalid_but_pydantic_rejects(data: dict[str, Any], schema: dict[str, Any]) -> None:
    with pytest.raises(JsonSchemaValidationError):
        jsonschema_validate(instance=data, schema=schema)

    with pytest.raises(PydanticValidationError):
        OutputProvenance.model_validate(data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def provenance_schema() -> dict:
    return load_schema("provenance.schema.json")


@pytest.fixture(scope="module")
def plan_summary_schema() -> dict:
    return load_schema("plan_summary.schema.json")


# ---------------------------------------------------------------------------
# OutputProvenance
# ---------------------------------------------------------------------------

def test_written_provenance_matches_schema(provenance_schema) -> None:
    doc = OutputProvenance.from_window(DateWindow(date(2024, 1, 3), date(2024, 1, 10)))
    instance = json.loads(doc.model_dump_json())

    jsonschema_validate(instance=instance, schema=provenance_schema)
    assert instance == make_provenance()


def test_provenance_round_trips_window() -> None:
    window = DateWindow(date(2024, 1, 3), date(2024, 1, 10))
    raw = OutputProvenance.from_window(window).model_dump_json()

    assert OutputProvenance.model_validate_json(raw).to_window() == window


def test_provenance_rejects_additional_properties(provenance_schema) -> None:
    data = make_provenance()
    data["unexpected"] = 1
    assert_schema_invalid_but_pydantic_rejects(data, provenance_schema)


def test_provenance_requires_date_range(provenance_schema) -> None:
    data = make_provenance()
    data.pop("date_range")
    assert_schema_invalid_but_pydantic_rejects(data, provenance_schema)


def test_provenance_rejects_unknown_version(provenance_schema) -> None:
    assert_schema_invalid_but_pydantic_rejects(make_provenance(schema_version="2.0"), provenance_schema)


def test_provenance_rejects_inverted_range() -> None:
    with pytest.raises(PydanticValidationError):
        OutputProvenance.model_validate(
            make_provenance(date_range={"begin": "2024-01-10", "end": "2024-01-03"})
        )


# ---------------------------------------------------------------------------
# PlanSummary
# ---------------------------------------------------------------------------

def make_plan(**overrides) -> ExecutionPlan:
    previous = DatedLocation(date(2024, 1, 8), "/out/20240108")
    fields: dict[str, Any] = {
        "mode": "collapsing",
        "window": DateWindow(date(2024, 1, 3), date(2024, 1, 10)),
        "current_window": DateWindow(date(2024, 1, 3), date(2024, 1, 10)),
        "inputs_to_process": (
            DatedLocation(date(2024, 1, 1), "/in/2024/01/01"),
            DatedLocation(date(2024, 1, 9), "/in/2024/01/09"),
        ),
        "new_inputs_to_process": (DatedLocation(date(2024, 1, 9), "/in/2024/01/09"),),
        "old_inputs_to_process": (DatedLocation(date(2024, 1, 1), "/in/2024/01/01"),),
        "previous_output_to_process": previous,
        "reducer_count": 2,
        "needs_another_pass": False,
        "schema_by_path": {},
        "total_bytes": 1024,
        "reuse_decision": ReuseDecision(
            candidate=previous,
            candidate_window=DateWindow(date(2024, 1, 1), date(2024, 1, 8)),
            reuse_cost=2,
            direct_cost=8,
            accepted=True,
            reason="reuse cost 2 < direct cost 8",
        ),
    }
    fields.update(overrides)
    return ExecutionPlan(**fields)


def test_plan_summary_matches_schema(plan_summary_schema) -> None:
    summary = summarize_plan(job_name="rollup", plan=make_plan())

    jsonschema_validate(instance=summary.to_json_obj(), schema=plan_summary_schema)
    assert summary.warnings == []
    assert summary.old_input_count == 1
    assert summary.previous_output == "/out/20240108"


def test_plan_summary_warns_about_rejected_reuse_and_extra_passes(plan_summary_schema) -> None:
    previous = DatedLocation(date(2024, 1, 8), "/out/20240108")
    plan = make_plan(
        previous_output_to_process=None,
        old_inputs_to_process=(),
        needs_another_pass=True,
        reuse_decision=ReuseDecision(
            candidate=previous,
            candidate_window=DateWindow(date(2024, 1, 4), date(2024, 1, 8)),
            reuse_cost=None,
            direct_cost=8,
            accepted=False,
            reason="previous output starts after window begin 2024-01-03",
        ),
    )

    summary = summarize_plan(job_name="rollup", plan=plan)

    jsonschema_validate(instance=summary.to_json_obj(), schema=plan_summary_schema)
    assert len(summary.warnings) == 2
    assert any("not reused" in w for w in summary.warnings)


def test_empty_plan_summary_warns(plan_summary_schema) -> None:
    plan = make_plan(
        inputs_to_process=(),
        new_inputs_to_process=(),
        old_inputs_to_process=(),
        reducer_count=1,
        total_bytes=0,
    )

    summary = summarize_plan(job_name="rollup", plan=plan)

    jsonschema_validate(instance=summary.to_json_obj(), schema=plan_summary_schema)
    assert summary.day_count == 0
    assert summary.warnings == ["Plan contains no inputs (nothing to do)"]
