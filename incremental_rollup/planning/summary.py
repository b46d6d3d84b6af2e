from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List

if TYPE_CHECKING:
    from incremental_rollup.planning.planner_models import ExecutionPlan

MANY_REDUCERS = 500


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PlanSummary:
    job_name: str
    mode: str
    window: str
    current_window: str | None
    new_input_count: int
    old_input_count: int
    previous_output: str | None
    day_count: int
    reducer_count: int
    total_bytes: int
    needs_another_pass: bool
    reuse_reason: str | None
    warnings: List[str]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "mode": self.mode,
            "window": self.window,
            "current_window": self.current_window,
            "new_input_count": self.new_input_count,
            "old_input_count": self.old_input_count,
            "previous_output": self.previous_output,
            "day_count": self.day_count,
            "reducer_count": self.reducer_count,
            "total_bytes": self.total_bytes,
            "needs_another_pass": self.needs_another_pass,
            "reuse_reason": self.reuse_reason,
            "warnings": list(self.warnings),
        }


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_plan(*, job_name: str, plan: ExecutionPlan) -> PlanSummary:
    warnings: list[str] = []

    if plan.is_empty:
        warnings.append("Plan contains no inputs (nothing to do)")

    if plan.needs_another_pass:
        warnings.append(
            f"Window {plan.window} needs more than one pass; "
            f"this pass covers {plan.current_window}"
        )

    decision = plan.reuse_decision
    if decision is not None and not decision.accepted:
        warnings.append(
            f"Previous output {decision.candidate.location} not reused: {decision.reason}"
        )

    if plan.reducer_count > MANY_REDUCERS:
        warnings.append(f"High number of reducers ({plan.reducer_count})")

    return PlanSummary(
        job_name=job_name,
        mode=plan.mode,
        window=str(plan.window),
        current_window=str(plan.current_window) if plan.current_window else None,
        new_input_count=len(plan.new_inputs_to_process),
        old_input_count=len(plan.old_inputs_to_process),
        previous_output=(
            plan.previous_output_to_process.location
            if plan.previous_output_to_process
            else None
        ),
        day_count=len(plan.dates_to_process),
        reducer_count=plan.reducer_count,
        total_bytes=plan.total_bytes,
        needs_another_pass=plan.needs_another_pass,
        reuse_reason=decision.reason if decision else None,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_plan_summary(summary: PlanSummary) -> None:
    total_gb = summary.total_bytes / 1024**3

    print(f"Job: {summary.job_name} ({summary.mode})")
    print(f"Window: {summary.window}")
    print(f"This pass: {summary.current_window or '-'}")
    print(f"New inputs: {summary.new_input_count}")
    print(f"Old inputs: {summary.old_input_count}")
    print(f"Previous output: {summary.previous_output or '-'}")
    print(f"Reducers: {summary.reducer_count} | {total_gb:.2f} GB")
    print(f"Needs another pass: {'yes' if summary.needs_another_pass else 'no'}")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()
