"""Run status and exit code computation.

The run fails if any enabled lane failed or timed out. Lanes that were
never enabled do not take part. Artifact problems produce warnings only.

Lane outcome x run contribution::

    +--------------+----------------+-----------------------------+
    | lane outcome | blocks the run | notes                       |
    +--------------+----------------+-----------------------------+
    | passed       | no             |                             |
    | failed       | yes            | LaneFailure                 |
    | timed_out    | yes            | LaneTimeout                 |
    | cancelled    | yes            | never started, no artifact  |
    | disabled     | no             | never planned to run        |
    +--------------+----------------+-----------------------------+
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from lane_orchestrator.artifacts.collector import ArtifactRecord
from lane_orchestrator.execution.executor import ExecutionResult

PASSED = "passed"
FAILED = "failed"
CANCELLED = "cancelled"


@dataclass
class RunStatus:
    """Overall verdict of a run with its per-lane breakdown."""

    status: str
    exit_code: int
    passed_lanes: list[str] = field(default_factory=list)
    failed_lanes: list[str] = field(default_factory=list)
    timed_out_lanes: list[str] = field(default_factory=list)
    cancelled_lanes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "exit_code": self.exit_code,
            "passed_lanes": list(self.passed_lanes),
            "failed_lanes": list(self.failed_lanes),
            "timed_out_lanes": list(self.timed_out_lanes),
            "cancelled_lanes": list(self.cancelled_lanes),
            "warnings": list(self.warnings),
        }


def compute_run_status(
    results: Sequence[ExecutionResult],
    artifacts: Iterable[ArtifactRecord] = (),
    cancelled: Iterable[str] = (),
) -> RunStatus:
    """Aggregate lane results into the run verdict.

    Args:
        results: One result per executed lane.
        artifacts: Artifact records; failed uploads become warnings.
        cancelled: Ids of enabled lanes that never started.

    Returns:
        RunStatus with exit code 1 if anything blocks, else 0.
    """
    passed: list[str] = []
    failed: list[str] = []
    timed_out: list[str] = []
    warnings: list[str] = []

    for result in results:
        if result.status == "timed_out":
            timed_out.append(result.lane_id)
        elif result.status == "failed":
            failed.append(result.lane_id)
        else:
            passed.append(result.lane_id)

    for record in artifacts:
        if not record.uploaded:
            owner = f"lane {record.lane_id}" if record.lane_id else "event"
            warnings.append(
                f"{owner}: artifact '{record.artifact_name}' not uploaded "
                f"({record.error})"
            )

    cancelled_lanes = list(cancelled)

    if failed or timed_out:
        status = FAILED
    elif cancelled_lanes:
        status = CANCELLED
    else:
        status = PASSED

    return RunStatus(
        status=status,
        exit_code=0 if status == PASSED else 1,
        passed_lanes=passed,
        failed_lanes=failed,
        timed_out_lanes=timed_out,
        cancelled_lanes=cancelled_lanes,
        warnings=warnings,
    )
