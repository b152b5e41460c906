"""Concurrent lane pipeline.

Runs every enabled lane plan as its own asyncio task. Each task executes
the lane in a worker thread and, once that returns, collects the lane's
artifact. Lanes share no state; they may start and finish in any order.
A semaphore bounds how many lanes are in flight.

Cancellation stops lanes that have not started yet. A lane that has
started always finishes both its execution and its collection, so no
lane is left with a half-recorded outcome.
"""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Sequence

from lane_orchestrator.artifacts.collector import ArtifactCollector, ArtifactRecord
from lane_orchestrator.execution.executor import ExecutionResult, LaneExecutor
from lane_orchestrator.execution.exit_code import RunStatus, compute_run_status
from lane_orchestrator.planning.lanes import LaneExecutionPlan


@dataclass
class RunOutcome:
    """Everything a run produced, in lane-plan order."""

    plans: list[LaneExecutionPlan]
    results: list[ExecutionResult] = field(default_factory=list)
    artifacts: list[ArtifactRecord] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def disabled(self) -> list[str]:
        return [p.lane_id for p in self.plans if not p.enabled]

    @property
    def run_status(self) -> RunStatus:
        return compute_run_status(self.results, self.artifacts, self.cancelled)

    def result_for(self, lane_id: str) -> ExecutionResult | None:
        for result in self.results:
            if result.lane_id == lane_id:
                return result
        return None

    def artifact_for(self, lane_id: str) -> ArtifactRecord | None:
        for record in self.artifacts:
            if record.lane_id == lane_id:
                return record
        return None


class LanePipeline:
    """Executes lane plans concurrently and collects their artifacts.

    Args:
        executor: Runs a single lane.
        collector: Uploads a lane's report after it ran.
        max_parallel_lanes: Upper bound of lanes in flight (None = all).
    """

    def __init__(
        self,
        executor: LaneExecutor,
        collector: ArtifactCollector,
        max_parallel_lanes: int | None = None,
    ) -> None:
        self.executor = executor
        self.collector = collector
        self.max_parallel_lanes = max_parallel_lanes
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Stop starting new lanes; lanes already running complete."""
        if not self._cancel.is_set():
            print("pipeline: cancellation requested", file=sys.stderr)
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self, plans: Sequence[LaneExecutionPlan]) -> RunOutcome:
        """Run every enabled plan and wait for all of them.

        Returns:
            RunOutcome with one result and one artifact record per lane
            that ran, and the ids of lanes cancelled before starting.
        """
        return asyncio.run(self._run_async(list(plans)))

    async def _run_async(self, plans: list[LaneExecutionPlan]) -> RunOutcome:
        outcome = RunOutcome(plans=plans)
        enabled = [p for p in plans if p.enabled]
        if not enabled:
            return outcome

        limit = self.max_parallel_lanes or len(enabled)
        semaphore = asyncio.Semaphore(limit)
        results: dict[str, ExecutionResult] = {}
        artifacts: dict[str, ArtifactRecord] = {}
        cancelled: set[str] = set()
        loop = asyncio.get_running_loop()
        start_time = time.monotonic()

        with ThreadPoolExecutor(max_workers=len(enabled)) as pool:

            async def run_lane(plan: LaneExecutionPlan) -> None:
                async with semaphore:
                    if self._cancel.is_set():
                        cancelled.add(plan.lane_id)
                        return
                    result = await loop.run_in_executor(
                        pool, self._execute_lane, plan,
                    )
                    record = await loop.run_in_executor(
                        pool, self.collector.collect, result,
                        plan.artifact_name or None,
                    )
                    results[plan.lane_id] = result
                    artifacts[plan.lane_id] = record

            await asyncio.gather(*(run_lane(p) for p in enabled))

        outcome.duration_ms = int((time.monotonic() - start_time) * 1000)
        for plan in enabled:
            if plan.lane_id in results:
                outcome.results.append(results[plan.lane_id])
                outcome.artifacts.append(artifacts[plan.lane_id])
            elif plan.lane_id in cancelled:
                outcome.cancelled.append(plan.lane_id)
        return outcome

    def _execute_lane(self, plan: LaneExecutionPlan) -> ExecutionResult:
        """Execute a lane, turning unexpected errors into a failed result."""
        try:
            return self.executor.execute(plan)
        except Exception as e:
            print(f"lane {plan.lane_id}: executor error: {e}", file=sys.stderr)
            return ExecutionResult(
                lane_id=plan.lane_id,
                exit_code=1,
                report_path=str(self.executor.report_path_for(plan)),
                error=f"{type(e).__name__}: {e}",
            )
