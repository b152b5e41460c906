"""Lane execution: the runner wrapper, concurrent pipeline and run status."""

from lane_orchestrator.execution.executor import ExecutionResult, LaneExecutor

__all__ = [
    "ExecutionResult",
    "LaneExecutor",
]
