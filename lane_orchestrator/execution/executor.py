"""Lane executor: run the scenario runner for one lane plan.

The runner is an opaque command. The executor fills the lane's tag
expression, concurrency, retry count and report path into the command
template, runs it once, and records its terminal exit code. Retrying
failed scenarios is the runner's job; a non-zero exit is recorded, never
raised.
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from lane_orchestrator.planning.lanes import LaneExecutionPlan

# Exit codes recorded for runs the runner itself could not report on
TIMEOUT_EXIT_CODE = 124
NOT_EXECUTABLE_EXIT_CODE = 126
NOT_FOUND_EXIT_CODE = 127

DEFAULT_RUNNER_COMMAND: tuple[str, ...] = (
    "cargo", "test",
    "--test", "cucumber",
    "-v",
    "--all-features",
    "--release",
    "--package", "tari_integration_tests",
    "--",
    "-t", "{tags}",
    "-c", "{concurrency}",
    "--retry", "{retries}",
)


@dataclass
class ExecutionResult:
    """Outcome of one lane run."""

    lane_id: str
    exit_code: int
    report_path: str
    duration_ms: int = 0
    timed_out: bool = False
    log_path: str = ""
    error: str | None = None

    @property
    def status(self) -> str:
        """One of ``passed``, ``failed`` or ``timed_out``."""
        if self.timed_out:
            return "timed_out"
        return "passed" if self.exit_code == 0 else "failed"

    @property
    def passed(self) -> bool:
        return self.status == "passed"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "lane_id": self.lane_id,
            "status": self.status,
            "exit_code": self.exit_code,
            "timed_out": self.timed_out,
            "duration_ms": self.duration_ms,
            "report_path": self.report_path,
        }
        if self.log_path:
            data["log_path"] = self.log_path
        if self.error:
            data["error"] = self.error
        return data


def build_command(
    template: Sequence[str],
    plan: LaneExecutionPlan,
    report_path: str,
) -> list[str]:
    """Fill a runner command template for a lane plan.

    Each argument may contain ``{tags}``, ``{concurrency}``, ``{retries}``,
    ``{report_path}`` and ``{lane}``. Other braces are left alone.
    """
    values = {
        "{tags}": plan.tag_expression,
        "{concurrency}": str(plan.concurrency),
        "{retries}": str(plan.retries),
        "{report_path}": report_path,
        "{lane}": plan.lane_id,
    }
    command: list[str] = []
    for arg in template:
        for placeholder, value in values.items():
            arg = arg.replace(placeholder, value)
        command.append(arg)
    return command


class LaneExecutor:
    """Runs lane plans through the external scenario runner.

    Args:
        command: Runner command template (see ``build_command``).
        working_directory: Directory the runner is started in; relative
            report paths are resolved against it.
        env: Extra environment variables for the runner.
        timeout_seconds: If set, replaces every plan's own timeout.
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_RUNNER_COMMAND,
        working_directory: Path | None = None,
        env: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.command = list(command)
        self.working_directory = working_directory or Path.cwd()
        self.env = dict(env or {})
        self.timeout_seconds = timeout_seconds

    def report_path_for(self, plan: LaneExecutionPlan) -> Path:
        path = Path(plan.report_path)
        if not path.is_absolute():
            path = self.working_directory / path
        return path

    def execute(self, plan: LaneExecutionPlan) -> ExecutionResult:
        """Run one enabled lane and wait for it.

        Raises:
            ValueError: If the plan is disabled.
        """
        if not plan.enabled:
            raise ValueError(f"Lane '{plan.lane_id}' is disabled and cannot be executed")

        report_path = self.report_path_for(plan)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        # A report left by an earlier run must not pass for this one's
        report_path.unlink(missing_ok=True)
        log_path = report_path.with_suffix(".log")

        timeout = self.timeout_seconds
        if timeout is None:
            timeout = plan.timeout_minutes * 60.0

        command = build_command(self.command, plan, str(report_path))
        env = {
            **os.environ,
            **self.env,
            "LANE_ID": plan.lane_id,
            "LANE_REPORT_PATH": str(report_path),
        }

        print(
            f"lane {plan.lane_id}: running {plan.tag_expression!r} "
            f"(concurrency={plan.concurrency}, retries={plan.retries}, "
            f"timeout={timeout:g}s)",
            file=sys.stderr,
        )

        start_time = time.monotonic()
        with open(log_path, "w") as log:
            try:
                proc = subprocess.Popen(
                    command,
                    cwd=self.working_directory,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
            except FileNotFoundError:
                return self._result(
                    plan, report_path, log_path, start_time,
                    exit_code=NOT_FOUND_EXIT_CODE,
                    error=f"Runner not found: {command[0]}",
                )
            except OSError as e:
                return self._result(
                    plan, report_path, log_path, start_time,
                    exit_code=NOT_EXECUTABLE_EXIT_CODE,
                    error=f"OS error starting runner: {e}",
                )

            try:
                exit_code = proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_process_group(proc)
                print(
                    f"lane {plan.lane_id}: timed out after {timeout:g}s, runner killed",
                    file=sys.stderr,
                )
                return self._result(
                    plan, report_path, log_path, start_time,
                    exit_code=TIMEOUT_EXIT_CODE,
                    timed_out=True,
                    error=f"Lane timed out after {timeout:g} seconds",
                )

        return self._result(
            plan, report_path, log_path, start_time, exit_code=exit_code,
        )

    def _result(
        self,
        plan: LaneExecutionPlan,
        report_path: Path,
        log_path: Path,
        start_time: float,
        exit_code: int,
        timed_out: bool = False,
        error: str | None = None,
    ) -> ExecutionResult:
        duration_ms = int((time.monotonic() - start_time) * 1000)
        return ExecutionResult(
            lane_id=plan.lane_id,
            exit_code=exit_code,
            report_path=str(report_path),
            duration_ms=duration_ms,
            timed_out=timed_out,
            log_path=str(log_path),
            error=error,
        )


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the runner and everything it spawned, then reap it."""
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
    except (ProcessLookupError, OSError):
        # Process may have already terminated
        proc.kill()
    proc.wait()
