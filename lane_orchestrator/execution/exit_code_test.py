"""Unit tests for run status and exit code computation."""

from __future__ import annotations

import pytest

from lane_orchestrator.artifacts.collector import ArtifactRecord
from lane_orchestrator.execution.executor import ExecutionResult
from lane_orchestrator.execution.exit_code import (
    CANCELLED,
    FAILED,
    PASSED,
    compute_run_status,
)


def _result(lane_id: str, exit_code: int = 0, timed_out: bool = False) -> ExecutionResult:
    return ExecutionResult(
        lane_id=lane_id,
        exit_code=exit_code,
        report_path=f"{lane_id}.xml",
        timed_out=timed_out,
    )


class TestComputeRunStatus:
    """Tests for compute_run_status."""

    def test_all_passed(self):
        status = compute_run_status([_result("binaries"), _result("ffi")])
        assert status.status == PASSED
        assert status.exit_code == 0
        assert status.passed_lanes == ["binaries", "ffi"]

    def test_no_lanes_ran(self):
        """A run with every lane disabled passes."""
        status = compute_run_status([])
        assert status.status == PASSED
        assert status.exit_code == 0

    def test_one_failure_fails_run(self):
        status = compute_run_status([_result("binaries"), _result("ffi", exit_code=2)])
        assert status.status == FAILED
        assert status.exit_code == 1
        assert status.failed_lanes == ["ffi"]
        assert status.passed_lanes == ["binaries"]

    def test_timeout_fails_run(self):
        status = compute_run_status([
            _result("binaries"),
            _result("ffi", exit_code=124, timed_out=True),
        ])
        assert status.status == FAILED
        assert status.timed_out_lanes == ["ffi"]
        assert status.failed_lanes == []

    def test_cancelled_lanes(self):
        status = compute_run_status([_result("binaries")], cancelled=["ffi"])
        assert status.status == CANCELLED
        assert status.exit_code == 1
        assert status.cancelled_lanes == ["ffi"]

    def test_failure_outranks_cancellation(self):
        status = compute_run_status([_result("binaries", exit_code=1)], cancelled=["ffi"])
        assert status.status == FAILED

    def test_artifact_problems_are_warnings_only(self):
        artifacts = [
            ArtifactRecord("binaries", "junit-cucumber", "b.xml", uploaded=True),
            ArtifactRecord(
                "ffi", "junit-ffi-cucumber", "f.xml", uploaded=False,
                error="MissingReportError: Report not found: f.xml",
            ),
        ]
        status = compute_run_status([_result("binaries"), _result("ffi")], artifacts)
        assert status.status == PASSED
        assert status.exit_code == 0
        assert len(status.warnings) == 1
        assert "junit-ffi-cucumber" in status.warnings[0]
        assert "lane ffi" in status.warnings[0]

    @pytest.mark.parametrize("exit_codes,expected", [
        ((0, 0), 0),
        ((0, 1), 1),
        ((2, 0), 1),
        ((1, 1), 1),
        ((0,), 0),
        ((3,), 1),
    ])
    def test_exit_code_matrix(self, exit_codes, expected):
        results = [_result(f"lane{i}", code) for i, code in enumerate(exit_codes)]
        assert compute_run_status(results).exit_code == expected

    def test_to_dict(self):
        status = compute_run_status([_result("binaries", exit_code=1)])
        data = status.to_dict()
        assert data["status"] == "failed"
        assert data["exit_code"] == 1
        assert data["failed_lanes"] == ["binaries"]
        assert data["warnings"] == []
