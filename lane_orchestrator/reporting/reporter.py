"""Run report generation.

Builds the run report: trigger, profile, overall verdict and one entry per
lane with its plan, execution result, artifact record and scenario counts.
Lane statuses follow a five-status model: passed, failed, timed_out,
cancelled, disabled.

Reports are written as JSON or YAML and can carry a rolling per-lane
history read back from the previous report.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from lane_orchestrator.execution.pipeline import RunOutcome
from lane_orchestrator.planning.profile import TestProfile
from lane_orchestrator.reporting.junit import summarize_junit
from lane_orchestrator.trigger.events import TriggerContext

# Valid lane status values in the five-status model
VALID_STATUSES = frozenset({
    "passed",
    "failed",
    "timed_out",
    "cancelled",
    "disabled",
})

# Maximum rolling history entries per lane
MAX_HISTORY = 500


class Reporter:
    """Collects the pieces of a run and generates its report."""

    def __init__(self) -> None:
        self.trigger: TriggerContext | None = None
        self.profile: TestProfile | None = None
        self.outcome: RunOutcome | None = None
        self.commit_hash: str | None = None
        self.event_artifact: dict[str, Any] | None = None

    def set_trigger(self, trigger: TriggerContext) -> None:
        self.trigger = trigger

    def set_profile(self, profile: TestProfile) -> None:
        self.profile = profile

    def set_outcome(self, outcome: RunOutcome) -> None:
        self.outcome = outcome

    def set_commit_hash(self, commit_hash: str) -> None:
        """Set the commit hash to tag results with."""
        self.commit_hash = commit_hash

    def set_event_artifact(self, record: dict[str, Any]) -> None:
        """Record the upload of the triggering event payload."""
        self.event_artifact = record

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for JSON
            or YAML serialization.
        """
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()
        lanes = self._build_lane_entries()

        report: dict[str, Any] = {
            "generated_at": now,
            "summary": self._compute_summary(lanes),
        }

        if self.commit_hash:
            report["commit"] = self.commit_hash
        if self.trigger is not None:
            report["trigger"] = self.trigger.to_dict()
        if self.profile is not None:
            report["profile"] = self.profile.to_dict()

        report["lanes"] = lanes

        if self.event_artifact is not None:
            report["event_artifact"] = self.event_artifact

        if self.outcome is not None:
            warnings = self.outcome.run_status.warnings
            if warnings:
                report["warnings"] = warnings

        return {"report": report}

    def generate_report_with_history(
        self, existing_report_path: Path | None = None,
    ) -> dict[str, Any]:
        """Generate report with rolling per-lane history appended.

        Reads an existing JSON or YAML report, extracts its history,
        appends the lanes of this run, and trims to MAX_HISTORY entries.
        Disabled lanes are not added to the history.
        """
        report = self.generate_report()

        existing_history: dict[str, list[dict[str, Any]]] = {}
        if existing_report_path and existing_report_path.exists():
            existing = _load_report(existing_report_path)
            if existing and isinstance(existing.get("report"), dict):
                existing_history = existing["report"].get("history", {}) or {}

        history: dict[str, list[dict[str, Any]]] = {
            lane: list(entries) for lane, entries in existing_history.items()
        }
        for lane in report["report"]["lanes"]:
            if lane["status"] == "disabled":
                continue
            entry: dict[str, Any] = {
                "status": lane["status"],
                "timestamp": report["report"]["generated_at"],
            }
            if "result" in lane:
                entry["duration_ms"] = lane["result"]["duration_ms"]
            if self.commit_hash:
                entry["commit"] = self.commit_hash

            lane_history = history.setdefault(lane["lane_id"], [])
            lane_history.append(entry)
            if len(lane_history) > MAX_HISTORY:
                history[lane["lane_id"]] = lane_history[-MAX_HISTORY:]

        report["report"]["history"] = history
        return report

    def write_report(self, path: Path, existing_path: Path | None = None) -> None:
        """Write the report as JSON, with history if an old report exists."""
        report = self.generate_report_with_history(existing_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)

    def write_yaml(self, path: Path, existing_path: Path | None = None) -> None:
        """Write the report as YAML, with history if an old report exists."""
        report = self.generate_report_with_history(existing_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(report, f, sort_keys=False)

    def _build_lane_entries(self) -> list[dict[str, Any]]:
        if self.outcome is None:
            return []

        entries: list[dict[str, Any]] = []
        for plan in self.outcome.plans:
            entry: dict[str, Any] = {
                "lane_id": plan.lane_id,
                "enabled": plan.enabled,
                "plan": plan.to_dict(),
            }
            result = self.outcome.result_for(plan.lane_id)
            if not plan.enabled:
                entry["status"] = "disabled"
            elif result is None:
                entry["status"] = "cancelled"
            else:
                entry["status"] = result.status
                entry["result"] = result.to_dict()
                scenarios = summarize_junit(result.report_path)
                if scenarios is not None:
                    entry["scenarios"] = scenarios.to_dict()

            record = self.outcome.artifact_for(plan.lane_id)
            if record is not None:
                entry["artifact"] = record.to_dict()
            entries.append(entry)
        return entries

    def _compute_summary(self, lanes: list[dict[str, Any]]) -> dict[str, Any]:
        """Compute summary statistics from lane entries."""
        counts = {status: 0 for status in sorted(VALID_STATUSES)}
        for lane in lanes:
            counts[lane["status"]] += 1

        summary: dict[str, Any] = {
            "total_lanes": len(lanes),
            "enabled_lanes": sum(1 for lane in lanes if lane["enabled"]),
            **counts,
        }

        if self.outcome is not None:
            status = self.outcome.run_status
            summary["status"] = status.status
            summary["exit_code"] = status.exit_code
            summary["total_duration_ms"] = self.outcome.duration_ms

        return summary


def _load_report(path: Path) -> dict[str, Any] | None:
    """Load a previous report written as JSON or YAML."""
    try:
        text = path.read_text()
    except OSError:
        return None
    try:
        # JSON is a subset of YAML, so one parser reads both formats
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None
