"""Artifact collection for lane reports.

``collect`` runs once for every ExecutionResult, whatever its outcome:
CI result inspection needs the report whether the lane passed, failed or
timed out. Collection problems are recorded on the ArtifactRecord and
never raised, so they cannot mask the lane's own pass/fail signal.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lane_orchestrator.artifacts.store import ArtifactStore
from lane_orchestrator.errors import ArtifactUploadError, MissingReportError
from lane_orchestrator.execution.executor import ExecutionResult

EVENT_FILE_ARTIFACT = "Event File"


@dataclass
class ArtifactRecord:
    """Outcome of one artifact upload attempt."""

    lane_id: str
    artifact_name: str
    source_path: str
    uploaded: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "lane_id": self.lane_id,
            "artifact_name": self.artifact_name,
            "source_path": self.source_path,
            "uploaded": self.uploaded,
        }
        if self.error:
            data["error"] = self.error
        return data


def _describe(error: Exception) -> str:
    return f"{type(error).__name__}: {error}"


class ArtifactCollector:
    """Uploads lane reports to an artifact store.

    Args:
        store: Destination of the uploads.
        artifact_names: Artifact name per lane id; lanes without an entry
            use ``junit-<lane>-cucumber``.
    """

    def __init__(
        self,
        store: ArtifactStore,
        artifact_names: dict[str, str] | None = None,
    ) -> None:
        self.store = store
        self.artifact_names = dict(artifact_names or {})

    def artifact_name_for(self, lane_id: str) -> str:
        return self.artifact_names.get(lane_id) or f"junit-{lane_id}-cucumber"

    def collect(
        self,
        result: ExecutionResult,
        artifact_name: str | None = None,
    ) -> ArtifactRecord:
        """Upload the report of one lane result.

        Args:
            result: The lane's execution result, whatever its status.
            artifact_name: Overrides the configured name for this lane.
        """
        name = artifact_name or self.artifact_name_for(result.lane_id)
        return self._upload(result.lane_id, name, result.report_path)

    def collect_event_file(self, path: str | Path) -> ArtifactRecord:
        """Upload the payload of the triggering event."""
        return self._upload("", EVENT_FILE_ARTIFACT, str(path))

    def _upload(self, lane_id: str, name: str, source: str) -> ArtifactRecord:
        label = f"lane {lane_id}" if lane_id else "event"
        record = ArtifactRecord(
            lane_id=lane_id,
            artifact_name=name,
            source_path=source,
            uploaded=False,
        )

        if not Path(source).is_file():
            error = MissingReportError(f"Report not found: {source}")
            record.error = _describe(error)
            print(f"artifacts: {label}: {record.error}", file=sys.stderr)
            return record

        try:
            uploaded = bool(self.store.upload(name, source))
        except ArtifactUploadError as e:
            record.error = _describe(e)
        except Exception as e:
            # Stores that raise instead of returning False still yield a record
            record.error = _describe(ArtifactUploadError(f"{type(e).__name__}: {e}"))
        else:
            if not uploaded:
                record.error = _describe(
                    ArtifactUploadError(f"Store rejected '{name}'")
                )
            record.uploaded = uploaded

        if record.uploaded:
            print(f"artifacts: {label}: uploaded '{name}'", file=sys.stderr)
        else:
            print(f"artifacts: {label}: {record.error}", file=sys.stderr)
        return record
