"""Unit tests for artifact collection and the directory store."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from lane_orchestrator.artifacts.collector import (
    EVENT_FILE_ARTIFACT,
    ArtifactCollector,
    ArtifactRecord,
)
from lane_orchestrator.artifacts.store import DirectoryArtifactStore, safe_artifact_name
from lane_orchestrator.errors import ArtifactUploadError
from lane_orchestrator.execution.executor import ExecutionResult


class _RecordingStore:
    """Store stand-in that records uploads and can be told to fail."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.uploads: list[tuple[str, str]] = []

    def upload(self, name, path):
        self.uploads.append((name, path))
        if self.error is not None:
            raise self.error
        return self.result


def _result(report_path: Path, lane_id: str = "binaries", exit_code: int = 0,
            timed_out: bool = False) -> ExecutionResult:
    return ExecutionResult(
        lane_id=lane_id,
        exit_code=exit_code,
        report_path=str(report_path),
        timed_out=timed_out,
    )


class TestArtifactCollector:
    """Tests for ArtifactCollector.collect."""

    def test_uploads_existing_report(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            store = _RecordingStore()
            record = ArtifactCollector(store).collect(_result(report), "junit-cucumber")

            assert record.uploaded is True
            assert record.error is None
            assert record.artifact_name == "junit-cucumber"
            assert store.uploads == [("junit-cucumber", str(report))]

    @pytest.mark.parametrize("exit_code,timed_out", [(0, False), (2, False), (124, True)])
    def test_collects_whatever_the_outcome(self, exit_code, timed_out):
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            store = _RecordingStore()
            record = ArtifactCollector(store).collect(
                _result(report, exit_code=exit_code, timed_out=timed_out),
            )
            assert record.uploaded is True
            assert len(store.uploads) == 1

    def test_missing_report_recorded_not_raised(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = _RecordingStore()
            record = ArtifactCollector(store).collect(
                _result(Path(tmpdir) / "missing.xml", lane_id="ffi"),
            )
            assert record.uploaded is False
            assert record.error.startswith("MissingReportError")
            assert record.lane_id == "ffi"
            assert store.uploads == []

    def test_store_error_recorded_not_raised(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            store = _RecordingStore(error=ArtifactUploadError("quota exceeded"))
            record = ArtifactCollector(store).collect(_result(report))
            assert record.uploaded is False
            assert record.error == "ArtifactUploadError: quota exceeded"

    def test_store_os_error_recorded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            store = _RecordingStore(error=PermissionError("denied"))
            record = ArtifactCollector(store).collect(_result(report))
            assert record.uploaded is False
            assert record.error.startswith("ArtifactUploadError")

    def test_unexpected_store_error_recorded(self):
        """A store raising outside its contract still yields a failed record."""
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            store = _RecordingStore(error=RuntimeError("network down"))
            record = ArtifactCollector(store).collect(_result(report, lane_id="ffi"))
            assert record.uploaded is False
            assert record.lane_id == "ffi"
            assert record.error == "ArtifactUploadError: RuntimeError: network down"

    def test_store_rejection_recorded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            report = Path(tmpdir) / "report.xml"
            report.write_text("<testsuites/>")
            record = ArtifactCollector(_RecordingStore(result=False)).collect(
                _result(report),
            )
            assert record.uploaded is False
            assert "rejected" in record.error

    def test_default_and_configured_names(self):
        collector = ArtifactCollector(_RecordingStore(), {"binaries": "junit-cucumber"})
        assert collector.artifact_name_for("binaries") == "junit-cucumber"
        assert collector.artifact_name_for("ffi") == "junit-ffi-cucumber"

    def test_event_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            event = Path(tmpdir) / "event.json"
            event.write_text("{}")
            store = _RecordingStore()
            record = ArtifactCollector(store).collect_event_file(event)
            assert record.uploaded is True
            assert record.lane_id == ""
            assert store.uploads == [(EVENT_FILE_ARTIFACT, str(event))]

    def test_record_to_dict(self):
        record = ArtifactRecord("ffi", "junit-ffi-cucumber", "r.xml", uploaded=False,
                                error="boom")
        assert record.to_dict() == {
            "lane_id": "ffi",
            "artifact_name": "junit-ffi-cucumber",
            "source_path": "r.xml",
            "uploaded": False,
            "error": "boom",
        }


class TestDirectoryArtifactStore:
    """Tests for DirectoryArtifactStore."""

    def test_copies_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            source = tmp / "cucumber-output-junit.xml"
            source.write_text("<testsuites/>")
            store = DirectoryArtifactStore(tmp / "artifacts")
            assert store.upload("junit-cucumber", str(source)) is True
            target = tmp / "artifacts" / "junit-cucumber" / "cucumber-output-junit.xml"
            assert target.read_text() == "<testsuites/>"

    def test_replaces_existing_upload(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            source = tmp / "report.xml"
            store = DirectoryArtifactStore(tmp / "artifacts")
            source.write_text("first")
            store.upload("a", str(source))
            source.write_text("second")
            store.upload("a", str(source))
            assert store.path_for("a", str(source)).read_text() == "second"

    def test_missing_source_raises_upload_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DirectoryArtifactStore(Path(tmpdir))
            with pytest.raises(ArtifactUploadError):
                store.upload("a", str(Path(tmpdir) / "missing.xml"))

    def test_safe_artifact_name(self):
        assert safe_artifact_name("Event File") == "Event_File"
        assert safe_artifact_name("../etc") == "etc"
        assert safe_artifact_name("  ") == "artifact"
