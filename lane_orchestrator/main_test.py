"""Unit tests for the lane orchestrator entry point."""

from __future__ import annotations

import json
import os
import stat
import tempfile
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.main import build_event, load_config, main, parse_args
from lane_orchestrator.trigger.events import ManualInputs


def _clean_env(**extra: str):
    """Patch os.environ without any GitHub Actions variables."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("GITHUB_")}
    env.update(extra)
    return patch.dict(os.environ, env, clear=True)


def _write_config(tmp: Path, script: str) -> Path:
    path = tmp / ".lanes.yml"
    path.write_text(yaml.safe_dump({
        "runner": {
            "command": [script, "{lane}"],
            "working_directory": str(tmp),
        },
        "artifacts": {"directory": str(tmp / "artifacts")},
    }))
    return path


def _make_script(tmp: Path, content: str) -> str:
    path = tmp / "runner.sh"
    path.write_text(content)
    os.chmod(path, stat.S_IRWXU)
    return str(path)


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = parse_args([])
        assert args.event is None
        assert args.config is None
        assert args.dry_run is False
        assert args.output is None

    def test_trigger_flags(self):
        args = parse_args([
            "--event", "workflow_dispatch", "--run-ffi", "false",
            "--profile", "@smoke", "--ref", "refs/heads/main",
        ])
        assert args.event == "workflow_dispatch"
        assert args.run_ffi == "false"
        assert args.profile == "@smoke"
        assert args.ref == "refs/heads/main"

    def test_invalid_cadence(self):
        with pytest.raises(SystemExit):
            parse_args(["--cadence", "monthly"])


class TestBuildEvent:
    """Tests for build_event."""

    def test_no_flags_no_environment(self):
        event = build_event(parse_args([]), environ={})
        assert event.kind == "workflow_dispatch"
        assert event.manual_inputs is None

    def test_from_github_environment(self):
        event = build_event(parse_args([]), environ={
            "GITHUB_EVENT_NAME": "merge_group",
            "GITHUB_REF": "refs/heads/gh-readonly-queue/main",
            "GITHUB_WORKFLOW": "Integration tests",
        })
        assert event.kind == "merge_group"
        assert event.ref == "refs/heads/gh-readonly-queue/main"
        assert event.workflow == "Integration tests"

    def test_flags_override_environment(self):
        event = build_event(
            parse_args(["--event", "schedule", "--cadence", "weekly"]),
            environ={"GITHUB_EVENT_NAME": "pull_request", "GITHUB_REF": "r"},
        )
        assert event.kind == "schedule"
        assert event.cadence_id == "weekly"
        assert event.ref == "r"

    def test_manual_flags(self):
        event = build_event(
            parse_args(["--event", "manual", "--run-binaries", "true",
                        "--run-ffi", "0", "--profile", "@smoke"]),
            environ={},
        )
        assert event.manual_inputs == ManualInputs(
            run_binary_lane=True, run_ffi_lane=False, profile_override="@smoke",
        )

    def test_manual_flags_merge_with_payload(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            payload = Path(tmpdir) / "event.json"
            payload.write_text(json.dumps({"inputs": {"ci_bins": False}}))
            event = build_event(
                parse_args(["--event", "workflow_dispatch",
                            "--event-path", str(payload), "--run-ffi", "true"]),
                environ={},
            )
        assert event.manual_inputs == ManualInputs(
            run_binary_lane=False, run_ffi_lane=True,
        )


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_explicit_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigurationError, match="not found"):
                load_config(Path(tmpdir) / "missing.yml")

    def test_no_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cwd = os.getcwd()
            os.chdir(tmpdir)
            try:
                config = load_config(None)
            finally:
                os.chdir(cwd)
            assert config.path is None


class TestMain:
    """Tests for the main entry point."""

    def test_dry_run_does_not_execute(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            marker = tmp / "ran"
            script = _make_script(tmp, f"#!/bin/bash\ntouch {marker}\n")
            config = _write_config(tmp, script)
            with _clean_env(), patch("sys.stdout", new_callable=StringIO) as out:
                code = main(["--config", str(config), "--event", "pull_request",
                             "--dry-run"])
            assert code == 0
            assert not marker.exists()
            assert "binaries [enabled]" in out.getvalue()
            assert "ffi [enabled]" in out.getvalue()

    def test_invalid_override_exits_2(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            marker = tmp / "ran"
            script = _make_script(tmp, f"#!/bin/bash\ntouch {marker}\n")
            config = _write_config(tmp, script)
            with _clean_env():
                code = main(["--config", str(config), "--event", "workflow_dispatch",
                             "--profile", "critical and"])
            assert code == 2
            assert not marker.exists()
            assert not (tmp / "artifacts").exists()

    def test_missing_config_exits_2(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with _clean_env():
                code = main(["--config", str(Path(tmpdir) / "missing.yml")])
            assert code == 2

    def test_all_lanes_pass(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            script = _make_script(
                tmp, "#!/bin/bash\necho '<testsuites/>' > \"$LANE_REPORT_PATH\"\n",
            )
            config = _write_config(tmp, script)
            output = tmp / "report.json"
            with _clean_env(), patch("sys.stdout", new_callable=StringIO) as out:
                code = main(["--config", str(config), "--event", "pull_request",
                             "--output", str(output)])
            assert code == 0
            assert "[PASS] binaries" in out.getvalue()
            assert "[PASS] ffi" in out.getvalue()
            report = json.loads(output.read_text())["report"]
            assert report["summary"]["status"] == "passed"

    def test_yaml_output(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            script = _make_script(tmp, "#!/bin/bash\nexit 0\n")
            config = _write_config(tmp, script)
            output = tmp / "report.yml"
            with _clean_env(), patch("sys.stdout", new_callable=StringIO):
                main(["--config", str(config), "--event", "schedule",
                      "--cadence", "daily", "--output", str(output)])
            report = yaml.safe_load(output.read_text())["report"]
            assert report["trigger"]["cadence"] == "daily"
            statuses = {lane["lane_id"]: lane["status"] for lane in report["lanes"]}
            assert statuses == {"binaries": "passed", "ffi": "disabled"}

    def test_event_file_uploaded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            payload = tmp / "event.json"
            payload.write_text(json.dumps({"pull_request": {"number": 1}}))
            script = _make_script(tmp, "#!/bin/bash\nexit 0\n")
            config = _write_config(tmp, script)
            env = {
                "GITHUB_EVENT_NAME": "pull_request",
                "GITHUB_EVENT_PATH": str(payload),
            }
            with _clean_env(**env), patch("sys.stdout", new_callable=StringIO):
                code = main(["--config", str(config)])
            assert code == 0
            assert (tmp / "artifacts" / "Event_File" / "event.json").exists()
