"""Unit tests for orchestrator configuration."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
import yaml

from lane_orchestrator.config import DEFAULT_CONFIG, OrchestratorConfig
from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.planning.lanes import DEFAULT_LANE_SPECS


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig."""

    def test_defaults_without_file(self):
        config = OrchestratorConfig()
        assert config.runner_command[:2] == ["cargo", "test"]
        assert config.working_directory == Path(".")
        assert config.runner_env == {}
        assert config.lane_specs == list(DEFAULT_LANE_SPECS)
        assert config.artifact_dir == Path("artifacts")
        assert config.max_parallel_lanes is None
        assert config.schedules["0 12 * * 6"] == "weekly"
        assert config.profiles["critical"] == "@critical and (not @long-running)"

    def test_missing_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = OrchestratorConfig(Path(tmpdir) / ".lanes.yml")
            assert config.config == DEFAULT_CONFIG

    def test_partial_sections_merged(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text(
                "runner:\n"
                "  command: [./run.sh, '{tags}']\n"
                "  env:\n"
                "    RUST_LOG: info\n"
                "profiles:\n"
                "  critical: '@smoke'\n"
                "max_parallel_lanes: 1\n"
            )
            config = OrchestratorConfig(path)
            assert config.runner_command == ["./run.sh", "{tags}"]
            assert config.runner_env == {"RUST_LOG": "info"}
            assert config.working_directory == Path(".")
            assert config.profiles["critical"] == "@smoke"
            assert config.profiles["weekly"] == "@long-running"
            assert config.max_parallel_lanes == 1

    def test_lanes_replaced(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text(yaml.safe_dump({
                "lanes": [{
                    "id": "binaries",
                    "tag_filter": "not @broken",
                    "concurrency": 2,
                    "retries": 0,
                    "timeout_minutes": 10,
                }],
            }))
            specs = OrchestratorConfig(path).lane_specs
            assert [s.lane_id for s in specs] == ["binaries"]
            assert specs[0].concurrency == 2

    def test_invalid_yaml_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text("runner: [unclosed\n")
            config = OrchestratorConfig(path)
            assert config.config == DEFAULT_CONFIG

    def test_non_mapping_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text("- just\n- a list\n")
            assert OrchestratorConfig(path).config == DEFAULT_CONFIG

    def test_empty_lanes_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text("lanes: []\n")
            with pytest.raises(ConfigurationError, match="non-empty list"):
                OrchestratorConfig(path).lane_specs

    def test_string_command_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text("runner:\n  command: cargo test\n")
            with pytest.raises(ConfigurationError, match="list of arguments"):
                OrchestratorConfig(path).runner_command

    @pytest.mark.parametrize("value", [0, "many"])
    def test_invalid_max_parallel_lanes(self, value):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / ".lanes.yml"
            path.write_text(yaml.safe_dump({"max_parallel_lanes": value}))
            with pytest.raises(ConfigurationError, match="max_parallel_lanes"):
                OrchestratorConfig(path).max_parallel_lanes

    def test_save_round_trip(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sub" / ".lanes.yml"
            config = OrchestratorConfig(path)
            config.save()
            assert path.exists()
            reloaded = OrchestratorConfig(path)
            assert reloaded.config == DEFAULT_CONFIG
            assert reloaded.lane_specs == list(DEFAULT_LANE_SPECS)

    def test_save_without_path(self):
        with pytest.raises(ValueError, match="No config file path"):
            OrchestratorConfig().save()
