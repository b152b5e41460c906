"""Orchestrator configuration file management.

Reads the optional ``.lanes.yml`` file (YAML, or JSON as a YAML subset)
that overrides the runner command, tag profiles, schedule table, lane
definitions and artifact location. Keys not present keep their defaults.
"""

from __future__ import annotations

import copy
import sys
from pathlib import Path
from typing import Any

import yaml

from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.execution.executor import DEFAULT_RUNNER_COMMAND
from lane_orchestrator.planning.lanes import DEFAULT_LANE_SPECS, LaneSpec
from lane_orchestrator.planning.profile import DEFAULT_PROFILES
from lane_orchestrator.trigger.resolver import DEFAULT_SCHEDULES

DEFAULT_CONFIG_PATH = Path(".lanes.yml")

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "runner": {
        "command": list(DEFAULT_RUNNER_COMMAND),
        "working_directory": ".",
        "env": {},
    },
    "profiles": dict(DEFAULT_PROFILES),
    "schedules": dict(DEFAULT_SCHEDULES),
    "lanes": [spec.to_dict() for spec in DEFAULT_LANE_SPECS],
    "artifacts": {
        "directory": "artifacts",
    },
    "max_parallel_lanes": None,
}


class OrchestratorConfig:
    """Manages the orchestrator configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file, keeping defaults for absent keys."""
        assert self.path is not None
        try:
            data = yaml.safe_load(self.path.read_text())
        except (yaml.YAMLError, OSError) as e:
            print(
                f"Warning: cannot read config {self.path}, using defaults: {e}",
                file=sys.stderr,
            )
            return
        if data is None:
            return
        if not isinstance(data, dict):
            print(
                f"Warning: config {self.path} is not a mapping, using defaults",
                file=sys.stderr,
            )
            return

        for section in ("runner", "artifacts"):
            if isinstance(data.get(section), dict):
                self._data[section] = {**self._data[section], **data[section]}
        for section in ("profiles", "schedules"):
            if isinstance(data.get(section), dict):
                self._data[section] = {
                    **self._data[section],
                    **{str(k): str(v) for k, v in data[section].items()},
                }
        if "lanes" in data:
            self._data["lanes"] = data["lanes"]
        if "max_parallel_lanes" in data:
            self._data["max_parallel_lanes"] = data["max_parallel_lanes"]

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(self._data, f, sort_keys=False)

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return copy.deepcopy(self._data)

    @property
    def runner_command(self) -> list[str]:
        """Get the runner command template."""
        command = self._data["runner"].get("command")
        if isinstance(command, str):
            raise ConfigurationError(
                "runner.command must be a list of arguments, not a string"
            )
        if not command:
            raise ConfigurationError("runner.command must not be empty")
        return [str(arg) for arg in command]

    @property
    def working_directory(self) -> Path:
        """Get the directory the runner starts in."""
        return Path(str(self._data["runner"].get("working_directory") or "."))

    @property
    def runner_env(self) -> dict[str, str]:
        """Get extra environment variables for the runner."""
        env = self._data["runner"].get("env") or {}
        return {str(k): str(v) for k, v in env.items()}

    @property
    def profiles(self) -> dict[str, str]:
        """Get the named tag expressions (critical, daily, weekly)."""
        return dict(self._data["profiles"])

    @property
    def schedules(self) -> dict[str, str]:
        """Get the cron expression to cadence table."""
        return dict(self._data["schedules"])

    @property
    def lane_specs(self) -> list[LaneSpec]:
        """Get the validated lane definitions, in configured order.

        Raises:
            ConfigurationError: If the lane list is empty or malformed.
        """
        lanes = self._data["lanes"]
        if not isinstance(lanes, list) or not lanes:
            raise ConfigurationError("'lanes' must be a non-empty list")
        return [LaneSpec.from_dict(entry) for entry in lanes]

    @property
    def artifact_dir(self) -> Path:
        """Get the directory artifacts are stored in."""
        return Path(str(self._data["artifacts"].get("directory") or "artifacts"))

    @property
    def max_parallel_lanes(self) -> int | None:
        """Get the max lanes running at once (None = all)."""
        val = self._data.get("max_parallel_lanes")
        if val is None:
            return None
        try:
            val = int(val)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"max_parallel_lanes must be an integer, got {val!r}"
            ) from e
        if val < 1:
            raise ConfigurationError(f"max_parallel_lanes must be >= 1, got {val}")
        return val
