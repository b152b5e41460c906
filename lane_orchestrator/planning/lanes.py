"""Static lane configuration and per-run lane plans."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.planning.profile import LANE_TOGGLES, validate_expression

DEFAULT_REPORT_DIR = Path("integration_tests") / "reports"
REPORT_FILENAME = "cucumber-output-junit.xml"


def default_toggle(lane_id: str) -> str:
    return "binaries" if lane_id == "binaries" else "ffi"


@dataclass(frozen=True)
class LaneSpec:
    """Static configuration of one execution lane.

    ``toggle`` names the TestProfile switch that enables the lane. The
    ``binaries`` lane follows ``binaries_enabled`` and every other lane
    follows ``ffi_enabled`` unless a toggle is given.
    """

    lane_id: str
    tag_filter_suffix: str
    concurrency: int
    retries: int
    timeout_minutes: int
    toggle: str = ""
    artifact_name: str = ""
    report_path: str = ""

    def __post_init__(self) -> None:
        # Fill derived defaults on the frozen instance
        if not self.toggle:
            object.__setattr__(self, "toggle", default_toggle(self.lane_id))
        if not self.artifact_name:
            object.__setattr__(self, "artifact_name", f"junit-{self.lane_id}-cucumber")
        if not self.report_path:
            object.__setattr__(
                self,
                "report_path",
                str(DEFAULT_REPORT_DIR / self.lane_id / REPORT_FILENAME),
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LaneSpec:
        """Build and validate a LaneSpec from a config mapping.

        Raises:
            ConfigurationError: If a field is missing or out of range.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Lane definition must be a mapping: {data!r}")

        lane_id = str(data.get("id") or data.get("lane_id") or "").strip()
        if not lane_id:
            raise ConfigurationError(f"Lane definition without id: {data!r}")

        def number(key: str, minimum: int) -> int:
            if key not in data:
                raise ConfigurationError(f"Lane '{lane_id}': missing '{key}'")
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"Lane '{lane_id}': '{key}' must be an integer, got {value!r}"
                )
            if value < minimum:
                raise ConfigurationError(
                    f"Lane '{lane_id}': '{key}' must be >= {minimum}, got {value}"
                )
            return value

        def text(*keys: str) -> str:
            # A key present with an empty YAML value counts as missing
            for key in keys:
                if data.get(key) is not None:
                    return str(data[key])
            return ""

        suffix = text("tag_filter", "tag_filter_suffix")
        if suffix.strip():
            validate_expression(suffix, f"tag filter of lane '{lane_id}'")

        toggle = str(data.get("toggle") or default_toggle(lane_id))
        if toggle not in LANE_TOGGLES:
            raise ConfigurationError(
                f"Lane '{lane_id}': toggle {toggle!r} is not one of "
                f"{', '.join(sorted(LANE_TOGGLES))}"
            )

        return cls(
            lane_id=lane_id,
            tag_filter_suffix=suffix,
            concurrency=number("concurrency", 1),
            retries=number("retries", 0),
            timeout_minutes=number("timeout_minutes", 1),
            toggle=toggle,
            artifact_name=text("artifact", "artifact_name"),
            report_path=text("report_path"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.lane_id,
            "tag_filter": self.tag_filter_suffix,
            "concurrency": self.concurrency,
            "retries": self.retries,
            "timeout_minutes": self.timeout_minutes,
            "toggle": self.toggle,
            "artifact": self.artifact_name,
            "report_path": self.report_path,
        }


# FFI scenarios share process-level native state, hence concurrency 1
DEFAULT_LANE_SPECS: tuple[LaneSpec, ...] = (
    LaneSpec(
        lane_id="binaries",
        tag_filter_suffix="(not @wallet-ffi) and (not @chat-ffi) and (not @broken)",
        concurrency=5,
        retries=2,
        timeout_minutes=90,
        artifact_name="junit-cucumber",
    ),
    LaneSpec(
        lane_id="ffi",
        tag_filter_suffix="(@wallet-ffi or @chat-ffi) and (not @broken)",
        concurrency=1,
        retries=2,
        timeout_minutes=90,
        artifact_name="junit-ffi-cucumber",
    ),
)


@dataclass(frozen=True)
class LaneExecutionPlan:
    """Everything needed to run one lane for one run."""

    lane_id: str
    tag_expression: str
    concurrency: int
    retries: int
    timeout_minutes: int
    enabled: bool
    artifact_name: str = ""
    report_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "lane_id": self.lane_id,
            "tag_expression": self.tag_expression,
            "concurrency": self.concurrency,
            "retries": self.retries,
            "timeout_minutes": self.timeout_minutes,
            "enabled": self.enabled,
            "artifact_name": self.artifact_name,
            "report_path": self.report_path,
        }
