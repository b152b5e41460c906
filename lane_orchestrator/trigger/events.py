"""Trigger event and context data structures.

A ``TriggerEvent`` is the raw description of what invoked the run. The
resolver turns it into a ``TriggerContext``, a closed set of facts the
profile compiler consumes. Both are immutable.
"""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import Any


class TriggerKind(str, enum.Enum):
    """Kinds of CI events that can start a run."""

    PULL_REQUEST = "pull_request"
    MERGE_GROUP = "merge_group"
    SCHEDULE = "schedule"
    WORKFLOW_DISPATCH = "workflow_dispatch"


class Cadence(str, enum.Enum):
    """The two recurring schedules."""

    DAILY = "daily"
    WEEKLY = "weekly"


# Descriptive names accepted alongside the GitHub event names
KIND_ALIASES: dict[str, TriggerKind] = {
    "pull-request-updated": TriggerKind.PULL_REQUEST,
    "merge-group-check": TriggerKind.MERGE_GROUP,
    "scheduled": TriggerKind.SCHEDULE,
    "manual": TriggerKind.WORKFLOW_DISPATCH,
}

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def parse_kind(value: str | None) -> TriggerKind | None:
    """Map an event name to a ``TriggerKind``, or None if unrecognized."""
    if not value:
        return None
    name = value.strip().lower()
    if name in KIND_ALIASES:
        return KIND_ALIASES[name]
    try:
        return TriggerKind(name)
    except ValueError:
        return None


def parse_cadence(value: str | None) -> Cadence | None:
    """Map a cadence id to a ``Cadence``, or None if unrecognized."""
    if not value:
        return None
    try:
        return Cadence(value.strip().lower())
    except ValueError:
        return None


def parse_tristate(value: Any) -> bool | None:
    """Interpret a manual-input boolean as unset, true or false.

    Workflow inputs arrive as real booleans, as strings, or not at all.
    Empty and unrecognized values count as unset so the lane keeps its
    default.
    """
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    print(
        f"trigger: ignoring unrecognized boolean input {value!r}",
        file=sys.stderr,
    )
    return None


@dataclass(frozen=True)
class ManualInputs:
    """Inputs of a manual (workflow_dispatch) run."""

    run_binary_lane: bool | None = None
    run_ffi_lane: bool | None = None
    profile_override: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ManualInputs:
        """Build from a workflow ``inputs`` mapping.

        Accepts the orchestrator's own keys and the ``ci_bins`` / ``ci_ffi``
        lane switches of the integration-test workflow. That workflow's
        ``ci_profile`` input defaults to ``ci`` and is not a tag
        expression, so it is not read as an override.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        override = pick("profile_override")
        if override is not None:
            override = str(override)
        return cls(
            run_binary_lane=parse_tristate(pick("run_binary_lane", "ci_bins")),
            run_ffi_lane=parse_tristate(pick("run_ffi_lane", "ci_ffi")),
            profile_override=override,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_binary_lane": self.run_binary_lane,
            "run_ffi_lane": self.run_ffi_lane,
            "profile_override": self.profile_override,
        }


@dataclass(frozen=True)
class TriggerEvent:
    """Raw trigger input.

    ``kind`` is kept as the string the invoking system supplied so that
    unknown kinds can still be represented and resolved to the default.
    """

    kind: str
    cadence_id: str | None = None
    schedule_cron: str | None = None
    manual_inputs: ManualInputs | None = None
    ref: str | None = None
    workflow: str | None = None


@dataclass(frozen=True)
class TriggerContext:
    """Resolved, read-only facts about the trigger of one run."""

    kind: TriggerKind
    is_scheduled: bool = False
    cadence: Cadence | None = None
    manual_inputs: ManualInputs | None = None
    group_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "is_scheduled": self.is_scheduled,
            "cadence": self.cadence.value if self.cadence else None,
            "manual_inputs": (
                self.manual_inputs.to_dict() if self.manual_inputs else None
            ),
            "group_key": self.group_key,
        }
