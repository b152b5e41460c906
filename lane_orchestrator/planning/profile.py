"""Test profile compilation.

Maps a resolved TriggerContext to a TestProfile: the tag expression that
selects scenarios and which lane switches are on.

Trigger x profile matrix::

    +------------------------------+------------------------------------+------+-----+
    | context                      | tag expression                     | bins | ffi |
    +------------------------------+------------------------------------+------+-----+
    | pull_request / merge_group   | @critical and (not @long-running)  | on   | on  |
    | schedule, daily              | (not @long-running)                | on   | off |
    | schedule, weekly             | @long-running                      | on   | off |
    | workflow_dispatch            | critical, or profile_override      | in.  | in. |
    +------------------------------+------------------------------------+------+-----+

For manual runs, "in." means the lane follows its manual input; an unset
input leaves the lane on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.planning.tag_expression import TagExpressionError, parse
from lane_orchestrator.trigger.events import Cadence, TriggerContext

# Lane switches a TestProfile carries
LANE_TOGGLES = frozenset({"binaries", "ffi"})

DEFAULT_PROFILES: dict[str, str] = {
    "critical": "@critical and (not @long-running)",
    "daily": "(not @long-running)",
    "weekly": "@long-running",
}


@dataclass(frozen=True)
class TestProfile:
    """Scenario selection and lane switches for one run."""

    __test__ = False

    tag_expression: str
    ffi_enabled: bool = True
    binaries_enabled: bool = True

    def is_enabled(self, toggle: str) -> bool:
        """Return the switch governing lanes with the given toggle."""
        if toggle == "binaries":
            return self.binaries_enabled
        if toggle == "ffi":
            return self.ffi_enabled
        raise ConfigurationError(
            f"Unknown lane toggle {toggle!r} "
            f"(expected one of: {', '.join(sorted(LANE_TOGGLES))})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag_expression": self.tag_expression,
            "binaries_enabled": self.binaries_enabled,
            "ffi_enabled": self.ffi_enabled,
        }


def validate_expression(expression: str, source: str) -> str:
    """Check an expression against the runner grammar.

    Returns:
        The expression, unchanged.

    Raises:
        ConfigurationError: If the expression is empty or malformed.
    """
    try:
        parse(expression)
    except TagExpressionError as e:
        raise ConfigurationError(f"Invalid {source}: {e}") from e
    return expression


class ProfileCompiler:
    """Compiles TriggerContexts into TestProfiles.

    The compiler is pure: the same context always yields an equal profile.
    """

    def __init__(self, profiles: dict[str, str] | None = None) -> None:
        merged = {**DEFAULT_PROFILES, **(profiles or {})}
        for name in DEFAULT_PROFILES:
            validate_expression(merged[name], f"'{name}' profile")
        self.profiles = merged

    def compile(self, ctx: TriggerContext) -> TestProfile:
        """Build the TestProfile for a trigger context.

        Raises:
            ConfigurationError: If a manual profile override is not a
                valid tag expression.
        """
        if ctx.is_scheduled:
            name = "weekly" if ctx.cadence == Cadence.WEEKLY else "daily"
            return TestProfile(
                tag_expression=self.profiles[name],
                ffi_enabled=False,
                binaries_enabled=True,
            )

        tag_expression = self.profiles["critical"]
        binaries_enabled = True
        ffi_enabled = True

        inputs = ctx.manual_inputs
        if inputs is not None:
            override = inputs.profile_override
            if override is not None and override.strip():
                tag_expression = validate_expression(
                    override, "profile override",
                )
            if inputs.run_binary_lane is not None:
                binaries_enabled = inputs.run_binary_lane
            if inputs.run_ffi_lane is not None:
                ffi_enabled = inputs.run_ffi_lane

        return TestProfile(
            tag_expression=tag_expression,
            ffi_enabled=ffi_enabled,
            binaries_enabled=binaries_enabled,
        )
