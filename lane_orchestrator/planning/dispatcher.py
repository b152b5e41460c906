"""Lane dispatch: expand a TestProfile into one plan per lane."""

from __future__ import annotations

from typing import Sequence

from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.planning.lanes import LaneExecutionPlan, LaneSpec
from lane_orchestrator.planning.profile import TestProfile
from lane_orchestrator.planning.tag_expression import TagExpressionError, conjoin


def plan_lanes(
    profile: TestProfile,
    specs: Sequence[LaneSpec],
) -> list[LaneExecutionPlan]:
    """Build the execution plan of every lane, in LaneSpec order.

    The final tag expression of a lane is the profile expression and-ed
    with the lane's filter suffix. Concurrency, retries and timeout are
    copied from the LaneSpec unchanged.

    Raises:
        ConfigurationError: If two specs share a lane id or a combined
            expression is invalid.
    """
    seen: set[str] = set()
    plans: list[LaneExecutionPlan] = []

    for spec in specs:
        if spec.lane_id in seen:
            raise ConfigurationError(f"Duplicate lane id: {spec.lane_id}")
        seen.add(spec.lane_id)

        try:
            tag_expression = conjoin(profile.tag_expression, spec.tag_filter_suffix)
        except TagExpressionError as e:
            raise ConfigurationError(
                f"Lane '{spec.lane_id}': cannot combine tag expressions: {e}"
            ) from e

        plans.append(LaneExecutionPlan(
            lane_id=spec.lane_id,
            tag_expression=tag_expression,
            concurrency=spec.concurrency,
            retries=spec.retries,
            timeout_minutes=spec.timeout_minutes,
            enabled=profile.is_enabled(spec.toggle),
            artifact_name=spec.artifact_name,
            report_path=spec.report_path,
        ))

    return plans
