"""Planning: tag expressions, profile compilation and lane dispatch."""

from lane_orchestrator.planning.dispatcher import plan_lanes
from lane_orchestrator.planning.lanes import DEFAULT_LANE_SPECS, LaneExecutionPlan, LaneSpec
from lane_orchestrator.planning.profile import ProfileCompiler, TestProfile

__all__ = [
    "DEFAULT_LANE_SPECS",
    "LaneExecutionPlan",
    "LaneSpec",
    "ProfileCompiler",
    "TestProfile",
    "plan_lanes",
]
