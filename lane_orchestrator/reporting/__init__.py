"""Run reporting: JSON/YAML run reports and JUnit summaries."""

from lane_orchestrator.reporting.junit import JUnitSummary, summarize_junit
from lane_orchestrator.reporting.reporter import Reporter

__all__ = [
    "JUnitSummary",
    "Reporter",
    "summarize_junit",
]
