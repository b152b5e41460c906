"""Trigger events, contexts and their resolution."""

from lane_orchestrator.trigger.events import (
    Cadence,
    ManualInputs,
    TriggerContext,
    TriggerEvent,
    TriggerKind,
)
from lane_orchestrator.trigger.github import event_from_github_env
from lane_orchestrator.trigger.resolver import resolve_trigger

__all__ = [
    "Cadence",
    "ManualInputs",
    "TriggerContext",
    "TriggerEvent",
    "TriggerKind",
    "event_from_github_env",
    "resolve_trigger",
]
