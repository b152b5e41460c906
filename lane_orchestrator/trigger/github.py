"""Build trigger events from a GitHub Actions environment.

Reads ``GITHUB_EVENT_NAME``, ``GITHUB_REF`` and ``GITHUB_WORKFLOW`` and,
when available, the JSON payload at ``GITHUB_EVENT_PATH`` for the cron
expression of scheduled runs and the inputs of manual runs.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from lane_orchestrator.trigger.events import ManualInputs, TriggerEvent


def load_event_payload(path: str | Path | None) -> dict[str, Any]:
    """Load the webhook payload that triggered the workflow.

    Returns an empty dict when the path is unset, missing or unreadable.
    """
    if not path:
        return {}
    try:
        data = json.loads(Path(path).read_text())
    except FileNotFoundError:
        print(f"trigger: event payload not found: {path}", file=sys.stderr)
        return {}
    except (json.JSONDecodeError, OSError) as e:
        print(f"trigger: cannot read event payload {path}: {e}", file=sys.stderr)
        return {}
    if not isinstance(data, dict):
        print(f"trigger: event payload is not an object: {path}", file=sys.stderr)
        return {}
    return data


def event_from_payload(
    kind: str,
    payload: Mapping[str, Any],
    ref: str | None = None,
    workflow: str | None = None,
) -> TriggerEvent:
    """Build a TriggerEvent from an event name and its payload."""
    schedule = payload.get("schedule")
    inputs = payload.get("inputs")

    manual_inputs = None
    if isinstance(inputs, dict):
        manual_inputs = ManualInputs.from_mapping(inputs)

    return TriggerEvent(
        kind=kind,
        schedule_cron=schedule if isinstance(schedule, str) else None,
        manual_inputs=manual_inputs,
        ref=ref,
        workflow=workflow,
    )


def event_from_github_env(
    environ: Mapping[str, str] | None = None,
) -> TriggerEvent | None:
    """Build a TriggerEvent from the GitHub Actions environment.

    Returns:
        The event, or None when not running under GitHub Actions.
    """
    env = os.environ if environ is None else environ
    kind = env.get("GITHUB_EVENT_NAME")
    if not kind:
        return None

    payload = load_event_payload(env.get("GITHUB_EVENT_PATH"))
    return event_from_payload(
        kind,
        payload,
        ref=env.get("GITHUB_REF") or None,
        workflow=env.get("GITHUB_WORKFLOW") or None,
    )
