"""Trigger resolution: classify a raw event into a TriggerContext.

``resolve_trigger`` is total. An event it cannot classify (unknown kind,
or a schedule whose cadence cannot be determined) resolves to the
manual-default context so that a CI entry point never fails before the
tests get a chance to run.
"""

from __future__ import annotations

import sys

from lane_orchestrator.trigger.events import (
    Cadence,
    TriggerContext,
    TriggerEvent,
    TriggerKind,
    parse_cadence,
    parse_kind,
)

# Cron expressions of the two configured schedules
DEFAULT_SCHEDULES: dict[str, str] = {
    "0 2 * * *": "daily",
    "0 12 * * 6": "weekly",
}

MANUAL_DEFAULT = TriggerContext(kind=TriggerKind.WORKFLOW_DISPATCH)


def group_key(workflow: str | None, ref: str | None) -> str | None:
    """Build the key identifying runs that supersede each other.

    Returns ``"<workflow>-<ref>"`` when both are known, the ref alone when
    only the ref is known, and None otherwise.
    """
    if not ref:
        return None
    if workflow:
        return f"{workflow}-{ref}"
    return ref


def resolve_cadence(
    event: TriggerEvent,
    schedules: dict[str, str] | None = None,
) -> Cadence | None:
    """Determine the cadence of a scheduled event.

    An explicit ``cadence_id`` wins; otherwise the cron expression that
    fired is looked up in ``schedules``.
    """
    cadence = parse_cadence(event.cadence_id)
    if cadence is not None:
        return cadence
    if event.schedule_cron:
        table = DEFAULT_SCHEDULES if schedules is None else schedules
        return parse_cadence(table.get(event.schedule_cron.strip()))
    return None


def resolve_trigger(
    event: TriggerEvent,
    schedules: dict[str, str] | None = None,
) -> TriggerContext:
    """Classify a trigger event.

    Args:
        event: The raw trigger event.
        schedules: Mapping of cron expression to cadence id, used when the
            event carries the cron string rather than a cadence id.

    Returns:
        The resolved TriggerContext.
    """
    key = group_key(event.workflow, event.ref)
    kind = parse_kind(event.kind)

    if kind is None:
        print(
            f"trigger: unrecognized event kind {event.kind!r}, "
            f"using manual defaults",
            file=sys.stderr,
        )
        return TriggerContext(kind=MANUAL_DEFAULT.kind, group_key=key)

    if kind in (TriggerKind.PULL_REQUEST, TriggerKind.MERGE_GROUP):
        return TriggerContext(kind=kind, group_key=key)

    if kind == TriggerKind.SCHEDULE:
        cadence = resolve_cadence(event, schedules)
        if cadence is None:
            print(
                f"trigger: cannot determine cadence for schedule "
                f"(cadence={event.cadence_id!r}, cron={event.schedule_cron!r}), "
                f"using manual defaults",
                file=sys.stderr,
            )
            return TriggerContext(kind=MANUAL_DEFAULT.kind, group_key=key)
        return TriggerContext(
            kind=kind,
            is_scheduled=True,
            cadence=cadence,
            group_key=key,
        )

    return TriggerContext(
        kind=TriggerKind.WORKFLOW_DISPATCH,
        manual_inputs=event.manual_inputs,
        group_key=key,
    )
