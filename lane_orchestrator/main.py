"""Entry point for the lane orchestrator.

Resolves the trigger of the run, compiles it into a test profile, plans
one execution per lane, runs the enabled lanes concurrently, collects
their reports and prints a per-lane breakdown. The exit code is 0 when
every enabled lane passed, 1 when any failed, timed out or was cancelled,
and 2 when the configuration or an override is invalid.
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import signal
import sys
from pathlib import Path
from typing import Any, Mapping

from lane_orchestrator.artifacts.collector import ArtifactCollector
from lane_orchestrator.artifacts.store import DirectoryArtifactStore
from lane_orchestrator.config import DEFAULT_CONFIG_PATH, OrchestratorConfig
from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.execution.executor import LaneExecutor
from lane_orchestrator.execution.pipeline import LanePipeline, RunOutcome
from lane_orchestrator.planning.dispatcher import plan_lanes
from lane_orchestrator.planning.lanes import LaneExecutionPlan
from lane_orchestrator.planning.profile import ProfileCompiler
from lane_orchestrator.reporting.junit import summarize_junit
from lane_orchestrator.reporting.reporter import Reporter
from lane_orchestrator.trigger.events import (
    ManualInputs,
    TriggerEvent,
    TriggerKind,
    parse_tristate,
)
from lane_orchestrator.trigger.github import (
    event_from_github_env,
    event_from_payload,
    load_event_payload,
)
from lane_orchestrator.trigger.resolver import resolve_trigger


def add_trigger_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the config and trigger flags shared with the CI tool."""
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the YAML config file (default: {DEFAULT_CONFIG_PATH} if present)",
    )

    # Trigger flags; without --event the GitHub Actions environment is used
    parser.add_argument(
        "--event",
        type=str,
        default=None,
        help="Trigger kind: pull_request, merge_group, schedule, "
             "workflow_dispatch (default: $GITHUB_EVENT_NAME)",
    )
    parser.add_argument(
        "--event-path",
        type=Path,
        default=None,
        help="Path to the JSON event payload (default: $GITHUB_EVENT_PATH)",
    )
    parser.add_argument(
        "--cadence",
        choices=["daily", "weekly"],
        default=None,
        help="Cadence of a scheduled run",
    )
    parser.add_argument(
        "--schedule",
        type=str,
        default=None,
        help="Cron expression of the schedule that fired",
    )
    parser.add_argument(
        "--run-binaries",
        type=str,
        default=None,
        help="Manual runs: enable (true) or disable (false) the binaries lane",
    )
    parser.add_argument(
        "--run-ffi",
        type=str,
        default=None,
        help="Manual runs: enable (true) or disable (false) the FFI lane",
    )
    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Manual runs: tag expression replacing the default profile",
    )
    parser.add_argument(
        "--ref",
        type=str,
        default=None,
        help="Git ref of the run (default: $GITHUB_REF)",
    )
    parser.add_argument(
        "--workflow",
        type=str,
        default=None,
        help="Workflow name (default: $GITHUB_WORKFLOW)",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Lane orchestrator - runs integration test lanes for a CI trigger"
    )
    add_trigger_arguments(parser)
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the run report (.json, or .yml/.yaml for YAML)",
    )
    parser.add_argument(
        "--artifact-dir",
        type=Path,
        default=None,
        help="Directory artifacts are stored in (overrides the config)",
    )
    parser.add_argument(
        "--working-directory",
        type=Path,
        default=None,
        help="Directory the runner starts in (overrides the config)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the lane plans without running them",
    )
    return parser.parse_args(argv)


def build_event(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> TriggerEvent:
    """Build the trigger event from flags and the CI environment.

    ``--event`` takes the kind from the command line; otherwise the GitHub
    Actions environment is read, and with neither a manual run is assumed.
    Individual flags override what the environment supplied.
    """
    env = os.environ if environ is None else environ

    event: TriggerEvent | None
    if args.event:
        payload = load_event_payload(args.event_path)
        event = event_from_payload(args.event, payload)
    else:
        event = event_from_github_env(env)
    if event is None:
        event = TriggerEvent(kind=TriggerKind.WORKFLOW_DISPATCH.value)

    changes: dict[str, Any] = {}
    if args.cadence:
        changes["cadence_id"] = args.cadence
    if args.schedule:
        changes["schedule_cron"] = args.schedule
    if args.ref:
        changes["ref"] = args.ref
    elif event.ref is None and env.get("GITHUB_REF"):
        changes["ref"] = env["GITHUB_REF"]
    if args.workflow:
        changes["workflow"] = args.workflow
    elif event.workflow is None and env.get("GITHUB_WORKFLOW"):
        changes["workflow"] = env["GITHUB_WORKFLOW"]

    if (args.run_binaries is not None or args.run_ffi is not None
            or args.profile is not None):
        inputs = event.manual_inputs or ManualInputs()
        if args.run_binaries is not None:
            inputs = dataclasses.replace(
                inputs, run_binary_lane=parse_tristate(args.run_binaries),
            )
        if args.run_ffi is not None:
            inputs = dataclasses.replace(
                inputs, run_ffi_lane=parse_tristate(args.run_ffi),
            )
        if args.profile is not None:
            inputs = dataclasses.replace(inputs, profile_override=args.profile)
        changes["manual_inputs"] = inputs

    return dataclasses.replace(event, **changes) if changes else event


def _event_file(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> Path | None:
    """Locate the event payload to upload alongside the lane reports."""
    env = os.environ if environ is None else environ
    if args.event_path is not None:
        return args.event_path
    if not args.event and env.get("GITHUB_EVENT_PATH"):
        return Path(env["GITHUB_EVENT_PATH"])
    return None


def load_config(path: Path | None) -> OrchestratorConfig:
    """Load the config file, falling back to ``.lanes.yml`` when present.

    Raises:
        ConfigurationError: If an explicitly given file does not exist.
    """
    if path is None:
        if DEFAULT_CONFIG_PATH.exists():
            path = DEFAULT_CONFIG_PATH
    elif not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    return OrchestratorConfig(path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    event = build_event(args)
    try:
        context = resolve_trigger(event, config.schedules)
        profile = ProfileCompiler(config.profiles).compile(context)
        plans = plan_lanes(profile, config.lane_specs)
        command = config.runner_command
        max_parallel = config.max_parallel_lanes
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Trigger: {context.kind.value}"
          + (f" ({context.cadence.value})" if context.cadence else ""))
    print(f"Profile: {profile.tag_expression}")
    _print_plans(plans)

    if args.dry_run:
        return 0

    working_directory = args.working_directory or config.working_directory
    artifact_dir = args.artifact_dir or config.artifact_dir

    executor = LaneExecutor(
        command=command,
        working_directory=working_directory.resolve(),
        env=config.runner_env,
    )
    collector = ArtifactCollector(DirectoryArtifactStore(artifact_dir))
    pipeline = LanePipeline(executor, collector, max_parallel_lanes=max_parallel)

    outcome = _run_with_signals(pipeline, plans)

    reporter = Reporter()
    reporter.set_trigger(context)
    reporter.set_profile(profile)
    reporter.set_outcome(outcome)
    commit_sha = os.environ.get("GITHUB_SHA")
    if commit_sha:
        reporter.set_commit_hash(commit_sha)

    event_file = _event_file(args)
    if event_file is not None:
        record = collector.collect_event_file(event_file)
        reporter.set_event_artifact(record.to_dict())

    run_status = outcome.run_status
    _print_results(outcome)

    if args.output:
        existing = args.output if args.output.exists() else None
        if args.output.suffix in (".yml", ".yaml"):
            reporter.write_yaml(args.output, existing)
        else:
            reporter.write_report(args.output, existing)
        print(f"Report written to: {args.output}")

    return run_status.exit_code


def _run_with_signals(
    pipeline: LanePipeline,
    plans: list[LaneExecutionPlan],
) -> RunOutcome:
    """Run the pipeline, turning SIGINT/SIGTERM into a pipeline cancel."""

    def handle(signum: int, frame: Any) -> None:
        pipeline.cancel()

    previous = {
        sig: signal.signal(sig, handle)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        return pipeline.run(plans)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _print_plans(plans: list[LaneExecutionPlan]) -> None:
    print(f"Lanes planned: {len(plans)}")
    for plan in plans:
        state = "enabled" if plan.enabled else "disabled"
        print(f"  {plan.lane_id} [{state}]: {plan.tag_expression}")
        print(f"    concurrency={plan.concurrency} retries={plan.retries} "
              f"timeout={plan.timeout_minutes}m")
    print()


def _print_results(outcome: RunOutcome) -> None:
    """Print the per-lane breakdown and the run verdict."""
    status_icon = {
        "passed": "PASS",
        "failed": "FAIL",
        "timed_out": "TIMEOUT",
    }
    for plan in outcome.plans:
        result = outcome.result_for(plan.lane_id)
        if not plan.enabled:
            print(f"  [SKIP] {plan.lane_id} - disabled")
            continue
        if result is None:
            print(f"  [CANCELLED] {plan.lane_id} - not started")
            continue

        icon = status_icon.get(result.status, result.status.upper())
        line = (f"  [{icon}] {plan.lane_id} - exit {result.exit_code} "
                f"({result.duration_ms / 1000:.2f}s)")
        scenarios = summarize_junit(result.report_path)
        if scenarios is not None:
            line += (f" scenarios: {scenarios.passed} passed, "
                     f"{scenarios.failures + scenarios.errors} failed, "
                     f"{scenarios.skipped} skipped")
        print(line)
        if result.error:
            print(f"         {result.error}")
        if scenarios is not None:
            for name in scenarios.failed_scenarios:
                print(f"         {name}")

    run_status = outcome.run_status
    print()
    for warning in run_status.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print(
        f"Results: {len(run_status.passed_lanes)} passed, "
        f"{len(run_status.failed_lanes)} failed, "
        f"{len(run_status.timed_out_lanes)} timed out, "
        f"{len(run_status.cancelled_lanes)} cancelled, "
        f"{len(outcome.disabled)} disabled"
    )
    print(f"Run status: {run_status.status}")


if __name__ == "__main__":
    sys.exit(main())
