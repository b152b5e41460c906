"""CI tool entry point with lane pipeline inspection subcommands.

Provides resolve, plan, check-tags, summarize and init-config subcommands
for looking at each stage of a run without executing any lane.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from lane_orchestrator.config import DEFAULT_CONFIG_PATH, OrchestratorConfig
from lane_orchestrator.errors import ConfigurationError
from lane_orchestrator.main import add_trigger_arguments, build_event, load_config
from lane_orchestrator.planning.dispatcher import plan_lanes
from lane_orchestrator.planning.profile import ProfileCompiler
from lane_orchestrator.planning.tag_expression import (
    TagExpressionError,
    matches,
    parse,
    render,
)
from lane_orchestrator.reporting.junit import summarize_junit
from lane_orchestrator.trigger.resolver import resolve_trigger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="CI tool for inspecting the integration test lane pipeline"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # resolve subcommand
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the trigger and show the compiled test profile",
    )
    add_trigger_arguments(resolve_parser)
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output as JSON",
    )

    # plan subcommand
    plan_parser = subparsers.add_parser(
        "plan",
        help="Show the execution plan of every lane",
    )
    add_trigger_arguments(plan_parser)
    plan_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output as JSON",
    )

    # check-tags subcommand
    check_parser = subparsers.add_parser(
        "check-tags",
        help="Validate a tag expression and optionally evaluate it",
    )
    check_parser.add_argument(
        "expression",
        help="Tag expression to check",
    )
    check_parser.add_argument(
        "--tags",
        type=str,
        default=None,
        help="Comma-separated scenario tags to evaluate the expression against",
    )

    # summarize subcommand
    summarize_parser = subparsers.add_parser(
        "summarize",
        help="Summarize cucumber JUnit XML reports",
    )
    summarize_parser.add_argument(
        "reports",
        nargs="+",
        type=Path,
        help="JUnit XML report files",
    )
    summarize_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output as JSON",
    )

    # init-config subcommand
    init_parser = subparsers.add_parser(
        "init-config",
        help="Write a config file holding the default settings",
    )
    init_parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path of the config file (default: {DEFAULT_CONFIG_PATH})",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing file",
    )
    return parser.parse_args(argv)


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the resolve subcommand."""
    try:
        config = load_config(args.config)
        context = resolve_trigger(build_event(args), config.schedules)
        profile = ProfileCompiler(config.profiles).compile(context)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(
            {"trigger": context.to_dict(), "profile": profile.to_dict()},
            indent=2,
        ))
        return 0

    print(f"Trigger: {context.kind.value}")
    if context.cadence is not None:
        print(f"  Cadence: {context.cadence.value}")
    if context.group_key:
        print(f"  Group: {context.group_key}")
    if context.manual_inputs is not None:
        for key, value in context.manual_inputs.to_dict().items():
            print(f"  {key}: {value}")
    print(f"Profile: {profile.tag_expression}")
    print(f"  binaries: {'on' if profile.binaries_enabled else 'off'}")
    print(f"  ffi: {'on' if profile.ffi_enabled else 'off'}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Handle the plan subcommand."""
    try:
        config = load_config(args.config)
        context = resolve_trigger(build_event(args), config.schedules)
        profile = ProfileCompiler(config.profiles).compile(context)
        plans = plan_lanes(profile, config.lane_specs)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([plan.to_dict() for plan in plans], indent=2))
        return 0

    enabled = sum(1 for plan in plans if plan.enabled)
    print(f"Lanes: {len(plans)} ({enabled} enabled)")
    for plan in plans:
        state = "enabled" if plan.enabled else "disabled"
        print(f"  {plan.lane_id} [{state}]")
        print(f"    tags: {plan.tag_expression}")
        print(f"    concurrency: {plan.concurrency}, retries: {plan.retries}, "
              f"timeout: {plan.timeout_minutes}m")
        print(f"    artifact: {plan.artifact_name} <- {plan.report_path}")
    return 0


def cmd_check_tags(args: argparse.Namespace) -> int:
    """Handle the check-tags subcommand.

    Exits 0 for a valid expression (and, with ``--tags``, a match), 1 for
    a valid expression that does not match, 2 for an invalid expression.
    """
    try:
        node = parse(args.expression)
    except TagExpressionError as e:
        print(f"Invalid: {e}", file=sys.stderr)
        return 2

    print(f"Valid: {render(node)}")
    if args.tags is None:
        return 0

    tags = [t.strip() for t in args.tags.split(",") if t.strip()]
    if matches(node, tags):
        print(f"Matches: {', '.join(tags) or '(no tags)'}")
        return 0
    print(f"No match: {', '.join(tags) or '(no tags)'}")
    return 1


def cmd_summarize(args: argparse.Namespace) -> int:
    """Handle the summarize subcommand."""
    summaries = {}
    for path in args.reports:
        summary = summarize_junit(path)
        if summary is None:
            print(f"Error: cannot summarize {path}", file=sys.stderr)
            return 1
        summaries[str(path)] = summary

    if args.json:
        print(json.dumps(
            {path: s.to_dict() for path, s in summaries.items()}, indent=2,
        ))
    else:
        for path, s in summaries.items():
            print(f"{path}: {s.tests} scenarios, {s.passed} passed, "
                  f"{s.failures} failed, {s.errors} errors, {s.skipped} skipped")
            for name in s.failed_scenarios:
                print(f"  FAILED {name}")

    has_failure = any(s.failures or s.errors for s in summaries.values())
    return 1 if has_failure else 0


def cmd_init_config(args: argparse.Namespace) -> int:
    """Handle the init-config subcommand."""
    if args.config.exists() and not args.force:
        print(f"Error: {args.config} already exists (use --force)", file=sys.stderr)
        return 1
    config = OrchestratorConfig()
    config.path = args.config
    config.save()
    print(f"Config written to {args.config}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 1

    if args.command == "resolve":
        return cmd_resolve(args)
    elif args.command == "plan":
        return cmd_plan(args)
    elif args.command == "check-tags":
        return cmd_check_tags(args)
    elif args.command == "summarize":
        return cmd_summarize(args)
    elif args.command == "init-config":
        return cmd_init_config(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
