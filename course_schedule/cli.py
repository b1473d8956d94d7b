from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from course_schedule.canvas_sync import sync_to_canvas
from course_schedule.export import (
    render_schedule_html,
    to_icalendar,
    to_json,
    to_markdown_table,
)
from course_schedule.generator import generate_schedule
from course_schedule.loader import build_course_schedule, load_course_config, load_raw_config
from course_schedule.models import CourseConfig
from course_schedule.queries import course_stats
from course_schedule.schema_check import DEFAULT_SCHEMA, schema_issues
from course_schedule.validation import validate_course_config

log = logging.getLogger(__name__)

EXPORT_FORMATS = ("ics", "markdown", "json", "html")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="course-schedule",
        description="Generate and publish course meeting schedules from a YAML/JSON configuration.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build", help="Validate, generate, and write every schedule artifact"
    )
    p_build.add_argument("config", help="Course configuration (YAML/JSON)")
    p_build.add_argument(
        "-o",
        "--output-dir",
        default="build",
        help="Directory for schedule.json/.ics/.md/.html (default: build)",
    )

    p_export = subparsers.add_parser("export", help="Export the schedule in one format")
    p_export.add_argument("config", help="Course configuration (YAML/JSON)")
    p_export.add_argument("--format", choices=EXPORT_FORMATS, required=True)
    p_export.add_argument("--section", default=None, help="Limit output to one section id")
    p_export.add_argument(
        "-o", "--output", default=None, help="Write to file instead of stdout"
    )

    p_validate = subparsers.add_parser("validate", help="Check a course configuration")
    p_validate.add_argument("config", help="Course configuration (YAML/JSON)")
    p_validate.add_argument(
        "--schema",
        default=str(DEFAULT_SCHEMA),
        help="JSON Schema file checked before the schedule rules (default: bundled schema)",
    )

    p_stats = subparsers.add_parser("stats", help="Print schedule statistics")
    p_stats.add_argument("config", help="Course configuration (YAML/JSON)")

    p_sync = subparsers.add_parser("sync", help="Sync assignments, modules, and pages to Canvas")
    p_sync.add_argument("config", help="Course configuration (YAML/JSON)")
    p_sync.add_argument("--site-url", required=True, help="Base URL of the course website")
    p_sync.add_argument(
        "--execute",
        action="store_true",
        help="Apply changes to Canvas (default is a dry run)",
    )
    return parser


def _cmd_build(args) -> int:
    result = build_course_schedule(config_path=args.config, output_dir=args.output_dir)
    for key, path in result.output_paths.items():
        print(f"{key}: {path}")
    for warning in result.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    return 0


def _cmd_export(args) -> int:
    config = load_course_config(args.config)
    validate_course_config(config)
    schedule = generate_schedule(config)
    if args.format == "ics":
        content = to_icalendar(schedule, args.section)
    elif args.format == "markdown":
        content = to_markdown_table(schedule, args.section)
    elif args.format == "html":
        content = render_schedule_html(schedule, section_id=args.section)
    else:
        content = to_json(schedule)

    if args.output:
        with Path(args.output).open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        log.info("Wrote %s", args.output)
    else:
        sys.stdout.write(content)
    return 0


def _cmd_validate(args) -> int:
    raw = load_raw_config(args.config)
    issues = schema_issues(raw, args.schema)
    if issues:
        print(f"INVALID: {args.config} does not match the schema")
        for issue in issues:
            print(f"- {issue}")
        return 1
    try:
        validate_course_config(CourseConfig.from_dict(raw))
    except ValueError as exc:
        print(f"INVALID: {args.config}: {exc}")
        return 1
    print(f"VALID: {args.config}")
    return 0


def _cmd_stats(args) -> int:
    result = build_course_schedule(config_path=args.config)
    stats = course_stats(result.schedule)
    for name, value in dataclasses.asdict(stats).items():
        if isinstance(value, dict):
            print(f"{name}:")
            for key, count in value.items():
                print(f"  {key}: {count}")
        elif isinstance(value, float):
            print(f"{name}: {value:.2f}")
        else:
            print(f"{name}: {value}")
    return 0


def _cmd_sync(args) -> int:
    result = build_course_schedule(config_path=args.config)
    sync_results = sync_to_canvas(
        result.config,
        site_url=args.site_url,
        schedule=result.schedule,
        dry_run=not args.execute,
    )
    for sync_result in sync_results:
        print(f"Section {sync_result.section_id} -> course {sync_result.canvas_course_id}")
        for action in sync_result.actions:
            print(f"  {action}")
        for error in sync_result.errors:
            print(f"  ERROR: {error}", file=sys.stderr)
    return 0 if all(sync_result.success for sync_result in sync_results) else 1


COMMANDS = {
    "build": _cmd_build,
    "export": _cmd_export,
    "validate": _cmd_validate,
    "stats": _cmd_stats,
    "sync": _cmd_sync,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
