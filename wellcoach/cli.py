"""
wellcoach - Command line access to module progress and achievements.

Usage:
  wellcoach modules
  wellcoach status [module_1]
  wellcoach start module_1
  wellcoach complete module_1 section_1_1
  wellcoach submit module_1 exercise_1_1_1 --response reflection="Felt calmer"
  wellcoach achievements --category special --earned-only
  wellcoach analytics
  wellcoach certificate module_1
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from wellcoach.config import LOG_FORMAT, Settings, load_settings
from wellcoach.errors import IncompleteModuleError, NotFoundError, PersistenceError
from wellcoach.schemas import AchievementCategory
from wellcoach.training import (
    CatalogLoader,
    ProgressGate,
    SubmissionLedger,
    build_analytics,
    evaluate,
    rank_achievements,
    section_states,
    summarize,
)
from wellcoach.utils import format_duration
from wellcoach.viewer import (
    LOCKED_ICON,
    describe_module_status,
    format_earned_at,
    format_summary,
    get_status_indicator,
)


logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Argument types
# -----------------------------------------------------------------------------

def response_pair(value: str) -> tuple[str, str]:
    """Parse a key=value response argument."""
    key, sep, answer = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {value!r}")
    return key.strip(), answer


def json_object(value: str) -> dict[str, Any]:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("responses JSON must be an object")
    return data


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_modules(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    for module in catalog.get_modules():
        print(
            f"{module.number}. {module.title} [{module.id}] - "
            f"{len(module.sections)} sections, {module.total_exercises} exercises, "
            f"~{module.estimated_duration} min"
        )
    return 0


def cmd_status(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    if args.module_id:
        module = catalog.require_module(args.module_id)
        progress = ledger.get_module_progress(settings.user_id, module.id)
        print(f"{module.title}: {describe_module_status(progress)}")
        for view in section_states(module, progress):
            print(f"  {get_status_indicator(view.access)} {view.section.number}. {view.section.title}")
        return 0

    for module in catalog.get_modules():
        progress = ledger.get_module_progress(settings.user_id, module.id)
        print(f"{module.number}. {module.title} - {describe_module_status(progress)}")
    return 0


def cmd_start(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    progress = ledger.start_module(settings.user_id, args.module_id)
    print(f"Started {progress.module_id} at section {progress.current_section_id}")
    return 0


def cmd_complete(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    gate = ProgressGate(catalog, ledger, settings.user_id, args.module_id)
    outcome = gate.complete_section(args.section_id)

    print(f"Completed {outcome.section_id} ({gate.progress_percentage:.0f}%)")
    if outcome.module_completed:
        print(f"Module {gate.module_id} completed!")
        if outcome.next_module_id:
            print(f"Next module: {outcome.next_module_id}")
    else:
        print(f"Next section: {gate.current_section.title}")

    if not outcome.persisted:
        print(f"Warning: progress was not saved ({outcome.error})", file=sys.stderr)
        return 1
    return 0


def cmd_submit(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    responses: dict[str, Any] = dict(args.json or {})
    responses.update(dict(args.response or []))

    submission = ledger.submit_exercise(
        settings.user_id,
        args.module_id,
        args.exercise_id,
        responses,
        section_id=args.section_id,
    )
    print(f"Submitted {submission.exercise_id}: score {submission.score}")
    print(submission.feedback)
    return 0


def cmd_achievements(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    results = evaluate(
        ledger.get_completed_modules(settings.user_id),
        ledger.get_exercise_submissions(settings.user_id),
        tz=settings.tzinfo,
    )
    for result in rank_achievements(results, category=args.category, earned_only=args.earned_only):
        definition = result.definition
        icon = definition.icon if result.earned else LOCKED_ICON
        line = f"{icon} {definition.title} ({definition.rarity.value}) - {definition.description}"
        if result.earned:
            line += f" [{format_earned_at(result.earned_at) or 'Earned'}]"
        print(line)

    print(format_summary(summarize(results)))
    return 0


def cmd_analytics(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    tz = settings.tzinfo
    stats = build_analytics(
        catalog.get_modules(),
        ledger.get_exercise_submissions(settings.user_id),
        today=datetime.now(tz).date(),
        tz=tz,
    )
    print(f"Submissions: {stats.total_submissions}")
    print(f"Average score: {stats.average_score}")
    print(f"Time spent: {format_duration(stats.total_time_spent)}")
    print(f"Exercise completion: {stats.completion_rate}%")
    print(f"Current streak: {stats.current_streak} days (longest {stats.longest_streak})")
    for module_id, module_stats in stats.modules.items():
        print(
            f"  {module_id}: {module_stats.completed_exercises}/{module_stats.total_exercises} "
            f"exercises, average {module_stats.average_score}"
        )
    return 0


def cmd_certificate(args, catalog: CatalogLoader, ledger: SubmissionLedger, settings: Settings) -> int:
    if args.module_id is None:
        certificates = ledger.get_certificates(settings.user_id)
        if not certificates:
            print("No certificates yet.")
        for certificate in certificates:
            print(f"{certificate.certificate_number} {certificate.module_id} {certificate.issued_at:%Y-%m-%d}")
        return 0

    certificate = ledger.generate_certificate(settings.user_id, args.module_id)
    print(f"Certificate {certificate.certificate_number} issued for {certificate.module_id}")
    print(
        f"Exercises: {certificate.exercises_completed}/{certificate.total_exercises}, "
        f"time: {format_duration(certificate.completion_time)}"
    )
    return 0


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wellcoach",
        description="Track wellness module progress and achievements",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db", type=Path, default=None, help="Progress database path")
    parser.add_argument("--catalog", type=Path, default=None, help="Module catalog YAML path")
    parser.add_argument("--user", default=None, help="Learner id")
    parser.add_argument("--log-level", default=None, help="Logging level (default: WELLCOACH_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    modules = subparsers.add_parser("modules", help="List catalog modules")
    modules.set_defaults(func=cmd_modules)

    status = subparsers.add_parser("status", help="Show module progress")
    status.add_argument("module_id", nargs="?", help="Show section states for one module")
    status.set_defaults(func=cmd_status)

    start = subparsers.add_parser("start", help="Start a module")
    start.add_argument("module_id")
    start.set_defaults(func=cmd_start)

    complete = subparsers.add_parser("complete", help="Complete a section")
    complete.add_argument("module_id")
    complete.add_argument("section_id")
    complete.set_defaults(func=cmd_complete)

    submit = subparsers.add_parser("submit", help="Submit exercise responses")
    submit.add_argument("module_id")
    submit.add_argument("exercise_id")
    submit.add_argument("--section-id", default=None, help="Owning section (default: looked up)")
    submit.add_argument(
        "--response",
        type=response_pair,
        action="append",
        help="Response field as key=value (repeatable)",
    )
    submit.add_argument("--json", type=json_object, default=None, help="Responses as a JSON object")
    submit.set_defaults(func=cmd_submit)

    achievements = subparsers.add_parser("achievements", help="Show achievements")
    achievements.add_argument(
        "--category",
        choices=["all"] + [category.value for category in AchievementCategory],
        default="all",
    )
    achievements.add_argument("--earned-only", action="store_true")
    achievements.set_defaults(func=cmd_achievements)

    analytics = subparsers.add_parser("analytics", help="Show exercise statistics")
    analytics.set_defaults(func=cmd_analytics)

    certificate = subparsers.add_parser("certificate", help="Issue or list certificates")
    certificate.add_argument("module_id", nargs="?", help="Completed module (omit to list)")
    certificate.set_defaults(func=cmd_certificate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    if args.db:
        settings.progress_db = args.db
    if args.catalog:
        settings.catalog_path = args.catalog
    if args.user:
        settings.user_id = args.user
    if args.log_level:
        settings.log_level = args.log_level.upper()

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    catalog = CatalogLoader.from_file(settings.catalog_path)
    ledger = SubmissionLedger(catalog, settings.progress_db)

    try:
        return args.func(args, catalog, ledger, settings)
    except (NotFoundError, IncompleteModuleError) as e:
        logger.debug(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except PersistenceError as e:
        logger.warning(f"{args.command} could not save: {e}")
        print(f"Error: progress was not saved ({e})", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
