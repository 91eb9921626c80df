import argparse
import logging
import os
import sys
from datetime import date

from widget_analytics.adapters.sqlite.migrator import SQLiteMigrator
from widget_analytics.app_shell.config import Settings, validate_ops_rules
from widget_analytics.app_shell.context import ServiceContext
from widget_analytics.app_shell.seed import seed_demo
from widget_analytics.components.aggregator import (
    BackfillInput,
    ScheduledInput,
    backfill_range,
    run_backfill,
    run_scheduled,
)
from widget_analytics.domain.errors import AnalyticsError
from widget_analytics.rules.loader import load_rules

logger = logging.getLogger("cli")


def get_context(settings: Settings) -> ServiceContext:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    validate_ops_rules(rules, settings.data_dir)
    return ServiceContext.create(settings.db_path, rules)


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from e


def handle_migrate(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_aggregate(ctx: ServiceContext, args: argparse.Namespace) -> int:
    day, summary = run_scheduled(
        ScheduledInput(day=args.date),
        tenants=ctx.tenant_repo,
        events=ctx.event_store,
        aggregates=ctx.aggregate_repo,
        time_port=ctx.time_port,
        rules=ctx.rules,
    )
    print(
        f"Aggregated {day}: {summary.total} tenant(s), {summary.success} ok, "
        f"{summary.skipped} skipped, {summary.failed} failed."
    )
    for failure in summary.errors:
        print(f"  {failure.tenant_id}: {failure.error}")
    return 0 if summary.all_succeeded else 2


def handle_backfill(ctx: ServiceContext, args: argparse.Namespace) -> int:
    days = args.days or ctx.rules.aggregation.default_backfill_days
    start_day, end_day = backfill_range(days, ctx.time_port)
    summary = run_backfill(
        BackfillInput(args.tenant, start_day, end_day),
        tenants=ctx.tenant_repo,
        events=ctx.event_store,
        aggregates=ctx.aggregate_repo,
        time_port=ctx.time_port,
        rules=ctx.rules,
    )
    print(
        f"Backfilled {args.tenant} {start_day}..{end_day}: {summary.success} ok, "
        f"{summary.skipped} skipped, {summary.failed} failed."
    )
    return 0 if summary.all_succeeded else 2


def handle_seed(ctx: ServiceContext) -> None:
    count = seed_demo(ctx)
    print(f"Seeded {count} events.")


def handle_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("widget_analytics.api.main:app", host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Widget Analytics CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # aggregate
    aggregate_parser = subparsers.add_parser(
        "aggregate", help="Aggregate one day for every active tenant"
    )
    aggregate_parser.add_argument(
        "--date", type=_parse_day, help="Day to aggregate (YYYY-MM-DD, default: yesterday)"
    )

    # backfill
    backfill_parser = subparsers.add_parser(
        "backfill", help="Re-aggregate recent days for a tenant"
    )
    backfill_parser.add_argument("tenant", help="Tenant id")
    backfill_parser.add_argument("--days", type=int, help="Number of days (default from rules)")

    # seed
    subparsers.add_parser("seed", help="Create a demo tenant with sample events")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=int(os.getenv("WA_PORT", "8000")))

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings)
        return 0
    if args.command == "serve":
        handle_serve(args)
        return 0

    ctx = get_context(settings)
    try:
        if args.command == "aggregate":
            return handle_aggregate(ctx, args)
        if args.command == "backfill":
            return handle_backfill(ctx, args)
        if args.command == "seed":
            handle_seed(ctx)
    except AnalyticsError as e:
        logger.error("%s failed: %s", args.command, e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
