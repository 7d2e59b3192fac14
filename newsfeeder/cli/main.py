"""CLI commands for the newsfeeder system."""

import json
import logging
import sys
import uuid
import zoneinfo
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

import click
import structlog

from newsfeeder import __version__
from newsfeeder.catalog import CatalogValidationError, load_catalog, seed_catalog
from newsfeeder.llm.errors import LlmApiError, RateLimitExceededError
from newsfeeder.llm.factory import create_ai_backend
from newsfeeder.observability.logging import bind_run_context, configure_logging
from newsfeeder.recommend.errors import RefreshNotAvailableError
from newsfeeder.runtime import Runtime, build_runtime
from newsfeeder.settings import AppSettings, get_settings
from newsfeeder.store.errors import NotFoundError
from newsfeeder.store.metrics import StoreMetrics
from newsfeeder.store.models import DailyArchive
from newsfeeder.store.store import SqliteStore


logger = structlog.get_logger()


@dataclass
class CliOptions:
    """Options shared by every command."""

    db_path: Path | None
    json_logs: bool
    verbose: bool


def _settings_for(options: CliOptions) -> AppSettings:
    settings = get_settings()
    if options.db_path is not None:
        settings = settings.model_copy(update={"db_path": options.db_path})
    return settings


def _setup(options: CliOptions, command: str) -> tuple[AppSettings, str]:
    """Configure logging and bind the run context.

    Returns:
        Settings and the run id.
    """
    configure_logging(
        level=logging.DEBUG if options.verbose else logging.INFO,
        json_format=options.json_logs,
    )
    run_id = str(uuid.uuid4())
    bind_run_context(run_id)

    settings = _settings_for(options)
    try:
        zoneinfo.ZoneInfo(settings.timezone)
    except (KeyError, zoneinfo.ZoneInfoNotFoundError):
        click.echo(f"Error: Invalid timezone '{settings.timezone}'", err=True)
        sys.exit(1)

    logger.bind(component="cli", command=command).info(
        "command_started", db_path=str(settings.db_path), timezone=settings.timezone
    )
    return settings, run_id


def _archive_to_dict(runtime: Runtime, archive: DailyArchive) -> dict[str, object]:
    exposures = runtime.store.get_exposures(list(archive.exposure_ids))
    return {
        "user_id": archive.user_id,
        "archive_date": archive.archive_date.isoformat(),
        "category_ids": list(archive.snapshot.category_ids),
        "exposures": [
            {
                "exposure_id": e.id,
                "content_id": e.content_id,
                "keyword": e.provocative_keyword,
                "headline": e.headline,
            }
            for e in exposures
        ],
    }


def _parse_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to SQLite database (overrides NEWSFEEDER_DB_PATH).",
)
@click.option("--json-logs/--console-logs", default=True, help="Log format.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, json_logs: bool, verbose: bool) -> None:
    """Newsletter AI processing and daily recommendation CLI."""
    ctx.obj = CliOptions(db_path=db_path, json_logs=json_logs, verbose=verbose)


@cli.command("process-batch")
@click.pass_obj
def process_batch(options: CliOptions) -> None:
    """Analyze one batch of unprocessed content and create exposures."""
    settings, run_id = _setup(options, "process-batch")

    try:
        backend = create_ai_backend(settings)
    except LlmApiError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        runtime = build_runtime(settings, store, backend)
        assert runtime.batch_processor is not None  # noqa: S101

        try:
            result = runtime.batch_processor.process_unprocessed_batch()
        except RateLimitExceededError as e:
            click.echo(f"Rate limit exceeded: {e}", err=True)
            sys.exit(1)

        click.echo(json.dumps(result.to_dict(), indent=2))


@cli.command("resolve-archive")
@click.option("--user-id", required=True, type=int, help="User to resolve for.")
@click.option(
    "--date",
    "archive_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Archive day (defaults to today).",
)
@click.pass_obj
def resolve_archive(options: CliOptions, user_id: int, archive_date: datetime | None) -> None:
    """Resolve (and cache) a user's daily archive."""
    settings, run_id = _setup(options, "resolve-archive")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        runtime = build_runtime(settings, store)
        try:
            archive = runtime.resolver.resolve_today_archive(user_id, _parse_date(archive_date))
        except NotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        click.echo(json.dumps(_archive_to_dict(runtime, archive), indent=2, ensure_ascii=False))


@cli.command("refresh-archive")
@click.option("--user-id", required=True, type=int, help="User to refresh for.")
@click.option(
    "--date",
    "archive_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Archive day (defaults to today).",
)
@click.pass_obj
def refresh_archive(options: CliOptions, user_id: int, archive_date: datetime | None) -> None:
    """Discard a user's daily archive once per day."""
    settings, run_id = _setup(options, "refresh-archive")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        runtime = build_runtime(settings, store)
        try:
            refreshed = runtime.resolver.refresh_today_archive(
                user_id, _parse_date(archive_date)
            )
        except RefreshNotAvailableError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        click.echo("Archive refreshed." if refreshed else "No archive to refresh.")


@cli.command("preview-category")
@click.option("--category-id", required=True, type=int, help="Category to rank for.")
@click.pass_obj
def preview_category(options: CliOptions, category_id: int) -> None:
    """Show the ranked exposures of one category without saving them."""
    settings, run_id = _setup(options, "preview-category")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        runtime = build_runtime(settings, store)
        try:
            exposures = runtime.resolver.resolve_category_preview(category_id)
        except NotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        for exposure in exposures:
            click.echo(f"  [{exposure.provocative_keyword}] {exposure.headline}")


@cli.command("rate-limit-usage")
@click.pass_obj
def rate_limit_usage(options: CliOptions) -> None:
    """Show today's request count per model."""
    settings, run_id = _setup(options, "rate-limit-usage")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        runtime = build_runtime(settings, store)
        usage = runtime.rate_limiter.today_usage()

        click.echo(f"Rate limit usage for {runtime.today().isoformat()}")
        click.echo("=" * 40)
        for model_name, (count, cap) in usage.items():
            click.echo(f"  {model_name}: {count}/{cap}")


@cli.command()
@click.option(
    "--catalog",
    "catalog_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to catalog YAML file.",
)
@click.pass_obj
def seed(options: CliOptions, catalog_path: Path) -> None:
    """Load categories, keyword weights, users and content from YAML."""
    settings, run_id = _setup(options, "seed")

    try:
        catalog = load_catalog(catalog_path)
    except CatalogValidationError as e:
        click.echo("Catalog validation failed:", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        report = seed_catalog(store, catalog)

    for name, count in report.to_dict().items():
        click.echo(f"  {name}: {count}")


@cli.command("candidate-keywords")
@click.pass_obj
def candidate_keywords(options: CliOptions) -> None:
    """List AI-suggested keywords awaiting promotion."""
    settings, run_id = _setup(options, "candidate-keywords")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        for candidate in store.list_candidate_keywords():
            click.echo(f"  {candidate.id}: {candidate.name} ({candidate.suggestion_count})")


@cli.command("promote-keyword")
@click.option("--candidate-id", required=True, type=int, help="Candidate keyword id.")
@click.pass_obj
def promote_keyword(options: CliOptions, candidate_id: int) -> None:
    """Promote a candidate keyword to a reserved keyword."""
    settings, run_id = _setup(options, "promote-keyword")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        try:
            keyword = store.promote_candidate_keyword(candidate_id)
        except NotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        click.echo(f"Promoted keyword '{keyword.name}' (id={keyword.id})")


@cli.command("db-stats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def db_stats(options: CliOptions, json_output: bool) -> None:
    """Display database statistics.

    Shows row counts for the main tables and the schema version.
    """
    settings, run_id = _setup(options, "db-stats")

    with SqliteStore(db_path=settings.db_path, run_id=run_id) as store:
        stats = store.get_stats()
        schema_version = store.get_schema_version()

        if json_output:
            output = {
                "schema_version": schema_version,
                "tables": stats,
                "metrics": StoreMetrics.get_instance().to_dict(),
            }
            click.echo(json.dumps(output, indent=2))
        else:
            click.echo("Database Statistics")
            click.echo("=" * 40)
            click.echo(f"  Schema Version: {schema_version}")
            click.echo("")
            click.echo("Table Row Counts:")
            for table, count in sorted(stats.items()):
                click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
