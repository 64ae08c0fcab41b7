"""Command line tools for analyzing sources, checking schedules and running syncs."""
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from sift_sync.adapters import get_source_reader
from sift_sync.cleaning.analyzer import analyze_columns, generate_default_column_config
from sift_sync.exceptions import SiftSyncError, SyncAlreadyRunningError
from sift_sync.scheduling.schedule import describe_schedule, next_run, validate_schedule
from sift_sync.schemas.columns import AnalysisResult
from sift_sync.schemas.schedule import ScheduleConfiguration
from sift_sync.schemas.sync import SyncLog
from sift_sync.tasks.sync import build_orchestrator, run_scheduler_tick


def print_analysis(result: AnalysisResult) -> None:
    """Print a table of detected column types."""
    click.echo(f"Analyzed {result.total_rows} rows, {len(result.columns)} columns")
    click.echo("-" * 70)
    click.echo(f"  {'Column':<24} {'Type':<10} {'Unique':>7} {'Nulls':>7}  Samples")
    for column in result.columns:
        samples = ", ".join(str(value) for value in column.sample_values[:3])
        click.echo(
            f"  {column.name:<24} {column.detected_type:<10} "
            f"{column.unique_count:>7} {column.null_count:>7}  {samples}"
        )


def print_sync_log(log: SyncLog) -> None:
    """Print the outcome of a sync attempt."""
    click.echo(f"Sync {log.status} (attempt {log.attempt})")
    click.echo(f"  Processed: {log.records_processed}")
    click.echo(f"  Failed:    {log.records_failed}")
    click.echo(f"  Dropped:   {log.records_dropped}")
    click.echo(f"  Written:   {log.records_written}")
    if log.error_message:
        click.echo(f"  Error:     {log.error_message}")
    for message in log.errors[:10]:
        click.echo(f"    • {message}")


def _load_json_argument(value: str) -> Any:
    path = Path(value)
    text = path.read_text(encoding="utf-8") if path.is_file() else value
    return json.loads(text)


@click.group()
def cli() -> None:
    """Sift_Sync command line tools."""


@cli.command("analyze")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    "source_format",
    type=click.Choice(["csv", "json"]),
    default=None,
    help="Source format (defaults to the file extension)",
)
@click.option("--limit", type=int, default=100, show_default=True, help="Rows to sample")
@click.option("--json", "output_json", is_flag=True, help="Output analysis as JSON")
def analyze(file_path: str, source_format: str | None, limit: int, output_json: bool) -> None:
    """
    Detect column types in a CSV or JSON file.

    Examples:

        sift-sync analyze members.csv

        sift-sync analyze --format json --json export.txt
    """
    source_format = source_format or Path(file_path).suffix.lstrip(".").lower()
    if source_format not in ("csv", "json"):
        raise click.UsageError("Cannot infer format from extension; pass --format csv|json")

    try:
        rows = get_source_reader(source_format).read_sample({"path": file_path}, limit)
    except SiftSyncError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    result = analyze_columns(rows)
    if output_json:
        payload = result.to_wire()
        payload["suggested_columns"] = [
            column.to_wire() for column in generate_default_column_config(result.columns)
        ]
        click.echo(json.dumps(payload, indent=2, default=str))
        return
    print_analysis(result)


@cli.command("schedule")
@click.argument("config_json")
def schedule(config_json: str) -> None:
    """
    Validate a schedule given as JSON text or a path to a JSON file.

    Prints the description and next run on success; exits 1 with the
    validation errors otherwise.
    """
    try:
        config = ScheduleConfiguration.model_validate(_load_json_argument(config_json))
    except (json.JSONDecodeError, ValidationError) as exc:
        click.echo(f"Error: invalid schedule configuration: {exc}", err=True)
        sys.exit(1)

    errors = validate_schedule(config)
    if errors:
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)

    upcoming = next_run(config, datetime.now(timezone.utc))
    click.echo(describe_schedule(config))
    click.echo(f"Next run: {upcoming.isoformat() if upcoming else 'never (manual)'}")


@cli.command("run")
@click.argument("data_source_id")
def run(data_source_id: str) -> None:
    """Run a sync for DATA_SOURCE_ID in this process, including retries."""
    try:
        log = build_orchestrator().run_sync_once(data_source_id)
    except SyncAlreadyRunningError as exc:
        click.echo(f"Skipped: {exc}", err=True)
        sys.exit(2)
    except SiftSyncError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    print_sync_log(log)
    if log.status != "success":
        sys.exit(1)


@cli.command("tick")
def tick() -> None:
    """Dispatch every data source whose scheduled run is due."""
    result = run_scheduler_tick()
    click.echo(f"Dispatched {result['count']} sync(s)")
    for data_source_id in result["dispatched"]:
        click.echo(f"  • {data_source_id}")


if __name__ == "__main__":
    cli()
