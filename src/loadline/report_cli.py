"""Report CLI commands."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Annotated

import typer

from .cli_options import load_or_exit, parse_date_option, parse_now_option
from .engine import AnalysisResult, analyze

# Create report sub-app
report_app = typer.Typer(help="Export analysis results as CSV")


def _run(file: Path, now: str | None, start: str | None, end: str | None) -> AnalysisResult:
    """Load a snapshot and analyze it, exiting with code 1 on input problems."""
    if not file.exists():
        typer.echo(f"Error: YAML file not found: {file}", err=True)
        raise typer.Exit(1)

    reference_now = parse_now_option(now)
    window_start = parse_date_option(start, "start")
    window_end = parse_date_option(end, "end")
    if (window_start is None) != (window_end is None):
        typer.echo("Error: Both --start and --end are required when using date range", err=True)
        raise typer.Exit(1)

    snapshot, config = load_or_exit(file)
    try:
        return analyze(snapshot, reference_now, window_start, window_end, config)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


@report_app.command("workload")
def workload_report(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Output CSV file path")],
    now: Annotated[str | None, typer.Option("--now", help="Reference timestamp")] = None,
    start: Annotated[
        str | None, typer.Option("--start", help="Start date (YYYY-MM-DD) - use with --end")
    ] = None,
    end: Annotated[
        str | None, typer.Option("--end", help="End date (YYYY-MM-DD) - use with --start")
    ] = None,
) -> None:
    """Export one row per user per day of the window.

    Example:
        loadline report workload snapshot.yaml --start 2025-07-01 --end 2025-07-31 -o july.csv
    """
    result = _run(file, now, start, end)

    with output.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "date",
                "user_id",
                "allocated_hours",
                "capacity_hours",
                "utilization_percent",
                "overloaded",
                "task_ids",
            ]
        )
        for sample in result.daily_workload:
            writer.writerow(
                [
                    sample.day.isoformat(),
                    sample.user_id,
                    round(sample.allocated_hours, 2),
                    sample.capacity_hours,
                    sample.utilization_percent,
                    "yes" if sample.is_overloaded else "no",
                    " ".join(sample.contributing_task_ids),
                ]
            )

    typer.echo(f"Workload report written to {output} ({len(result.daily_workload)} rows)")


@report_app.command("users")
def users_report(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Output CSV file path")],
    now: Annotated[str | None, typer.Option("--now", help="Reference timestamp")] = None,
) -> None:
    """Export per-user task counts, scores and risk levels."""
    result = _run(file, now, None, None)

    with output.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "user_id",
                "name",
                "department",
                "active_tasks",
                "completed_tasks",
                "overdue_tasks",
                "workload_score",
                "completion_rate",
                "efficiency",
                "risk_level",
            ]
        )
        for summary in result.user_summaries:
            writer.writerow(
                [
                    summary.user_id,
                    summary.name,
                    summary.department or "",
                    summary.active_tasks,
                    summary.completed_tasks,
                    summary.overdue_tasks,
                    summary.workload_score,
                    summary.completion_rate,
                    summary.efficiency,
                    summary.risk_level.value,
                ]
            )

    typer.echo(f"User report written to {output} ({len(result.user_summaries)} users)")
