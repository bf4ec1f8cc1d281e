"""Command-line interface for Loadline."""

from __future__ import annotations

import json
from dataclasses import asdict, replace
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from . import context
from .cli_options import load_or_exit, parse_date_option, parse_now_option
from .critical_path import DependencyGraph
from .engine import AnalysisResult, analyze
from .exceptions import LoadlineError
from .logger import setup_logger
from .report_cli import report_app
from .reschedule import reschedule as propagate_delay
from .reschedule import write_reschedule_file
from .workload import clamp_percent

app = typer.Typer(
    name="loadline",
    help="Workload, deadline and critical path analysis for task snapshots",
    add_completion=False,
)


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to engine config file (default: loadline_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for loadline commands."""
    setup_logger(verbose)
    context.set_config_path(config)


NowOption = Annotated[
    str | None,
    typer.Option("--now", help="Reference timestamp (ISO 8601). Defaults to the snapshot's"),
]
StartOption = Annotated[
    str | None, typer.Option("--start", help="Window start date (YYYY-MM-DD)")
]
EndOption = Annotated[str | None, typer.Option("--end", help="Window end date (YYYY-MM-DD)")]


def run_analysis(
    file: Path, now: str | None, start: str | None, end: str | None
) -> AnalysisResult:
    """Parse the shared options and run the engine on a snapshot file."""
    reference_now = parse_now_option(now)
    window_start = parse_date_option(start, "start")
    window_end = parse_date_option(end, "end")
    snapshot, config = load_or_exit(file)
    try:
        return analyze(snapshot, reference_now, window_start, window_end, config)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)  # type: ignore[arg-type]
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def result_to_dict(result: AnalysisResult) -> dict[str, Any]:
    """Convert an analysis result to JSON-ready data; warnings become messages."""
    data = asdict(replace(result, warnings=[]))
    data["warnings"] = [
        {"type": type(warning).__name__, "message": str(warning)} for warning in result.warnings
    ]
    return data


def _echo_warnings(warnings: list[LoadlineError]) -> None:
    if warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in warnings:
            typer.echo(f"  - {warning}", err=True)


def _display_analysis(result: AnalysisResult) -> None:
    """Display an analysis summary to stdout."""
    typer.echo("Analysis Results")
    typer.echo("=" * 80)
    typer.echo(f"Reference time: {result.reference_now.isoformat()}")
    typer.echo(f"Window:         {result.window_start} to {result.window_end}")
    typer.echo("")

    typer.echo(f"Overdue tasks:        {', '.join(result.overdue_task_ids) or '-'}")
    typer.echo(f"Urgent overdue tasks: {', '.join(result.urgent_overdue_task_ids) or '-'}")
    typer.echo(f"Due today:            {', '.join(result.due_today_task_ids) or '-'}")
    typer.echo(f"High-risk days:       {', '.join(map(str, result.high_risk_days)) or '-'}")
    typer.echo(f"Bottleneck days:      {', '.join(map(str, result.bottleneck_days)) or '-'}")
    typer.echo("")

    for month in result.monthly_summary:
        typer.echo(
            f"{month.year}-{month.month:02d}: {month.high_risk_days} high-risk, "
            f"{month.bottleneck_days} bottleneck, {month.total_tasks} tasks, "
            f"avg workload {month.average_workload:.1f}%"
        )

    cp = result.critical_path
    if cp.has_cycle:
        typer.echo(f"\nCritical path: unavailable (cycle: {' -> '.join(cp.cycle)})")
    elif cp.path:
        typer.echo(f"\nCritical path: {' -> '.join(cp.path)} ({cp.total_duration} days)")

    if result.delay is not None:
        delay = result.delay
        typer.echo(
            f"\nProject status: {delay.status.value}, delay {delay.delay_days} day(s) "
            f"({delay.severity.value}, dominant factor: {delay.dominant_factor.value})"
        )


@app.command(name="analyze")
def analyze_command(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")] = Path(
        "snapshot.yaml"
    ),
    now: NowOption = None,
    start: StartOption = None,
    end: EndOption = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TEXT,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file path")] = None,
) -> None:
    """Run the full analysis on a snapshot."""
    result = run_analysis(file, now, start, end)

    if output_format == OutputFormat.JSON:
        text = json.dumps(result_to_dict(result), indent=2, default=_json_default)
        if output:
            output.write_text(text + "\n", encoding="utf-8")
            typer.echo(f"Analysis written to {output}")
        else:
            typer.echo(text)
    else:
        _display_analysis(result)

    _echo_warnings(result.warnings)


@app.command()
def workload(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")] = Path(
        "snapshot.yaml"
    ),
    user: Annotated[str | None, typer.Option("--user", "-u", help="Only show this user")] = None,
    now: NowOption = None,
    start: StartOption = None,
    end: EndOption = None,
) -> None:
    """Show daily utilization per user and per-user summaries."""
    result = run_analysis(file, now, start, end)

    typer.echo("Daily Workload")
    typer.echo("=" * 80)
    for sample in result.daily_workload:
        if user is not None and sample.user_id != user:
            continue
        if sample.allocated_hours == 0:
            continue
        bar = "#" * int(clamp_percent(sample.utilization_percent) / 10)
        flag = "  OVERLOADED" if sample.is_overloaded else ""
        typer.echo(
            f"{sample.day}  {sample.user_id:<12} {sample.allocated_hours:6.1f}h / "
            f"{sample.capacity_hours:4.1f}h  {sample.utilization_percent:4d}% {bar:<10}{flag}"
        )

    typer.echo("")
    typer.echo("User Summaries")
    typer.echo("=" * 80)
    for summary in result.user_summaries:
        if user is not None and summary.user_id != user:
            continue
        typer.echo(f"{summary.name} ({summary.user_id})")
        typer.echo(
            f"  Tasks: {summary.total_tasks} total, {summary.active_tasks} active, "
            f"{summary.overdue_tasks} overdue"
        )
        typer.echo(
            f"  Score: {summary.workload_score}  Completion: {summary.completion_rate}%  "
            f"Efficiency: {summary.efficiency}%  Risk: {summary.risk_level.value}"
        )

    _echo_warnings(result.warnings)


@app.command(name="critical-path")
def critical_path(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")] = Path(
        "snapshot.yaml"
    ),
    now: NowOption = None,
) -> None:
    """Show the critical path, per-task slack and optimization suggestions."""
    result = run_analysis(file, now, None, None)
    cp = result.critical_path

    if cp.has_cycle:
        typer.echo(f"Error: Circular dependency detected: {' -> '.join(cp.cycle)}", err=True)
        raise typer.Exit(1)

    typer.echo("Critical Path")
    typer.echo("=" * 80)
    if not cp.path:
        typer.echo("No tasks to analyze")
        return

    typer.echo(f"{' -> '.join(cp.path)}")
    typer.echo(f"Total duration: {cp.total_duration} days ({cp.start_date} to {cp.finish_date})")
    typer.echo("")
    typer.echo(f"{'Task':<20} {'Dur':>4} {'ES':>4} {'EF':>4} {'LS':>4} {'LF':>4} {'Slack':>6}")
    for timing in cp.timings.values():
        marker = " *" if timing.critical else ""
        typer.echo(
            f"{timing.task_id:<20} {timing.duration:>4} {timing.earliest_start:>4} "
            f"{timing.earliest_finish:>4} {timing.latest_start:>4} {timing.latest_finish:>4} "
            f"{timing.slack:>6}{marker}"
        )

    if result.recommendations:
        typer.echo("")
        typer.echo("Recommendations")
        for rec in result.recommendations:
            typer.echo(
                f"  [{rec.kind.value}] {rec.description} "
                f"(saves {rec.days_saved} day(s), effort {rec.effort.value})"
            )


@app.command(name="reschedule")
def reschedule_command(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")],
    task_id: Annotated[str, typer.Argument(help="ID of the delayed task")],
    delay_days: Annotated[int, typer.Argument(help="Days of delay", min=0)],
    now: NowOption = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the proposed dates to a reschedule file"),
    ] = None,
) -> None:
    """Propagate a delay at one task to everything downstream of it."""
    reference_now = parse_now_option(now)
    snapshot, config = load_or_exit(file)
    today = (reference_now or snapshot.reference_now or datetime.now()).date()  # noqa: DTZ005

    graph, warnings = DependencyGraph.from_tasks(
        snapshot.tasks,
        today,
        config.defaults,
        include_completed=config.critical_path.include_completed,
    )
    try:
        result = propagate_delay(graph, task_id, delay_days)
    except (LoadlineError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if output:
        write_reschedule_file(output, result)
        typer.echo(f"Reschedule written to {output}")
    else:
        typer.echo(f"Reschedule for {delay_days} day(s) of delay at {task_id}")
        typer.echo("=" * 80)
        for shift in result.updated.values():
            typer.echo(
                f"{shift.task_id:<20} {shift.original_start} - {shift.original_end}  ->  "
                f"{shift.start} - {shift.end}  (+{shift.shift_days})"
            )
        if result.absorbed:
            typer.echo(f"Absorbed by slack: {', '.join(result.absorbed)}")
        typer.echo(
            f"Project end: {result.project_end_before} -> {result.project_end_after} "
            f"(+{result.project_slip_days})"
        )

    _echo_warnings(list(warnings))


@app.command()
def validate(
    file: Annotated[Path, typer.Argument(help="Path to the snapshot YAML file")] = Path(
        "snapshot.yaml"
    ),
    now: NowOption = None,
) -> None:
    """Check a snapshot for malformed tasks, unknown references and cycles."""
    result = run_analysis(file, now, None, None)
    if result.warnings:
        _echo_warnings(result.warnings)
        raise typer.Exit(1)
    typer.echo(f"{file}: no problems found")


app.add_typer(report_app, name="report")


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
