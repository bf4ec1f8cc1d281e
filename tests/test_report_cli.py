"""Tests for report CLI commands."""

from __future__ import annotations

import csv
from pathlib import Path

from typer.testing import CliRunner

from loadline.cli import app

runner = CliRunner()

SNAPSHOT = str(Path(__file__).parent.parent / "examples" / "snapshot.yaml")


def _read_rows(path: Path) -> list[dict[str, str]]:
    with path.open(newline="") as f:
        return list(csv.DictReader(f))


def test_workload_report(tmp_path: Path) -> None:
    """One row per user per day of the snapshot's window."""
    output = tmp_path / "workload.csv"
    result = runner.invoke(app, ["report", "workload", SNAPSHOT, "-o", str(output)])

    assert result.exit_code == 0
    assert f"Workload report written to {output} (93 rows)" in result.stdout

    rows = _read_rows(output)
    assert list(rows[0]) == [
        "date",
        "user_id",
        "allocated_hours",
        "capacity_hours",
        "utilization_percent",
        "overloaded",
        "task_ids",
    ]
    bob = next(r for r in rows if r["user_id"] == "bob" and r["date"] == "2025-07-08")
    assert bob["allocated_hours"] == "8.0"
    assert bob["capacity_hours"] == "6.0"
    assert bob["utilization_percent"] == "133"
    assert bob["overloaded"] == "yes"
    assert bob["task_ids"] == "frontend"


def test_workload_report_with_date_range(tmp_path: Path) -> None:
    output = tmp_path / "workload.csv"
    result = runner.invoke(
        app,
        [
            "report",
            "workload",
            SNAPSHOT,
            "--start",
            "2025-07-09",
            "--end",
            "2025-07-10",
            "-o",
            str(output),
        ],
    )

    assert result.exit_code == 0
    rows = _read_rows(output)
    assert len(rows) == 6
    bob = next(r for r in rows if r["user_id"] == "bob" and r["date"] == "2025-07-09")
    assert bob["task_ids"] == "frontend bugfix"
    assert bob["utilization_percent"] == "233"


def test_workload_report_needs_both_dates(tmp_path: Path) -> None:
    output = tmp_path / "workload.csv"
    result = runner.invoke(
        app, ["report", "workload", SNAPSHOT, "--start", "2025-07-09", "-o", str(output)]
    )

    assert result.exit_code == 1
    assert "Both --start and --end are required" in result.output
    assert not output.exists()


def test_workload_report_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["report", "workload", str(tmp_path / "missing.yaml"), "-o", str(tmp_path / "out.csv")],
    )

    assert result.exit_code == 1
    assert "YAML file not found" in result.output


def test_users_report(tmp_path: Path) -> None:
    output = tmp_path / "users.csv"
    result = runner.invoke(app, ["report", "users", SNAPSHOT, "-o", str(output)])

    assert result.exit_code == 0
    assert "(3 users)" in result.stdout

    rows = {r["user_id"]: r for r in _read_rows(output)}
    assert set(rows) == {"alice", "bob", "carol"}
    assert rows["carol"]["department"] == "Design"
    assert rows["bob"]["overdue_tasks"] == "2"
    assert rows["bob"]["risk_level"] == "medium"


def test_workload_report_invalid_date(tmp_path: Path) -> None:
    output = tmp_path / "workload.csv"
    result = runner.invoke(
        app,
        [
            "report",
            "workload",
            SNAPSHOT,
            "--start",
            "July 9",
            "--end",
            "2025-07-10",
            "-o",
            str(output),
        ],
    )

    assert result.exit_code != 0
    assert "Invalid date format for --start" in result.output
    assert not output.exists()


def test_users_report_invalid_now(tmp_path: Path) -> None:
    output = tmp_path / "users.csv"
    result = runner.invoke(
        app, ["report", "users", SNAPSHOT, "--now", "yesterday", "-o", str(output)]
    )

    assert result.exit_code != 0
    assert "Invalid timestamp for --now" in result.output


def test_report_uses_global_config(tmp_path: Path) -> None:
    """The global --config reaches report commands too."""
    config = tmp_path / "custom.yaml"
    config.write_text("defaults:\n  capacity_hours: 16\n")
    output = tmp_path / "workload.csv"

    result = runner.invoke(
        app, ["--config", str(config), "report", "workload", SNAPSHOT, "-o", str(output)]
    )

    assert result.exit_code == 0
    carol = next(r for r in _read_rows(output) if r["user_id"] == "carol")
    assert carol["capacity_hours"] == "16.0"
