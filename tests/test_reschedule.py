"""Tests for delay propagation and reschedule files."""

from datetime import date
from io import StringIO
from pathlib import Path

import pytest
import yaml

from loadline.critical_path import DependencyGraph
from loadline.exceptions import MissingReferenceError
from loadline.logger import setup_logger
from loadline.models import Task
from loadline.reschedule import (
    RESCHEDULE_FILE_VERSION,
    read_reschedule_file,
    reschedule,
    write_reschedule_file,
)


@pytest.fixture
def graph(diamond_tasks: list[Task], today: date) -> DependencyGraph:
    graph, _ = DependencyGraph.from_tasks(diamond_tasks, today)
    return graph


class TestReschedule:
    """Tests for reschedule()."""

    def test_delay_absorbed_by_idle_days(self, graph: DependencyGraph) -> None:
        """B ends on the 4th and D starts on the 9th: a 3-day slip at B never reaches D."""
        result = reschedule(graph, "B", 3)

        assert result.updated_dates == {"B": (date(2025, 7, 2), date(2025, 7, 7))}
        assert result.absorbed == ["D"]
        assert result.project_end_before == date(2025, 7, 10)
        assert result.project_end_after == date(2025, 7, 10)
        assert result.project_slip_days == 0

    def test_delay_on_critical_task_moves_successor(self, graph: DependencyGraph) -> None:
        result = reschedule(graph, "C", 2)

        assert result.updated_dates == {
            "C": (date(2025, 7, 2), date(2025, 7, 10)),
            "D": (date(2025, 7, 11), date(2025, 7, 12)),
        }
        assert result.updated["D"].shift_days == 2
        assert result.absorbed == []
        assert result.project_slip_days == 2

    def test_only_downstream_tasks_move(self, graph: DependencyGraph) -> None:
        result = reschedule(graph, "A", 2)

        assert set(result.updated) == {"A", "B", "C", "D"}
        assert result.updated["A"].start == date(2025, 7, 1)
        assert result.updated["B"].start == date(2025, 7, 4)
        # D follows the larger of the shifts arriving from B (absorbed) and C (2 days)
        assert result.updated["D"].shift_days == 2

    def test_partial_absorption(self, graph: DependencyGraph) -> None:
        """A 6-day slip at B uses up B's 4 idle days and moves D by 2."""
        result = reschedule(graph, "B", 6)
        assert result.updated["D"].shift_days == 2
        assert result.absorbed == []

    def test_moves_logged_at_changes_level(self, graph: DependencyGraph) -> None:
        stream = StringIO()
        setup_logger(1, stream)

        reschedule(graph, "C", 2)

        assert stream.getvalue().splitlines() == [
            "  C: 2025-07-08 -> 2025-07-10",
            "  D: 2025-07-10 -> 2025-07-12",
        ]

    def test_zero_delay_moves_nothing(self, graph: DependencyGraph) -> None:
        result = reschedule(graph, "C", 0)
        assert result.updated == {}
        assert result.absorbed == ["D"]

    def test_negative_delay_rejected(self, graph: DependencyGraph) -> None:
        with pytest.raises(ValueError, match="must not be negative"):
            reschedule(graph, "B", -1)

    def test_unknown_task_rejected(self, graph: DependencyGraph) -> None:
        with pytest.raises(MissingReferenceError) as exc_info:
            reschedule(graph, "nope", 1)
        assert exc_info.value.task_id == "nope"


class TestRescheduleFile:
    """Tests for writing and reading reschedule files."""

    def test_write_format(self, graph: DependencyGraph, tmp_path: Path) -> None:
        path = tmp_path / "reschedule.yaml"
        write_reschedule_file(path, reschedule(graph, "C", 2))

        data = yaml.safe_load(path.read_text())
        assert data["version"] == RESCHEDULE_FILE_VERSION
        assert data["delayed_task"] == "C"
        assert data["delay_days"] == 2
        assert data["project_end_after"] == "2025-07-12"
        assert data["tasks"]["D"] == {
            "original_start_date": "2025-07-09",
            "original_end_date": "2025-07-10",
            "start_date": "2025-07-11",
            "end_date": "2025-07-12",
        }

    def test_read_back(self, graph: DependencyGraph, tmp_path: Path) -> None:
        path = tmp_path / "reschedule.yaml"
        result = reschedule(graph, "B", 3)
        write_reschedule_file(path, result)

        loaded = read_reschedule_file(path)
        assert loaded.delayed_task_id == "B"
        assert loaded.updated == result.updated
        assert loaded.absorbed == ["D"]
        assert loaded.project_end_before == result.project_end_before

    def test_unsupported_version(self, tmp_path: Path) -> None:
        path = tmp_path / "reschedule.yaml"
        path.write_text("version: 99\ndelayed_task: A\n")
        with pytest.raises(ValueError, match="Unsupported reschedule file version"):
            read_reschedule_file(path)

    def test_missing_version(self, tmp_path: Path) -> None:
        path = tmp_path / "reschedule.yaml"
        path.write_text("delayed_task: A\n")
        with pytest.raises(ValueError, match="missing 'version'"):
            read_reschedule_file(path)

    def test_bad_date(self, tmp_path: Path) -> None:
        path = tmp_path / "reschedule.yaml"
        path.write_text(
            "version: 1\n"
            "delayed_task: A\n"
            "tasks:\n"
            "  A:\n"
            "    original_start_date: 2025-07-01\n"
            "    original_end_date: 2025-07-01\n"
            "    start_date: 2025-07-01\n"
            "    end_date: not-a-date\n"
        )
        with pytest.raises(ValueError, match="Invalid date for 'A'"):
            read_reschedule_file(path)
