"""Tests for snapshot parsing and input loading."""
# pyright: reportPrivateUsage=false

from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest

from loadline import context
from loadline.config import EngineConfig
from loadline.exceptions import ParseError, ValidationError
from loadline.loader import _discover_config, load_inputs, load_snapshot
from loadline.models import Priority, TaskStatus
from loadline.parser import SnapshotParser


class TestSnapshotParser:
    """Test the SnapshotParser."""

    @pytest.fixture
    def parser(self) -> SnapshotParser:
        return SnapshotParser()

    def test_parse_example(self, examples_dir: Path) -> None:
        snapshot = load_snapshot(examples_dir / "snapshot.yaml")

        assert snapshot.reference_now == datetime(2025, 7, 15, 10, 0)
        assert (snapshot.window_start, snapshot.window_end) == (
            date(2025, 7, 1),
            date(2025, 7, 31),
        )
        assert snapshot.project is not None
        assert snapshot.project.end_date == date(2025, 7, 20)
        assert [u.id for u in snapshot.users] == ["alice", "bob", "carol"]
        assert snapshot.get_user("carol").max_hours_per_day is None  # type: ignore[union-attr]
        assert [t.id for t in snapshot.tasks] == [
            "spec",
            "design",
            "backend",
            "frontend",
            "bugfix",
            "launch",
            "docs",
        ]

        launch = snapshot.get_task("launch")
        assert launch is not None
        assert launch.priority == Priority.URGENT
        assert launch.assignees == frozenset({"alice", "bob"})
        assert launch.dependencies == ("backend", "frontend")

    def test_legacy_assignee_merged(self, parser: SnapshotParser) -> None:
        """assigned_id and assigned_users become one assignee set."""
        data: dict[str, Any] = {
            "tasks": {
                "t1": {"title": "T1", "assigned_id": "alice", "assigned_users": ["bob"]},
                "t2": {"title": "T2", "assigned_id": "alice", "assigned_users": ["alice"]},
                "t3": {"title": "T3", "assigned_id": "carol"},
            }
        }
        snapshot = parser.parse_data(data)

        assert [t.assignees for t in snapshot.tasks] == [
            frozenset({"alice", "bob"}),
            frozenset({"alice"}),
            frozenset({"carol"}),
        ]

    def test_enum_spellings(self, parser: SnapshotParser) -> None:
        data: dict[str, Any] = {
            "tasks": {
                "a": {"title": "A", "status": "in progress", "priority": "Urgent"},
                "b": {"title": "B", "status": "in-progress"},
                "c": {"title": "C", "status": "COMPLETED"},
            }
        }
        snapshot = parser.parse_data(data)
        assert [t.status for t in snapshot.tasks] == [
            TaskStatus.IN_PROGRESS,
            TaskStatus.IN_PROGRESS,
            TaskStatus.COMPLETED,
        ]
        assert snapshot.tasks[0].priority == Priority.URGENT

    def test_single_values_become_lists(self, parser: SnapshotParser) -> None:
        data: dict[str, Any] = {
            "tasks": {"a": {"title": "A", "dependencies": "b", "assigned_users": "alice"}}
        }
        task = parser.parse_data(data).tasks[0]
        assert task.dependencies == ("b",)
        assert task.assignees == frozenset({"alice"})

    def test_timestamps_reduced_to_dates(self, parser: SnapshotParser) -> None:
        data: dict[str, Any] = {
            "reference_now": date(2025, 7, 15),
            "tasks": {"a": {"title": "A", "end_date": datetime(2025, 7, 31, 18, 30)}},
        }
        snapshot = parser.parse_data(data)
        assert snapshot.reference_now == datetime(2025, 7, 15, 0, 0)
        assert snapshot.tasks[0].end_date == date(2025, 7, 31)

    def test_inverted_task_span_is_accepted(self, parser: SnapshotParser) -> None:
        """Malformed spans are reported by the engine, not rejected at parse time."""
        data: dict[str, Any] = {
            "tasks": {
                "a": {"title": "A", "start_date": "2025-07-05", "end_date": "2025-07-01"}
            }
        }
        assert not parser.parse_data(data).tasks[0].has_valid_span

    def test_missing_title(self, parser: SnapshotParser) -> None:
        with pytest.raises(ValidationError, match="Invalid YAML structure"):
            parser.parse_data({"tasks": {"a": {"status": "todo"}}})

    def test_negative_estimate(self, parser: SnapshotParser) -> None:
        with pytest.raises(ValidationError):
            parser.parse_data({"tasks": {"a": {"title": "A", "estimated_hours": -1}}})

    def test_unknown_status(self, parser: SnapshotParser) -> None:
        with pytest.raises(ValidationError):
            parser.parse_data({"tasks": {"a": {"title": "A", "status": "someday"}}})

    def test_inverted_window(self, parser: SnapshotParser) -> None:
        with pytest.raises(ValidationError, match="before window start"):
            parser.parse_data({"window": {"start": "2025-07-31", "end": "2025-07-01"}})

    def test_missing_file(self, parser: SnapshotParser, tmp_path: Path) -> None:
        with pytest.raises(ParseError, match="File not found"):
            parser.parse_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, parser: SnapshotParser, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("tasks: [unclosed\n")
        with pytest.raises(ParseError, match="Failed to parse YAML"):
            parser.parse_file(path)

    def test_non_dict_root(self, parser: SnapshotParser, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ParseError, match="dictionary at the root"):
            parser.parse_file(path)


class TestConfigDiscovery:
    """Test where load_inputs finds its config."""

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Run from an empty directory."""
        cwd = tmp_path / "cwd"
        cwd.mkdir()
        monkeypatch.chdir(cwd)

    @pytest.fixture
    def snapshot_path(self, tmp_path: Path) -> Path:
        path = tmp_path / "snapshot.yaml"
        path.write_text("tasks:\n  a:\n    title: A\n")
        return path

    def _write_config(self, path: Path, capacity: int) -> Path:
        path.write_text(f"defaults:\n  capacity_hours: {capacity}\n")
        return path

    def test_no_config_found(self, snapshot_path: Path) -> None:
        assert _discover_config(snapshot_path) is None
        _, config = load_inputs(snapshot_path)
        assert config == EngineConfig()

    def test_snapshot_directory(self, snapshot_path: Path, tmp_path: Path) -> None:
        self._write_config(tmp_path / "loadline_config.yaml", 5)
        _, config = load_inputs(snapshot_path)
        assert config.defaults.capacity_hours == 5.0

    def test_current_directory(self, snapshot_path: Path) -> None:
        self._write_config(Path("loadline_config.yaml"), 4)
        _, config = load_inputs(snapshot_path)
        assert config.defaults.capacity_hours == 4.0

    def test_explicit_path_wins(self, snapshot_path: Path, tmp_path: Path) -> None:
        self._write_config(tmp_path / "loadline_config.yaml", 5)
        explicit = self._write_config(tmp_path / "explicit.yaml", 2)
        _, config = load_inputs(snapshot_path, explicit)
        assert config.defaults.capacity_hours == 2.0

    def test_cli_config_path_is_ignored(self, snapshot_path: Path, tmp_path: Path) -> None:
        """Library callers never pick up the path stored by the CLI callback."""
        self._write_config(tmp_path / "loadline_config.yaml", 5)
        context.set_config_path(self._write_config(tmp_path / "cli.yaml", 3))
        _, config = load_inputs(snapshot_path)
        assert config.defaults.capacity_hours == 5.0
