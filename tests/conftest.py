"""Pytest configuration and fixtures for loadline tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest

from loadline import context
from loadline.logger import reset_logger
from loadline.models import Priority, Task, TaskStatus, User

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"


@pytest.fixture(autouse=True)
def clean_global_state() -> Generator[None, None, None]:
    """Leave the logger silent and the CLI config path unset between tests."""
    yield
    reset_logger()
    context.set_config_path(None)


@pytest.fixture
def examples_dir() -> Path:
    """Directory with the example snapshot and config."""
    return EXAMPLES_DIR


@pytest.fixture
def reference_now() -> datetime:
    """Mid-morning of the day most tests treat as today."""
    return datetime(2025, 7, 15, 10, 0)


@pytest.fixture
def today(reference_now: datetime) -> date:
    return reference_now.date()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with sensible defaults; assignees and dependencies as lists."""

    def _make(
        task_id: str,
        *,
        assignees: list[str] | None = None,
        dependencies: list[str] | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: Priority = Priority.MEDIUM,
        **kwargs: Any,
    ) -> Task:
        return Task(
            id=task_id,
            title=kwargs.pop("title", task_id.title()),
            status=status,
            priority=priority,
            assignees=frozenset(assignees or []),
            dependencies=tuple(dependencies or []),
            **kwargs,
        )

    return _make


@pytest.fixture
def users() -> list[User]:
    """Two engineers with different capacities and one designer with the default."""
    return [
        User(id="alice", name="Alice", max_hours_per_day=8, department="Engineering"),
        User(id="bob", name="Bob", max_hours_per_day=6, department="Engineering"),
        User(id="carol", name="Carol", department="Design"),
    ]


@pytest.fixture
def diamond_tasks(make_task: Callable[..., Task]) -> list[Task]:
    """A -> {B, C} -> D with durations of 1, 3, 5 and 2 days at 8 hours per day."""
    return [
        make_task(
            "A",
            estimated_hours=8,
            start_date=date(2025, 7, 1),
            end_date=date(2025, 7, 1),
            assignees=["alice"],
        ),
        make_task(
            "B",
            estimated_hours=24,
            start_date=date(2025, 7, 2),
            end_date=date(2025, 7, 4),
            assignees=["bob"],
            dependencies=["A"],
        ),
        make_task(
            "C",
            estimated_hours=40,
            start_date=date(2025, 7, 2),
            end_date=date(2025, 7, 8),
            assignees=["alice"],
            dependencies=["A"],
        ),
        make_task(
            "D",
            estimated_hours=16,
            start_date=date(2025, 7, 9),
            end_date=date(2025, 7, 10),
            assignees=["alice", "bob"],
            dependencies=["B", "C"],
        ),
    ]
