"""Data models for Loadline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


class Priority(str, Enum):
    """Task priority."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Statuses counted as active work in user summaries
ACTIVE_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS})

# Priorities that turn an overdue task into an urgent-overdue one
ALARMING_PRIORITIES = frozenset({Priority.HIGH, Priority.URGENT})


def _default_assignees() -> frozenset[str]:
    return frozenset()


def _default_dependencies() -> tuple[str, ...]:
    return ()


@dataclass(frozen=True)
class Task:
    """A unit of work with an optional span, effort estimate and assignees.

    `assignees` is the single normalized set of user ids; the legacy
    single-assignee field is merged into it when the snapshot is ingested.
    """

    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    assignees: frozenset[str] = field(default_factory=_default_assignees)
    dependencies: tuple[str, ...] = field(default_factory=_default_dependencies)
    project_id: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def has_valid_span(self) -> bool:
        """False only when both dates are present and end precedes start."""
        if self.start_date is None or self.end_date is None:
            return True
        return self.end_date >= self.start_date


@dataclass(frozen=True)
class User:
    """A person who can be assigned to tasks."""

    id: str
    name: str
    max_hours_per_day: float | None = None
    department: str | None = None


@dataclass(frozen=True)
class Project:
    """Planned project dates used for delay analysis."""

    id: str
    name: str
    status: TaskStatus = TaskStatus.IN_PROGRESS
    start_date: date | None = None
    end_date: date | None = None


def _default_tasks() -> list[Task]:
    return []


def _default_users() -> list[User]:
    return []


@dataclass
class Snapshot:
    """Everything the engine needs for one analysis run."""

    tasks: list[Task] = field(default_factory=_default_tasks)
    users: list[User] = field(default_factory=_default_users)
    project: Project | None = None
    reference_now: datetime | None = None
    window_start: date | None = None
    window_end: date | None = None

    def get_task(self, task_id: str) -> Task | None:
        """Get a task by its ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_user(self, user_id: str) -> User | None:
        """Get a user by its ID."""
        for user in self.users:
            if user.id == user_id:
                return user
        return None


def normalize_assignees(
    assigned_id: str | None, assigned_users: list[str] | None
) -> frozenset[str]:
    """Merge the legacy single assignee and the multi-assignee list into one set."""
    assignees = set(assigned_users or [])
    if assigned_id:
        assignees.add(assigned_id)
    return frozenset(assignees)


def unique_tasks(tasks: list[Task]) -> list[Task]:
    """Drop repeated task ids, keeping the first occurrence and input order."""
    seen: set[str] = set()
    result: list[Task] = []
    for task in tasks:
        if task.id in seen:
            continue
        seen.add(task.id)
        result.append(task)
    return result
