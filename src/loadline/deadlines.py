"""Overdue and due-today classification.

A task due on a given day is not overdue until that calendar day has fully
ended: the reference instant must be strictly after 23:59:59.999 of the end
date. Due-today compares calendar days only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .models import ALARMING_PRIORITIES, Task
from .timewindow import end_of_day, is_same_calendar_day, to_date


@dataclass(frozen=True)
class DeadlineFlags:
    """Deadline state of one task for a reference instant and a rendered day."""

    overdue: bool
    due_today: bool
    urgent_overdue: bool


def is_overdue(task: Task, now: datetime) -> bool:
    """Return True if the task's deadline day ended before `now`."""
    if task.end_date is None or task.is_completed:
        return False
    return now > end_of_day(task.end_date, now.tzinfo)


def is_due_today(task: Task, day: date | datetime, *, include_completed: bool = True) -> bool:
    """Return True if the task's end date falls on the given calendar day."""
    if task.end_date is None:
        return False
    if not include_completed and task.is_completed:
        return False
    return is_same_calendar_day(task.end_date, day)


def is_urgent_overdue(task: Task, now: datetime) -> bool:
    """Overdue tasks with HIGH or URGENT priority."""
    return task.priority in ALARMING_PRIORITIES and is_overdue(task, now)


def classify(task: Task, now: datetime, day: date | datetime | None = None) -> DeadlineFlags:
    """Classify a task against `now` and the rendered day (defaults to now's day)."""
    rendered = to_date(day) if day is not None else now.date()
    overdue = is_overdue(task, now)
    return DeadlineFlags(
        overdue=overdue,
        due_today=is_due_today(task, rendered),
        urgent_overdue=overdue and task.priority in ALARMING_PRIORITIES,
    )


def days_overdue(task: Task, now: datetime) -> int:
    """Whole calendar days elapsed since the deadline day, 0 if not overdue."""
    if not is_overdue(task, now):
        return 0
    assert task.end_date is not None
    return (now.date() - task.end_date).days


def overdue_task_ids(tasks: list[Task], now: datetime) -> list[str]:
    """IDs of overdue tasks, in input order."""
    return [task.id for task in tasks if is_overdue(task, now)]


def due_today_task_ids(
    tasks: list[Task], day: date | datetime, *, include_completed: bool = True
) -> list[str]:
    """IDs of tasks due on the given day, in input order."""
    return [
        task.id for task in tasks if is_due_today(task, day, include_completed=include_completed)
    ]
