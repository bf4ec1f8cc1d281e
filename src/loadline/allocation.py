"""Per-day effort allocation for a single task."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from .config import DefaultsPolicy
from .exceptions import InvalidTaskSpanError
from .logger import get_logger
from .models import Task
from .timewindow import DateRange, days_between, iterate_days

logger = get_logger()


class EffortContext(str, Enum):
    """Which default applies when a task has no effort estimate.

    DAILY is used when spreading effort over calendar days (4 hours by
    default); SUMMARY is used for per-user summaries and duration estimates
    (8 hours by default). Both values come from DefaultsPolicy.
    """

    DAILY = "daily"
    SUMMARY = "summary"


@dataclass(frozen=True)
class Allocation:
    """Hours of one task attributed to one assignee on one calendar day."""

    user_id: str
    day: date
    hours: float
    task_id: str
    task_fraction: float  # 1 / span length, for fractional task counts


def effective_span(
    task: Task, today: date, policy: DefaultsPolicy | None = None
) -> tuple[date, date]:
    """Return the (start, end) span used for a task everywhere.

    A missing start defaults to today. Unlike the plain "start = today" rule,
    a missing start with an end date before today is clamped to that end date,
    so the span never inverts. A missing end defaults to start + policy.span_days.

    Raises:
        InvalidTaskSpanError: If both dates are set and end precedes start
    """
    policy = policy or DefaultsPolicy()

    if not task.has_valid_span:
        assert task.start_date is not None and task.end_date is not None
        raise InvalidTaskSpanError(task.id, task.start_date, task.end_date)

    start = task.start_date
    end = task.end_date
    if start is None:
        start = today if end is None or today <= end else end
    if end is None:
        end = start + timedelta(days=policy.span_days)
    return (start, end)


def effective_effort(
    task: Task, context: EffortContext, policy: DefaultsPolicy | None = None
) -> float:
    """Return the task's estimated hours, or the default for the given context."""
    if task.estimated_hours is not None:
        return float(task.estimated_hours)
    policy = policy or DefaultsPolicy()
    if context == EffortContext.DAILY:
        return policy.daily_effort_hours
    return policy.summary_effort_hours


def hours_per_day(
    task: Task,
    today: date,
    context: EffortContext = EffortContext.DAILY,
    policy: DefaultsPolicy | None = None,
) -> float:
    """Spread the task's effort evenly across its inclusive span."""
    start, end = effective_span(task, today, policy)
    return effective_effort(task, context, policy) / days_between(start, end)


def allocate_task(
    task: Task,
    today: date,
    *,
    context: EffortContext = EffortContext.DAILY,
    policy: DefaultsPolicy | None = None,
    window: DateRange | None = None,
) -> list[Allocation]:
    """Convert a task into (assignee, day, hours) allocations.

    Every assignee receives the full per-day hours; effort is not divided
    among co-assignees. Completed tasks and tasks without assignees produce
    no allocations. Fractional hours are kept unrounded.

    Args:
        task: Task to allocate
        today: Calendar day used when the task has no start date
        context: Which default effort applies when the estimate is missing
        policy: Defaulting policy (defaults to DefaultsPolicy())
        window: If given, only days inside this range are produced

    Returns:
        Allocations ordered by day, then assignee id

    Raises:
        InvalidTaskSpanError: If the task's end date precedes its start date
    """
    if task.is_completed:
        logger.debug(f"  Task {task.id} is completed, no allocation")
        return []

    start, end = effective_span(task, today, policy)
    if not task.assignees:
        logger.debug(f"  Task {task.id} has no assignees, no allocation")
        return []

    span_days = days_between(start, end)
    per_day = effective_effort(task, context, policy) / span_days
    fraction = 1.0 / span_days

    days = iterate_days(start, end)
    if window is not None:
        days = days.overlap(window)

    assignees = sorted(task.assignees)
    return [
        Allocation(user_id=user_id, day=day, hours=per_day, task_id=task.id, task_fraction=fraction)
        for day in days
        for user_id in assignees
    ]
