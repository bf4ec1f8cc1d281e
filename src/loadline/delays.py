"""Project delay analysis from task dates and progress.

Four independent estimates of the slip are computed and the largest one is
reported as the project delay.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .deadlines import days_overdue, is_overdue
from .logger import get_logger
from .models import Project, Task, TaskStatus

logger = get_logger()


class DelayFactor(str, Enum):
    """Which estimate produced the reported delay."""

    TASKS = "tasks"
    SCHEDULE = "schedule"
    PROGRESS = "progress"
    OVERDUE = "overdue"


class ProjectStatus(str, Enum):
    COMPLETED = "completed"
    DELAYED = "delayed"
    EARLY = "early"
    ON_TIME = "on-time"


class DelaySeverity(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Upper bounds (inclusive, in days) of the low / medium / high severity bands
LOW_DELAY_DAYS = 7
MEDIUM_DELAY_DAYS = 21
HIGH_DELAY_DAYS = 45


def delay_severity(delay_days: int) -> DelaySeverity:
    """Map a delay in days onto a severity band."""
    if delay_days <= 0:
        return DelaySeverity.NONE
    if delay_days <= LOW_DELAY_DAYS:
        return DelaySeverity.LOW
    if delay_days <= MEDIUM_DELAY_DAYS:
        return DelaySeverity.MEDIUM
    if delay_days <= HIGH_DELAY_DAYS:
        return DelaySeverity.HIGH
    return DelaySeverity.CRITICAL


@dataclass(frozen=True)
class OverdueTaskDetail:
    task_id: str
    title: str
    days_overdue: int


def _default_details() -> list[OverdueTaskDetail]:
    return []


@dataclass
class DelayAnalysis:
    """Planned versus task-derived project dates and the estimated slip."""

    planned_start: date | None
    planned_end: date | None
    actual_start: date | None
    actual_end: date | None
    completion_percent: float
    task_delay: int = 0  # Latest task end past the planned end
    schedule_delay: int = 0  # Today past the planned end
    progress_delay: int = 0  # Remaining work extrapolated from progress so far
    overdue_delay: int = 0  # Sum of days overdue across open tasks
    delay_days: int = 0
    dominant_factor: DelayFactor = DelayFactor.TASKS  # Stays TASKS when there is no delay
    status: ProjectStatus = ProjectStatus.ON_TIME
    overdue_tasks: list[OverdueTaskDetail] = field(default_factory=_default_details)

    @property
    def is_delayed(self) -> bool:
        return self.delay_days > 0

    @property
    def severity(self) -> DelaySeverity:
        return delay_severity(self.delay_days)


def analyze_project_delay(tasks: list[Task], project: Project, now: datetime) -> DelayAnalysis:
    """Estimate how far a project has slipped past its planned end date.

    Args:
        tasks: The project's tasks
        project: Project with the planned dates
        now: Reference instant

    Returns:
        DelayAnalysis; a project whose tasks carry no dates is reported on time
    """
    today = now.date()
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    completion = completed / total * 100 if total else 0.0

    starts = [task.start_date for task in tasks if task.start_date is not None]
    ends = [task.end_date for task in tasks if task.end_date is not None]
    if not starts and not ends:
        logger.debug(f"Project {project.id} has no dated tasks")
        return DelayAnalysis(
            planned_start=project.start_date,
            planned_end=project.end_date,
            actual_start=None,
            actual_end=None,
            completion_percent=0.0,
        )

    actual_start = min(starts) if starts else None
    actual_end = max(ends) if ends else None
    planned_end = project.end_date

    task_delay = 0
    schedule_delay = 0
    progress_delay = 0
    if planned_end is not None:
        if actual_end is not None:
            task_delay = max(0, (actual_end - planned_end).days)
        schedule_delay = max(0, (today - planned_end).days)
        if completion < 100 and actual_start is not None:
            elapsed = max(0, (today - actual_start).days)
            progress_delay = math.ceil((100 - completion) / max(completion, 1) * elapsed)

    overdue = [
        OverdueTaskDetail(task_id=task.id, title=task.title, days_overdue=days_overdue(task, now))
        for task in tasks
        if is_overdue(task, now)
    ]
    overdue_delay = sum(detail.days_overdue for detail in overdue)

    delay = max(task_delay, schedule_delay, progress_delay, overdue_delay)
    if delay <= 0:
        dominant = DelayFactor.TASKS
    elif schedule_delay == delay:
        dominant = DelayFactor.SCHEDULE
    elif progress_delay == delay:
        dominant = DelayFactor.PROGRESS
    elif overdue_delay == delay:
        dominant = DelayFactor.OVERDUE
    else:
        dominant = DelayFactor.TASKS

    if total and completed == total:
        status = ProjectStatus.COMPLETED
    elif delay > 0:
        status = ProjectStatus.DELAYED
    elif planned_end is not None and actual_end is not None and actual_end < planned_end:
        status = ProjectStatus.EARLY
    else:
        status = ProjectStatus.ON_TIME

    logger.checks(
        f"Project {project.id}: delay {delay} day(s), dominant factor {dominant.value} "
        f"(tasks={task_delay}, schedule={schedule_delay}, progress={progress_delay}, "
        f"overdue={overdue_delay})"
    )

    return DelayAnalysis(
        planned_start=project.start_date,
        planned_end=planned_end,
        actual_start=actual_start,
        actual_end=actual_end,
        completion_percent=completion,
        task_delay=task_delay,
        schedule_delay=schedule_delay,
        progress_delay=progress_delay,
        overdue_delay=overdue_delay,
        delay_days=delay,
        dominant_factor=dominant,
        status=status,
        overdue_tasks=overdue,
    )
