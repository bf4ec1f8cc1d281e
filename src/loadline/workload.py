"""Workload aggregation across tasks, users and time buckets."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from .allocation import Allocation, EffortContext, allocate_task
from .capacity import capacity_of
from .config import DefaultsPolicy, RiskThresholds, SummaryConfig
from .deadlines import is_overdue
from .exceptions import InvalidTaskSpanError
from .logger import debug_enabled, get_logger
from .models import ACTIVE_STATUSES, Task, TaskStatus, User, unique_tasks
from .timewindow import DateRange, add_months, iterate_days, month_bounds, month_key, week_key

logger = get_logger()

# Efficiency lost per overdue task, in percentage points
EFFICIENCY_PENALTY_PER_OVERDUE = 20


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values (2.5 -> 3)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def clamp_percent(percent: float) -> float:
    """Clamp a utilization percentage for a bounded progress bar.

    Only for rendering; risk classification always uses the raw value.
    """
    return max(0.0, min(100.0, percent))


@dataclass(frozen=True)
class WorkloadSample:
    """Allocated hours and utilization of one user on one day."""

    user_id: str
    day: date
    allocated_hours: float
    capacity_hours: float
    utilization_percent: int
    is_overloaded: bool
    contributing_task_ids: tuple[str, ...]
    task_count: float = 0.0  # Fractional: each task adds 1 / its span length


@dataclass
class PeriodBucket:
    """Summed hours and fractional task count for one period key."""

    key: str
    hours: float = 0.0
    tasks: float = 0.0

    def rounded(self) -> PeriodBucket:
        """Copy rounded to one decimal, for presentation."""
        return PeriodBucket(
            key=self.key,
            hours=round_half_up(self.hours, 1),
            tasks=round_half_up(self.tasks, 1),
        )


def utilization_percent(allocated_hours: float, capacity_hours: float) -> int:
    """Allocated hours as a whole percentage of capacity, never clamped."""
    return int(round_half_up(allocated_hours / capacity_hours * 100))


def tasks_for_user(tasks: list[Task], user_id: str) -> list[Task]:
    """Tasks assigned to a user, each task counted once."""
    return [task for task in unique_tasks(tasks) if user_id in task.assignees]


def collect_allocations(
    tasks: list[Task],
    today: date,
    *,
    context: EffortContext = EffortContext.DAILY,
    policy: DefaultsPolicy | None = None,
    window: DateRange | None = None,
) -> tuple[list[Allocation], list[InvalidTaskSpanError]]:
    """Allocate every task once, setting malformed tasks aside.

    Returns:
        Tuple of (allocations, errors for tasks that were skipped)
    """
    allocations: list[Allocation] = []
    errors: list[InvalidTaskSpanError] = []
    for task in unique_tasks(tasks):
        try:
            allocations.extend(
                allocate_task(task, today, context=context, policy=policy, window=window)
            )
        except InvalidTaskSpanError as e:
            logger.changes(f"Excluding task {task.id} from workload: {e}")
            errors.append(e)
    return (allocations, errors)


def daily_workload(  # noqa: PLR0913 - keyword-only options mirror the engine config
    tasks: list[Task],
    users: list[User],
    window_start: date,
    window_end: date,
    today: date,
    *,
    context: EffortContext = EffortContext.DAILY,
    policy: DefaultsPolicy | None = None,
    thresholds: RiskThresholds | None = None,
) -> list[WorkloadSample]:
    """Compute one WorkloadSample per roster user per day of the window.

    Samples are ordered by day, then by roster order. Assignees missing from
    the roster are ignored. Tasks repeated in the input are counted once, and
    malformed tasks are skipped.

    Args:
        tasks: Task snapshot
        users: User roster
        window_start: First day of the window (inclusive)
        window_end: Last day of the window (inclusive)
        today: Calendar day used for tasks without a start date
        context: Default-effort context for tasks without an estimate
        policy: Defaulting policy
        thresholds: Risk thresholds (for the overload flag)

    Returns:
        List of WorkloadSample
    """
    thresholds = thresholds or RiskThresholds()
    window = iterate_days(window_start, window_end)
    allocations, _ = collect_allocations(
        tasks, today, context=context, policy=policy, window=window
    )

    roster = {user.id for user in users}
    hours: dict[tuple[str, date], float] = {}
    fractions: dict[tuple[str, date], float] = {}
    contributors: dict[tuple[str, date], list[str]] = {}
    for allocation in allocations:
        if allocation.user_id not in roster:
            continue
        key = (allocation.user_id, allocation.day)
        hours[key] = hours.get(key, 0.0) + allocation.hours
        fractions[key] = fractions.get(key, 0.0) + allocation.task_fraction
        contributors.setdefault(key, []).append(allocation.task_id)

    samples: list[WorkloadSample] = []
    for day in window:
        for user in users:
            key = (user.id, day)
            capacity = capacity_of(user, policy)
            allocated = hours.get(key, 0.0)
            percent = utilization_percent(allocated, capacity)
            samples.append(
                WorkloadSample(
                    user_id=user.id,
                    day=day,
                    allocated_hours=allocated,
                    capacity_hours=capacity,
                    utilization_percent=percent,
                    is_overloaded=percent > thresholds.overload_percent,
                    contributing_task_ids=tuple(contributors.get(key, [])),
                    task_count=fractions.get(key, 0.0),
                )
            )

    if debug_enabled():
        for sample in samples:
            if sample.is_overloaded:
                logger.debug(
                    f"  {sample.day.isoformat()} {sample.user_id}: "
                    f"{sample.allocated_hours:.1f}h / {sample.capacity_hours:.1f}h "
                    f"({sample.utilization_percent}%) "
                    f"from {', '.join(sample.contributing_task_ids)}"
                )
    return samples


def _bucket_samples(
    samples: list[WorkloadSample],
    key_fn: Callable[[date], str],
    user_id: str | None,
) -> list[PeriodBucket]:
    buckets: dict[str, PeriodBucket] = {}
    for sample in samples:
        if user_id is not None and sample.user_id != user_id:
            continue
        key = key_fn(sample.day)
        bucket = buckets.setdefault(key, PeriodBucket(key=key))
        bucket.hours += sample.allocated_hours
        bucket.tasks += sample.task_count
    return list(buckets.values())


def weekly_buckets(
    samples: list[WorkloadSample], user_id: str | None = None
) -> list[PeriodBucket]:
    """Sum daily samples into week-of-month buckets, in chronological order."""
    return _bucket_samples(samples, week_key, user_id)


def monthly_buckets(
    samples: list[WorkloadSample], user_id: str | None = None
) -> list[PeriodBucket]:
    """Sum daily samples into year-month buckets, in chronological order."""
    return _bucket_samples(samples, month_key, user_id)


class Level(str, Enum):
    """Coarse low/medium/high rating for risk and productivity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Overdue-task counts at which a user becomes medium / high risk
USER_MEDIUM_RISK_OVERDUE = 1
USER_HIGH_RISK_OVERDUE = 3

# Department thresholds
DEPARTMENT_HIGH_RISK_USERS = 2
DEPARTMENT_MEDIUM_RISK_OVERDUE = 5
HIGH_PRODUCTIVITY_RATE = 80
MEDIUM_PRODUCTIVITY_RATE = 60


def _default_buckets() -> list[PeriodBucket]:
    return []


@dataclass
class UserWorkloadSummary:
    """Task counts, scores and workload series for one user."""

    user_id: str
    name: str
    department: str | None
    capacity_hours: float
    total_tasks: int
    active_tasks: int
    completed_tasks: int
    review_tasks: int
    overdue_tasks: int
    active_projects: int
    workload_score: int
    completion_rate: int
    efficiency: int
    risk_level: Level
    daily: list[PeriodBucket] = field(default_factory=_default_buckets)
    weekly: list[PeriodBucket] = field(default_factory=_default_buckets)
    monthly: list[PeriodBucket] = field(default_factory=_default_buckets)


def _user_risk_level(overdue_count: int) -> Level:
    if overdue_count >= USER_HIGH_RISK_OVERDUE:
        return Level.HIGH
    if overdue_count >= USER_MEDIUM_RISK_OVERDUE:
        return Level.MEDIUM
    return Level.LOW


def _series(
    allocations: list[Allocation],
    keys: list[str],
    key_fn: Callable[[date], str],
    days: DateRange,
) -> list[PeriodBucket]:
    buckets = {key: PeriodBucket(key=key) for key in keys}
    for allocation in allocations:
        if allocation.day not in days:
            continue
        bucket = buckets.get(key_fn(allocation.day))
        if bucket is None:
            continue
        bucket.hours += allocation.hours
        bucket.tasks += allocation.task_fraction
    return [bucket.rounded() for bucket in buckets.values()]


def summarize_user(
    user: User,
    tasks: list[Task],
    now: datetime,
    *,
    policy: DefaultsPolicy | None = None,
    summary: SummaryConfig | None = None,
) -> UserWorkloadSummary:
    """Summarize one user's task load and workload series.

    Series start at `now`'s calendar day and use the SUMMARY effort context:
    `summary.series_days` daily buckets, the weeks of the next
    `summary.series_weeks` weeks and `summary.series_months` calendar months.
    Bucket values are rounded to one decimal.
    """
    summary = summary or SummaryConfig()
    today = now.date()
    user_tasks = tasks_for_user(tasks, user.id)

    active = [task for task in user_tasks if task.status in ACTIVE_STATUSES]
    completed = [task for task in user_tasks if task.status == TaskStatus.COMPLETED]
    review = [task for task in user_tasks if task.status == TaskStatus.REVIEW]
    overdue = [task for task in user_tasks if is_overdue(task, now)]
    projects = {task.project_id for task in active if task.project_id is not None}

    total = len(user_tasks)
    completion_rate = int(round_half_up(len(completed) / total * 100)) if total else 0
    efficiency = max(0, 100 - len(overdue) * EFFICIENCY_PENALTY_PER_OVERDUE)

    last_month = add_months(today, summary.series_months - 1)
    daily_end = today + timedelta(days=summary.series_days - 1)
    weekly_end = today + timedelta(weeks=summary.series_weeks) - timedelta(days=1)
    months_end = month_bounds(last_month.year, last_month.month)[1]

    # The horizon must reach the end of whichever series runs longest
    horizon = iterate_days(
        date(today.year, today.month, 1), max(daily_end, weekly_end, months_end)
    )
    allocations, _ = collect_allocations(
        user_tasks, today, context=EffortContext.SUMMARY, policy=policy, window=horizon
    )
    allocations = [allocation for allocation in allocations if allocation.user_id == user.id]

    daily_days = iterate_days(today, daily_end)
    weekly_days = iterate_days(today, weekly_end)
    day_keys = [day.isoformat() for day in daily_days]
    week_keys = list(dict.fromkeys(week_key(day) for day in weekly_days))
    month_keys = [month_key(add_months(today, offset)) for offset in range(summary.series_months)]

    return UserWorkloadSummary(
        user_id=user.id,
        name=user.name,
        department=user.department,
        capacity_hours=capacity_of(user, policy),
        total_tasks=total,
        active_tasks=len(active),
        completed_tasks=len(completed),
        review_tasks=len(review),
        overdue_tasks=len(overdue),
        active_projects=len(projects),
        workload_score=len(active) * 2 + len(projects) + len(overdue) * 3,
        completion_rate=completion_rate,
        efficiency=efficiency,
        risk_level=_user_risk_level(len(overdue)),
        daily=_series(allocations, day_keys, date.isoformat, daily_days),
        weekly=_series(allocations, week_keys, week_key, weekly_days),
        monthly=_series(allocations, month_keys, month_key, horizon),
    )


@dataclass
class DepartmentSummary:
    """Averaged user summaries for one department."""

    name: str
    total_users: int
    total_active_tasks: int
    total_overdue_tasks: int
    avg_workload_score: int
    avg_completion_rate: int
    avg_efficiency: int
    high_risk_users: int
    risk_level: Level
    productivity: Level


def summarize_departments(summaries: list[UserWorkloadSummary]) -> list[DepartmentSummary]:
    """Group user summaries by department; users without one are skipped."""
    groups: dict[str, list[UserWorkloadSummary]] = {}
    for summary in summaries:
        if summary.department is None:
            continue
        groups.setdefault(summary.department, []).append(summary)

    result: list[DepartmentSummary] = []
    for name in sorted(groups):
        members = groups[name]
        count = len(members)
        high_risk = sum(1 for m in members if m.risk_level == Level.HIGH)
        overdue = sum(m.overdue_tasks for m in members)
        completion = int(round_half_up(sum(m.completion_rate for m in members) / count))
        score = int(round_half_up(sum(m.workload_score for m in members) / count))

        if high_risk >= DEPARTMENT_HIGH_RISK_USERS:
            risk = Level.HIGH
        elif overdue >= DEPARTMENT_MEDIUM_RISK_OVERDUE:
            risk = Level.MEDIUM
        else:
            risk = Level.LOW

        if completion >= HIGH_PRODUCTIVITY_RATE:
            productivity = Level.HIGH
        elif completion >= MEDIUM_PRODUCTIVITY_RATE:
            productivity = Level.MEDIUM
        else:
            productivity = Level.LOW

        result.append(
            DepartmentSummary(
                name=name,
                total_users=count,
                total_active_tasks=sum(m.active_tasks for m in members),
                total_overdue_tasks=overdue,
                avg_workload_score=score,
                avg_completion_rate=completion,
                avg_efficiency=int(round_half_up(sum(m.efficiency for m in members) / count)),
                high_risk_users=high_risk,
                risk_level=risk,
                productivity=productivity,
            )
        )
    return result
