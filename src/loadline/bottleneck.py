"""Bottleneck and high-risk day detection over daily workload samples."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .config import RiskThresholds
from .logger import checks_enabled, get_logger
from .models import Priority, Task
from .timewindow import iterate_days, month_bounds
from .workload import WorkloadSample

logger = get_logger()


class DayRisk(str, Enum):
    """Risk classification of a calendar day."""

    NORMAL = "normal"
    BOTTLENECK = "bottleneck"  # Elevated but sub-critical aggregate load
    HIGH_RISK = "high-risk"  # Severe individual overload


@dataclass(frozen=True)
class DayAssessment:
    """Aggregate workload figures and risk class for one day."""

    day: date
    average_workload: float  # Mean utilization of users with any allocation
    max_user_workload: int
    overloaded_user_count: int
    loaded_user_count: int
    risk: DayRisk


def classify_day(
    average_workload: float,
    max_user_workload: float,
    overloaded_user_count: int,
    thresholds: RiskThresholds | None = None,
) -> DayRisk:
    """Classify a day; high-risk is checked first and wins over bottleneck."""
    thresholds = thresholds or RiskThresholds()
    if (
        max_user_workload > thresholds.high_risk_max_percent
        or overloaded_user_count > thresholds.high_risk_overloaded_users
    ):
        return DayRisk.HIGH_RISK
    if average_workload > thresholds.bottleneck_average_percent:
        return DayRisk.BOTTLENECK
    return DayRisk.NORMAL


def assess_day(
    day: date,
    samples: list[WorkloadSample],
    thresholds: RiskThresholds | None = None,
) -> DayAssessment:
    """Assess one day from its samples (samples for other days are ignored)."""
    thresholds = thresholds or RiskThresholds()
    day_samples = [sample for sample in samples if sample.day == day]
    loaded = [sample for sample in day_samples if sample.allocated_hours > 0]

    average = sum(s.utilization_percent for s in loaded) / len(loaded) if loaded else 0.0
    maximum = max((s.utilization_percent for s in day_samples), default=0)
    overloaded = sum(
        1 for s in day_samples if s.utilization_percent > thresholds.overload_percent
    )
    risk = classify_day(average, maximum, overloaded, thresholds)

    if risk != DayRisk.NORMAL and checks_enabled():
        logger.checks(
            f"  {day.isoformat()}: {risk.value} (avg={average:.1f}%, max={maximum}%, "
            f"overloaded={overloaded})"
        )

    return DayAssessment(
        day=day,
        average_workload=average,
        max_user_workload=maximum,
        overloaded_user_count=overloaded,
        loaded_user_count=len(loaded),
        risk=risk,
    )


def detect(
    samples: list[WorkloadSample], thresholds: RiskThresholds | None = None
) -> list[DayAssessment]:
    """Assess every day that has samples, in chronological order."""
    by_day: dict[date, list[WorkloadSample]] = {}
    for sample in samples:
        by_day.setdefault(sample.day, []).append(sample)
    return [assess_day(day, by_day[day], thresholds) for day in sorted(by_day)]


def days_with_risk(assessments: list[DayAssessment], risk: DayRisk) -> list[date]:
    """Days whose classification equals `risk`."""
    return [a.day for a in assessments if a.risk == risk]


@dataclass
class MonthlyRiskSummary:
    """Risk and task-density figures for one calendar month."""

    year: int
    month: int
    total_days: int
    high_risk_days: int
    bottleneck_days: int
    total_tasks: int  # Unique tasks with allocation during the month
    urgent_task_days: int
    max_daily_tasks: int
    avg_daily_tasks: float
    average_workload: float


def summarize_month(
    assessments: list[DayAssessment],
    samples: list[WorkloadSample],
    year: int,
    month: int,
    tasks: list[Task] | None = None,
) -> MonthlyRiskSummary:
    """Roll a month of day assessments up for trend reporting.

    High-risk and bottleneck days are counted separately; each day falls in at
    most one of the two. Days without samples count as normal days with no
    tasks. `tasks` is only needed to count days with URGENT work.
    """
    start, end = month_bounds(year, month)
    month_days = iterate_days(start, end)
    urgent_ids = {t.id for t in tasks or [] if t.priority == Priority.URGENT}

    daily_tasks: dict[date, set[str]] = {}
    for sample in samples:
        if sample.day in month_days:
            daily_tasks.setdefault(sample.day, set()).update(sample.contributing_task_ids)

    in_month = [a for a in assessments if a.day in month_days]
    all_tasks: set[str] = set()
    for ids in daily_tasks.values():
        all_tasks |= ids

    total_days = len(month_days)
    return MonthlyRiskSummary(
        year=year,
        month=month,
        total_days=total_days,
        high_risk_days=sum(1 for a in in_month if a.risk == DayRisk.HIGH_RISK),
        bottleneck_days=sum(1 for a in in_month if a.risk == DayRisk.BOTTLENECK),
        total_tasks=len(all_tasks),
        urgent_task_days=sum(1 for ids in daily_tasks.values() if ids & urgent_ids),
        max_daily_tasks=max((len(ids) for ids in daily_tasks.values()), default=0),
        avg_daily_tasks=len(all_tasks) / total_days,
        average_workload=sum(a.average_workload for a in in_month) / total_days,
    )
