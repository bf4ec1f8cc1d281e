"""Analysis facade: runs every component over one snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from .allocation import EffortContext
from .bottleneck import (
    DayAssessment,
    DayRisk,
    MonthlyRiskSummary,
    days_with_risk,
    detect,
    summarize_month,
)
from .config import EngineConfig
from .critical_path import (
    CriticalPathAnalyzer,
    CriticalPathResult,
    DependencyGraph,
    Recommendation,
    recommend_optimizations,
)
from .deadlines import due_today_task_ids, is_urgent_overdue, overdue_task_ids
from .delays import DelayAnalysis, analyze_project_delay
from .exceptions import (
    CyclicDependencyError,
    InvalidTaskSpanError,
    LoadlineError,
    MissingReferenceError,
)
from .logger import get_logger
from .models import Snapshot, Task, unique_tasks
from .timewindow import month_bounds, months_in_range
from .workload import (
    DepartmentSummary,
    PeriodBucket,
    UserWorkloadSummary,
    WorkloadSample,
    daily_workload,
    monthly_buckets,
    summarize_departments,
    summarize_user,
    weekly_buckets,
)

logger = get_logger()


@dataclass
class AnalysisResult:
    """Everything computed for one snapshot, plus the problems found on the way."""

    reference_now: datetime
    window_start: date
    window_end: date
    daily_workload: list[WorkloadSample] = field(default_factory=list[WorkloadSample])
    weekly_workload: list[PeriodBucket] = field(default_factory=list[PeriodBucket])
    monthly_workload: list[PeriodBucket] = field(default_factory=list[PeriodBucket])
    day_assessments: list[DayAssessment] = field(default_factory=list[DayAssessment])
    monthly_summary: list[MonthlyRiskSummary] = field(default_factory=list[MonthlyRiskSummary])
    overdue_task_ids: list[str] = field(default_factory=list[str])
    due_today_task_ids: list[str] = field(default_factory=list[str])
    urgent_overdue_task_ids: list[str] = field(default_factory=list[str])
    bottleneck_days: list[date] = field(default_factory=list[date])
    high_risk_days: list[date] = field(default_factory=list[date])
    critical_path: CriticalPathResult = field(default_factory=CriticalPathResult)
    recommendations: list[Recommendation] = field(default_factory=list[Recommendation])
    user_summaries: list[UserWorkloadSummary] = field(default_factory=list[UserWorkloadSummary])
    department_summaries: list[DepartmentSummary] = field(default_factory=list[DepartmentSummary])
    delay: DelayAnalysis | None = None
    warnings: list[LoadlineError] = field(default_factory=list[LoadlineError])


class AnalysisService:
    """Runs workload, deadline, bottleneck, critical path and delay analysis.

    Per-task problems never abort the run: malformed tasks are excluded,
    unknown references are dropped, and a dependency cycle empties only the
    critical path. All of them are reported in `AnalysisResult.warnings`.
    """

    def __init__(  # noqa: PLR0913 - every input can be overridden explicitly
        self,
        snapshot: Snapshot,
        reference_now: datetime | None = None,
        window_start: date | None = None,
        window_end: date | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            snapshot: Tasks, users and optional project
            reference_now: Instant for deadline checks (defaults to the
                snapshot's, then to the current time)
            window_start: First day of the workload window (defaults to the
                snapshot's, then to the first day of reference_now's month)
            window_end: Last day of the workload window (defaults to the
                snapshot's, then to the last day of window_start's month)
            config: Engine configuration (defaults to EngineConfig())
        """
        self.snapshot = snapshot
        self.reference_now = (
            reference_now or snapshot.reference_now or datetime.now()  # noqa: DTZ005
        )
        today = self.reference_now.date()
        self.window_start = (
            window_start or snapshot.window_start or month_bounds(today.year, today.month)[0]
        )
        self.window_end = (
            window_end
            or snapshot.window_end
            or month_bounds(self.window_start.year, self.window_start.month)[1]
        )
        if self.window_end < self.window_start:
            raise ValueError(
                f"Window end {self.window_end} is before window start {self.window_start}"
            )
        self.config = config or EngineConfig()

    def _reference_warnings(self, tasks: list[Task]) -> list[LoadlineError]:
        """Report malformed spans and assignees missing from the roster."""
        roster = {user.id for user in self.snapshot.users}
        warnings: list[LoadlineError] = []
        for task in tasks:
            if not task.has_valid_span:
                assert task.start_date is not None and task.end_date is not None
                warnings.append(InvalidTaskSpanError(task.id, task.start_date, task.end_date))
            for user_id in sorted(task.assignees - roster):
                warnings.append(
                    MissingReferenceError(
                        f"Task {task.id} is assigned to unknown user: {user_id}", task_id=task.id
                    )
                )
        return warnings

    def _critical_path(
        self, tasks: list[Task], warnings: list[LoadlineError]
    ) -> tuple[CriticalPathResult, list[Recommendation]]:
        graph, graph_warnings = DependencyGraph.from_tasks(
            tasks,
            self.reference_now.date(),
            self.config.defaults,
            include_completed=self.config.critical_path.include_completed,
        )
        # Malformed spans are already reported once by _reference_warnings
        warnings.extend(w for w in graph_warnings if not isinstance(w, InvalidTaskSpanError))
        try:
            result = CriticalPathAnalyzer(graph).analyze()
        except CyclicDependencyError as e:
            logger.warning(str(e))
            warnings.append(e)
            return (CriticalPathResult(cycle=e.cycle), [])
        return (result, recommend_optimizations(result, graph))

    def run(self) -> AnalysisResult:
        """Analyze the snapshot.

        Returns:
            AnalysisResult with all outputs and collected warnings
        """
        now = self.reference_now
        today = now.date()
        config = self.config
        tasks = unique_tasks(self.snapshot.tasks)
        users = self.snapshot.users

        logger.info(
            f"Analyzing {len(tasks)} tasks for {len(users)} users "
            f"({self.window_start} to {self.window_end})"
        )
        warnings = self._reference_warnings(tasks)

        samples = daily_workload(
            tasks,
            users,
            self.window_start,
            self.window_end,
            today,
            context=EffortContext.DAILY,
            policy=config.defaults,
            thresholds=config.thresholds,
        )
        assessments = detect(samples, config.thresholds)
        monthly = [
            summarize_month(assessments, samples, year, month, tasks)
            for year, month in months_in_range(self.window_start, self.window_end)
        ]

        critical_path, recommendations = self._critical_path(tasks, warnings)

        user_summaries = [
            summarize_user(user, tasks, now, policy=config.defaults, summary=config.summary)
            for user in users
        ]

        delay = None
        project = self.snapshot.project
        if project is not None:
            project_tasks = [t for t in tasks if t.project_id in (None, project.id)]
            delay = analyze_project_delay(project_tasks, project, now)

        result = AnalysisResult(
            reference_now=now,
            window_start=self.window_start,
            window_end=self.window_end,
            daily_workload=samples,
            weekly_workload=[b.rounded() for b in weekly_buckets(samples)],
            monthly_workload=[b.rounded() for b in monthly_buckets(samples)],
            day_assessments=assessments,
            monthly_summary=monthly,
            overdue_task_ids=overdue_task_ids(tasks, now),
            due_today_task_ids=due_today_task_ids(tasks, today),
            urgent_overdue_task_ids=[t.id for t in tasks if is_urgent_overdue(t, now)],
            bottleneck_days=days_with_risk(assessments, DayRisk.BOTTLENECK),
            high_risk_days=days_with_risk(assessments, DayRisk.HIGH_RISK),
            critical_path=critical_path,
            recommendations=recommendations,
            user_summaries=user_summaries,
            department_summaries=summarize_departments(user_summaries),
            delay=delay,
            warnings=warnings,
        )

        if warnings:
            logger.changes(f"Analysis finished with {len(warnings)} warning(s)")
        return result


def analyze(
    snapshot: Snapshot,
    reference_now: datetime | None = None,
    window_start: date | None = None,
    window_end: date | None = None,
    config: EngineConfig | None = None,
) -> AnalysisResult:
    """Analyze a snapshot with a fresh AnalysisService."""
    return AnalysisService(snapshot, reference_now, window_start, window_end, config).run()
