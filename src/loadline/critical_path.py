"""Critical path method over the task dependency graph.

Durations are whole days. Earliest times come from a forward pass in
topological order; latest times come from a backward pass anchored at the
project end, and slack is the difference between the two.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

from .allocation import EffortContext, effective_effort, effective_span
from .config import DefaultsPolicy
from .exceptions import (
    CyclicDependencyError,
    InvalidTaskSpanError,
    MissingReferenceError,
    ValidationError,
)
from .logger import get_logger
from .models import Task, unique_tasks
from .timewindow import days_between

logger = get_logger()


def task_duration_days(
    task: Task, today: date, policy: DefaultsPolicy | None = None
) -> int:
    """Duration of a task in whole days, at least one.

    Uses ceil(estimated_hours / hours_per_day) when the task has an estimate,
    otherwise the inclusive length of its effective span.

    Raises:
        InvalidTaskSpanError: If the task's end date precedes its start date
    """
    policy = policy or DefaultsPolicy()
    start, end = effective_span(task, today, policy)
    if task.estimated_hours is None:
        return days_between(start, end)
    hours = effective_effort(task, EffortContext.SUMMARY, policy)
    return max(1, math.ceil(hours / policy.hours_per_day))


@dataclass(frozen=True)
class TaskNode:
    """A task in the dependency graph with its resolved duration and span."""

    task: Task
    duration: int
    start: date
    end: date
    predecessors: tuple[str, ...]

    @property
    def id(self) -> str:
        return self.task.id

    def order_key(self) -> tuple[date, str]:
        """Tie-break key: declared start date (undated last), then id."""
        return (self.task.start_date or date.max, self.task.id)


class DependencyGraph:
    """Directed graph of tasks where edges run from predecessor to successor."""

    def __init__(self, nodes: dict[str, TaskNode]) -> None:
        self.nodes = nodes
        self.successors: dict[str, list[str]] = {task_id: [] for task_id in nodes}
        for node in nodes.values():
            for pred_id in node.predecessors:
                self.successors[pred_id].append(node.id)
        for succ_ids in self.successors.values():
            succ_ids.sort(key=lambda succ_id: self.nodes[succ_id].order_key())

    @classmethod
    def from_tasks(
        cls,
        tasks: list[Task],
        today: date,
        policy: DefaultsPolicy | None = None,
        *,
        include_completed: bool = True,
    ) -> tuple[DependencyGraph, list[ValidationError]]:
        """Build the graph from a task snapshot.

        Malformed tasks are excluded and reported. Dependencies on ids that are
        not in the graph are dropped and reported, except dependencies on
        completed tasks left out by `include_completed=False`.

        Returns:
            Tuple of (graph, warnings)
        """
        warnings: list[ValidationError] = []
        candidates = unique_tasks(tasks)
        skipped_completed: set[str] = set()
        if not include_completed:
            skipped_completed = {task.id for task in candidates if task.is_completed}
            candidates = [task for task in candidates if not task.is_completed]

        resolved: dict[str, tuple[Task, int, date, date]] = {}
        for task in candidates:
            try:
                start, end = effective_span(task, today, policy)
                duration = task_duration_days(task, today, policy)
            except InvalidTaskSpanError as e:
                logger.changes(f"Excluding task {task.id} from critical path: {e}")
                warnings.append(e)
                continue
            resolved[task.id] = (task, duration, start, end)

        nodes: dict[str, TaskNode] = {}
        for task_id, (task, duration, start, end) in resolved.items():
            predecessors: list[str] = []
            for dep_id in task.dependencies:
                if dep_id in resolved:
                    if dep_id not in predecessors:
                        predecessors.append(dep_id)
                elif dep_id not in skipped_completed:
                    warnings.append(
                        MissingReferenceError(
                            f"Task {task_id} depends on unknown task: {dep_id}", task_id=task_id
                        )
                    )
            nodes[task_id] = TaskNode(
                task=task,
                duration=duration,
                start=start,
                end=end,
                predecessors=tuple(predecessors),
            )

        return (cls(nodes), warnings)

    def topological_order(self) -> list[str]:
        """Return task ids in dependency order.

        Among tasks that are ready at the same time, the one with the earlier
        declared start date comes first, then the smaller id.

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        in_degree = {task_id: len(node.predecessors) for task_id, node in self.nodes.items()}
        ready = [self.nodes[t].order_key() for t, degree in in_degree.items() if not degree]
        heapq.heapify(ready)
        result: list[str] = []

        while ready:
            _, task_id = heapq.heappop(ready)
            result.append(task_id)
            for succ_id in self.successors[task_id]:
                in_degree[succ_id] -= 1
                if in_degree[succ_id] == 0:
                    heapq.heappush(ready, self.nodes[succ_id].order_key())

        if len(result) != len(self.nodes):
            remaining = {task_id for task_id, degree in in_degree.items() if degree > 0}
            raise CyclicDependencyError(self._find_cycle(remaining))

        return result

    def _find_cycle(self, remaining: set[str]) -> list[str]:
        """Walk dependencies inside the unsorted remainder until a task repeats.

        Every task left over after the sort has a predecessor that is also
        left over, so the walk always closes a cycle.
        """
        path: list[str] = []
        current = min(remaining)
        while current not in path:
            path.append(current)
            current = min(p for p in self.nodes[current].predecessors if p in remaining)
        return path[path.index(current) :]

    def descendants(self, task_id: str) -> list[str]:
        """Transitive successors of a task, in topological order."""
        seen: set[str] = set()
        stack = list(self.successors[task_id])
        while stack:
            succ_id = stack.pop()
            if succ_id in seen:
                continue
            seen.add(succ_id)
            stack.extend(self.successors[succ_id])
        return [node_id for node_id in self.topological_order() if node_id in seen]

    def sinks(self) -> list[str]:
        return [task_id for task_id, succ_ids in self.successors.items() if not succ_ids]


@dataclass(frozen=True)
class TaskTiming:
    """Forward and backward pass results for one task, in day offsets."""

    task_id: str
    duration: int
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    slack: int
    critical: bool


def _default_path() -> list[str]:
    return []


def _default_timings() -> dict[str, TaskTiming]:
    return {}


@dataclass
class CriticalPathResult:
    """Critical chain, total duration and per-task timings.

    When the graph has a cycle, `path` is empty and `cycle` names the tasks
    that form it.
    """

    path: list[str] = field(default_factory=_default_path)
    total_duration: int = 0
    timings: dict[str, TaskTiming] = field(default_factory=_default_timings)
    cycle: list[str] = field(default_factory=_default_path)
    start_date: date | None = None
    finish_date: date | None = None

    @property
    def has_cycle(self) -> bool:
        return bool(self.cycle)

    def slack_of(self, task_id: str) -> int | None:
        timing = self.timings.get(task_id)
        return timing.slack if timing else None


class CriticalPathAnalyzer:
    """Runs the forward and backward passes over a DependencyGraph."""

    def __init__(self, graph: DependencyGraph) -> None:
        self.graph = graph

    def analyze(self) -> CriticalPathResult:
        """Compute the critical path and slack of every task.

        Returns:
            CriticalPathResult (empty for an empty graph)

        Raises:
            CyclicDependencyError: If the dependency graph contains a cycle
        """
        nodes = self.graph.nodes
        if not nodes:
            return CriticalPathResult()

        order = self.graph.topological_order()

        # Forward pass
        earliest_start: dict[str, int] = {}
        earliest_finish: dict[str, int] = {}
        for task_id in order:
            node = nodes[task_id]
            es = max((earliest_finish[p] for p in node.predecessors), default=0)
            earliest_start[task_id] = es
            earliest_finish[task_id] = es + node.duration

        project_duration = max(earliest_finish.values())

        # Backward pass from the project end
        latest_start: dict[str, int] = {}
        latest_finish: dict[str, int] = {}
        for task_id in reversed(order):
            succ_ids = self.graph.successors[task_id]
            lf = min((latest_start[s] for s in succ_ids), default=project_duration)
            latest_finish[task_id] = lf
            latest_start[task_id] = lf - nodes[task_id].duration

        path = self._trace_path(earliest_start, earliest_finish, project_duration)
        on_path = set(path)

        timings = {
            task_id: TaskTiming(
                task_id=task_id,
                duration=nodes[task_id].duration,
                earliest_start=earliest_start[task_id],
                earliest_finish=earliest_finish[task_id],
                latest_start=latest_start[task_id],
                latest_finish=latest_finish[task_id],
                slack=latest_start[task_id] - earliest_start[task_id],
                critical=task_id in on_path,
            )
            for task_id in order
        }

        start_date = min(node.start for node in nodes.values())
        logger.checks(
            f"Critical path: {' -> '.join(path)} ({project_duration} days from {start_date})"
        )

        return CriticalPathResult(
            path=path,
            total_duration=project_duration,
            timings=timings,
            start_date=start_date,
            finish_date=start_date + timedelta(days=project_duration - 1),
        )

    def _trace_path(
        self,
        earliest_start: dict[str, int],
        earliest_finish: dict[str, int],
        project_duration: int,
    ) -> list[str]:
        """Walk back from the latest-finishing sink through driving predecessors."""
        nodes = self.graph.nodes
        ends = [s for s in self.graph.sinks() if earliest_finish[s] == project_duration]
        current = min(ends, key=lambda task_id: nodes[task_id].order_key())
        path = [current]
        while True:
            drivers = [
                p
                for p in nodes[current].predecessors
                if earliest_finish[p] == earliest_start[current]
            ]
            if not drivers:
                break
            current = min(drivers, key=lambda task_id: nodes[task_id].order_key())
            path.append(current)
        path.reverse()
        return path


class OptimizationKind(str, Enum):
    """Kinds of schedule compression suggested for critical tasks."""

    REDUCE_DURATION = "REDUCE_DURATION"
    PARALLEL_EXECUTION = "PARALLEL_EXECUTION"
    RESOURCE_ALLOCATION = "RESOURCE_ALLOCATION"


class Effort(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Recommendation:
    """A suggestion for shortening the critical path at one task."""

    kind: OptimizationKind
    task_id: str
    task_title: str
    current_duration: int
    suggested_duration: int
    days_saved: int
    effort: Effort
    description: str


# Share of a task's duration that tighter scoping is expected to save
DURATION_REDUCTION_SHARE = 0.2
# Tasks longer than this many days are expensive to compress
LONG_TASK_DAYS = 5
# Single-assignee tasks longer than this benefit from more people
RESOURCE_TASK_DAYS = 3
MAX_ADDITIONAL_RESOURCES = 2
# Days saved per added person, as a share of the duration
RESOURCE_GAIN_SHARE = 0.3


def recommend_optimizations(
    result: CriticalPathResult, graph: DependencyGraph
) -> list[Recommendation]:
    """Suggest ways to compress the critical path, biggest savings first."""
    recommendations: list[Recommendation] = []

    for task_id in result.path:
        node = graph.nodes[task_id]
        duration = node.duration
        title = node.task.title

        if duration > 1:
            reduction = max(1, math.floor(duration * DURATION_REDUCTION_SHARE))
            recommendations.append(
                Recommendation(
                    kind=OptimizationKind.REDUCE_DURATION,
                    task_id=task_id,
                    task_title=title,
                    current_duration=duration,
                    suggested_duration=duration - reduction,
                    days_saved=reduction,
                    effort=Effort.HIGH if duration > LONG_TASK_DAYS else Effort.MEDIUM,
                    description=f"Tighten the scope of {task_id} to save {reduction} day(s)",
                )
            )

        dependents = graph.successors[task_id]
        if len(dependents) > 1:
            saved = min(graph.nodes[d].duration for d in dependents)
            recommendations.append(
                Recommendation(
                    kind=OptimizationKind.PARALLEL_EXECUTION,
                    task_id=task_id,
                    task_title=title,
                    current_duration=duration,
                    suggested_duration=duration,
                    days_saved=saved,
                    effort=Effort.MEDIUM,
                    description=f"Run the {len(dependents)} tasks after {task_id} in parallel",
                )
            )

        if len(node.task.assignees) == 1 and duration > RESOURCE_TASK_DAYS:
            additional = min(MAX_ADDITIONAL_RESOURCES, duration // RESOURCE_TASK_DAYS)
            saved = math.floor(duration * RESOURCE_GAIN_SHARE * additional)
            recommendations.append(
                Recommendation(
                    kind=OptimizationKind.RESOURCE_ALLOCATION,
                    task_id=task_id,
                    task_title=title,
                    current_duration=duration,
                    suggested_duration=duration - saved,
                    days_saved=saved,
                    effort=Effort.HIGH if additional > 1 else Effort.MEDIUM,
                    description=f"Add {additional} person(s) to {task_id} to save {saved} day(s)",
                )
            )

    recommendations.sort(key=lambda r: r.days_saved, reverse=True)
    return recommendations
