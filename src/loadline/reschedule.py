"""Delay propagation through the dependency graph, and reschedule files.

A reschedule file hands the proposed dates to whatever persists them. The
engine never writes task dates back itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any, cast

import yaml

from .critical_path import DependencyGraph
from .exceptions import MissingReferenceError
from .logger import changes_enabled, get_logger

logger = get_logger()

RESCHEDULE_FILE_VERSION = 1


@dataclass(frozen=True)
class DateShift:
    """Original and proposed dates of one moved task."""

    task_id: str
    original_start: date
    original_end: date
    start: date
    end: date

    @property
    def shift_days(self) -> int:
        return (self.end - self.original_end).days


def _default_shifts() -> dict[str, DateShift]:
    return {}


def _default_absorbed() -> list[str]:
    return []


@dataclass
class RescheduleResult:
    """Proposed dates after a delay, plus the project end before and after."""

    delayed_task_id: str
    delay_days: int
    project_end_before: date | None
    project_end_after: date | None
    updated: dict[str, DateShift] = field(default_factory=_default_shifts)
    absorbed: list[str] = field(default_factory=_default_absorbed)

    @property
    def updated_dates(self) -> dict[str, tuple[date, date]]:
        """Map of moved task id to its proposed (start, end)."""
        return {task_id: (s.start, s.end) for task_id, s in self.updated.items()}

    @property
    def project_slip_days(self) -> int:
        if self.project_end_before is None or self.project_end_after is None:
            return 0
        return (self.project_end_after - self.project_end_before).days


def _idle_days(pred_end: date, succ_start: date) -> int:
    """Idle calendar days between a predecessor's end and a successor's start."""
    return max(0, (succ_start - pred_end).days - 1)


def reschedule(graph: DependencyGraph, delayed_task_id: str, delay_days: int) -> RescheduleResult:
    """Propagate a delay at one task to its transitive successors.

    The delayed task's end moves by `delay_days`. Each successor moves by the
    largest shift of its moved predecessors minus the idle days it already had
    after that predecessor, never by less than zero; back-to-back chains move
    as a block and keep their gaps. Successors that end up not moving are
    reported as absorbed. Tasks outside the delayed task's downstream set are
    never touched.

    Args:
        graph: Acyclic dependency graph with resolved spans
        delayed_task_id: Task whose finish slips
        delay_days: Days of slip, zero or more

    Returns:
        RescheduleResult with proposed dates for every moved task

    Raises:
        MissingReferenceError: If the task is not in the graph
        ValueError: If delay_days is negative
        CyclicDependencyError: If the graph contains a cycle
    """
    if delay_days < 0:
        raise ValueError(f"Delay must not be negative, got {delay_days}")
    if delayed_task_id not in graph.nodes:
        raise MissingReferenceError(
            f"Cannot reschedule unknown task: {delayed_task_id}", task_id=delayed_task_id
        )

    nodes = graph.nodes
    shifts: dict[str, int] = {delayed_task_id: delay_days}
    absorbed: list[str] = []

    for task_id in graph.descendants(delayed_task_id):
        node = nodes[task_id]
        shift = 0
        for pred_id in node.predecessors:
            if pred_id not in shifts:
                continue
            incoming = shifts[pred_id] - _idle_days(nodes[pred_id].end, node.start)
            shift = max(shift, incoming)
        shifts[task_id] = shift
        if shift == 0:
            absorbed.append(task_id)

    updated: dict[str, DateShift] = {}
    for task_id, shift in shifts.items():
        if shift <= 0:
            continue
        node = nodes[task_id]
        new_start = node.start if task_id == delayed_task_id else node.start + timedelta(days=shift)
        updated[task_id] = DateShift(
            task_id=task_id,
            original_start=node.start,
            original_end=node.end,
            start=new_start,
            end=node.end + timedelta(days=shift),
        )
        if changes_enabled():
            logger.changes(f"  {task_id}: {node.end} -> {node.end + timedelta(days=shift)}")

    end_before = max((node.end for node in nodes.values()), default=None)
    end_after = max(
        (updated[t].end if t in updated else node.end for t, node in nodes.items()),
        default=None,
    )
    logger.info(
        f"Delay of {delay_days} day(s) at {delayed_task_id} moves {len(updated)} task(s), "
        f"{len(absorbed)} absorbed"
    )

    return RescheduleResult(
        delayed_task_id=delayed_task_id,
        delay_days=delay_days,
        project_end_before=end_before,
        project_end_after=end_after,
        updated=updated,
        absorbed=absorbed,
    )


def _optional_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def write_reschedule_file(path: Path, result: RescheduleResult) -> None:
    """Export a reschedule proposal as YAML.

    Args:
        path: Path to write the reschedule file
        result: Reschedule result to export
    """
    tasks_data: dict[str, dict[str, Any]] = {}
    for task_id, shift in result.updated.items():
        tasks_data[task_id] = {
            "original_start_date": shift.original_start.isoformat(),
            "original_end_date": shift.original_end.isoformat(),
            "start_date": shift.start.isoformat(),
            "end_date": shift.end.isoformat(),
        }

    output: dict[str, Any] = {
        "version": RESCHEDULE_FILE_VERSION,
        "delayed_task": result.delayed_task_id,
        "delay_days": result.delay_days,
        "project_end_before": _optional_date(result.project_end_before),
        "project_end_after": _optional_date(result.project_end_after),
        "tasks": tasks_data,
        "absorbed": list(result.absorbed),
    }

    with path.open("w") as f:
        yaml.safe_dump(output, f, default_flow_style=False, sort_keys=False)


def _parse_date(value: Any, what: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValueError(f"Invalid date for {what}: {e}") from e


def read_reschedule_file(path: Path) -> RescheduleResult:  # noqa: PLR0912
    """Load a reschedule file written by write_reschedule_file.

    Raises:
        ValueError: If the file format is invalid or the version is unsupported
    """
    with path.open() as f:
        raw_data: Any = yaml.safe_load(f)

    if not isinstance(raw_data, dict):
        raise ValueError(f"Invalid reschedule file format: expected dict, got {type(raw_data)}")

    data = cast(dict[str, Any], raw_data)

    version = data.get("version")
    if version is None:
        raise ValueError("Reschedule file missing 'version' field")
    if not isinstance(version, int):
        raise ValueError(f"Reschedule file version must be int, got {type(version)}")
    if version != RESCHEDULE_FILE_VERSION:
        raise ValueError(
            f"Unsupported reschedule file version {version}, expected {RESCHEDULE_FILE_VERSION}"
        )

    delayed_task = data.get("delayed_task")
    if not delayed_task:
        raise ValueError("Reschedule file missing 'delayed_task' field")
    delay_days = data.get("delay_days", 0)
    if not isinstance(delay_days, int):
        raise ValueError(f"'delay_days' must be int, got {type(delay_days)}")

    raw_tasks = data.get("tasks") or {}
    if not isinstance(raw_tasks, dict):
        raise ValueError("Reschedule file 'tasks' field must be a dict")

    updated: dict[str, DateShift] = {}
    for task_id, task_data in cast(dict[str, Any], raw_tasks).items():
        if not isinstance(task_data, dict):
            raise ValueError(f"Reschedule data for '{task_id}' must be a dict")
        entry = cast(dict[str, Any], task_data)
        updated[str(task_id)] = DateShift(
            task_id=str(task_id),
            original_start=_parse_date(entry.get("original_start_date"), f"'{task_id}'"),
            original_end=_parse_date(entry.get("original_end_date"), f"'{task_id}'"),
            start=_parse_date(entry.get("start_date"), f"'{task_id}'"),
            end=_parse_date(entry.get("end_date"), f"'{task_id}'"),
        )

    raw_absorbed = data.get("absorbed") or []
    if not isinstance(raw_absorbed, list):
        raise ValueError("Reschedule file 'absorbed' field must be a list")

    end_before = data.get("project_end_before")
    end_after = data.get("project_end_after")

    return RescheduleResult(
        delayed_task_id=str(delayed_task),
        delay_days=delay_days,
        project_end_before=_parse_date(end_before, "project_end_before") if end_before else None,
        project_end_after=_parse_date(end_after, "project_end_after") if end_after else None,
        updated=updated,
        absorbed=[str(task_id) for task_id in cast(list[Any], raw_absorbed)],
    )
