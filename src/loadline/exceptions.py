"""Custom exceptions for Loadline."""

from __future__ import annotations

from datetime import date


class LoadlineError(Exception):
    """Base exception for all Loadline errors."""

    pass


class ValidationError(LoadlineError):
    """Raised when validation fails."""

    pass


class InvalidTaskSpanError(ValidationError):
    """Raised when a task's end date falls before its start date."""

    def __init__(self, task_id: str, start: date, end: date) -> None:
        self.task_id = task_id
        self.start = start
        self.end = end
        super().__init__(
            f"Task {task_id} ends before it starts ({end.isoformat()} < {start.isoformat()})"
        )


class CyclicDependencyError(ValidationError):
    """Raised when the task dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join([*cycle, cycle[0]])}")


class MissingReferenceError(ValidationError):
    """Raised when a referenced ID does not exist."""

    def __init__(self, message: str, task_id: str | None = None) -> None:
        self.task_id = task_id
        super().__init__(message)


class ParseError(LoadlineError):
    """Raised when YAML parsing fails."""

    pass
