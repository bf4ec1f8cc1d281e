"""YAML parser for Loadline snapshots."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError
from .models import Project, Snapshot, Task, User, normalize_assignees
from .schemas import SnapshotSchema


class SnapshotParser:
    """Parser for snapshot YAML files.

    Tasks and users are keyed by id in the file. The legacy `assigned_id`
    field is merged with `assigned_users` here, so the rest of the engine
    only sees one normalized assignee set.
    """

    def parse_file(self, file_path: Path | str) -> Snapshot:
        """Parse a YAML file into a Snapshot."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> Snapshot:
        """Parse already-loaded YAML data into a Snapshot."""
        try:
            schema = SnapshotSchema(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid YAML structure: {e}") from e

        users = [
            User(
                id=user_id,
                name=user_data.name,
                max_hours_per_day=user_data.max_hours_per_day,
                department=user_data.department,
            )
            for user_id, user_data in schema.users.items()
        ]

        tasks = [
            Task(
                id=task_id,
                title=task_data.title,
                status=task_data.status,
                priority=task_data.priority,
                start_date=task_data.start_date,
                end_date=task_data.end_date,
                estimated_hours=task_data.estimated_hours,
                actual_hours=task_data.actual_hours,
                assignees=normalize_assignees(task_data.assigned_id, task_data.assigned_users),
                dependencies=tuple(task_data.dependencies),
                project_id=task_data.project_id,
            )
            for task_id, task_data in schema.tasks.items()
        ]

        project = None
        if schema.project is not None:
            project = Project(
                id=schema.project.id,
                name=schema.project.name,
                status=schema.project.status,
                start_date=schema.project.start_date,
                end_date=schema.project.end_date,
            )

        return Snapshot(
            tasks=tasks,
            users=users,
            project=project,
            reference_now=schema.reference_now,
            window_start=schema.window.start if schema.window else None,
            window_end=schema.window.end if schema.window else None,
        )
