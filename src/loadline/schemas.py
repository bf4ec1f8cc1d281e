"""Pydantic schemas for snapshot YAML validation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import Priority, TaskStatus


def _enum_token(v: Any) -> Any:
    """Normalize 'in progress' / 'in-progress' / 'In_Progress' to IN_PROGRESS."""
    if isinstance(v, str):
        return v.strip().upper().replace("-", "_").replace(" ", "_")
    return v


class TaskSchema(BaseModel):
    """Schema for one task entry."""

    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    assigned_id: str | None = None  # Legacy single assignee, merged into assigned_users
    assigned_users: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    project_id: str | None = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def normalize_enum(cls, v: Any) -> Any:
        """Accept enum names in any case."""
        return _enum_token(v)

    @field_validator("assigned_users", "dependencies", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        """Timestamps are reduced to their calendar day."""
        if isinstance(v, datetime):
            return v.date()
        return v


class UserSchema(BaseModel):
    """Schema for one user entry."""

    name: str
    max_hours_per_day: float | None = None
    department: str | None = None


class ProjectSchema(BaseModel):
    """Schema for the optional project section."""

    id: str
    name: str
    status: TaskStatus = TaskStatus.IN_PROGRESS
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        """Accept status names in any case."""
        return _enum_token(v)


class WindowSchema(BaseModel):
    """Schema for the workload window."""

    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self) -> WindowSchema:
        """Ensure the window does not end before it starts."""
        if self.end < self.start:
            raise ValueError(f"window end {self.end} is before window start {self.start}")
        return self


class SnapshotSchema(BaseModel):
    """Schema for the entire snapshot YAML data."""

    reference_now: datetime | None = None
    window: WindowSchema | None = None
    project: ProjectSchema | None = None
    users: dict[str, UserSchema] = Field(default_factory=dict)
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)

    @field_validator("reference_now", mode="before")
    @classmethod
    def date_to_datetime(cls, v: Any) -> Any:
        """A bare date means the start of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        return v
