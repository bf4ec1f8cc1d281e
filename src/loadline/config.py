"""Engine configuration: defaulting policy and risk thresholds.

All implicit defaults (capacity, span, effort) and classification thresholds
live here so every component reads the same values. The configuration can be
loaded from a YAML file (loadline_config.yaml) or built in code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

DEFAULT_CONFIG_FILENAME = "loadline_config.yaml"


class DefaultsPolicy(BaseModel):
    """Soft defaults applied when task or user data is missing."""

    capacity_hours: float = Field(default=8.0, gt=0)  # Per-user hours per day
    span_days: int = Field(default=7, ge=0)  # Missing end date = start + span_days
    daily_effort_hours: float = Field(default=4.0, ge=0)  # Day-level distribution
    summary_effort_hours: float = Field(default=8.0, ge=0)  # Summaries and durations
    hours_per_day: float = Field(default=8.0, gt=0)  # Effort hours per duration day


class RiskThresholds(BaseModel):
    """Utilization thresholds (percent) for day classification."""

    overload_percent: float = 100.0  # A user above this is overloaded
    high_risk_max_percent: float = 120.0  # Any user above this makes the day high-risk
    high_risk_overloaded_users: int = 1  # More overloaded users than this is high-risk
    bottleneck_average_percent: float = 80.0  # Average above this is a bottleneck

    @model_validator(mode="after")
    def validate_ordering(self) -> RiskThresholds:
        """Ensure the high-risk threshold is not below the overload threshold."""
        if self.high_risk_max_percent < self.overload_percent:
            raise ValueError("high_risk_max_percent must be >= overload_percent")
        return self


class SummaryConfig(BaseModel):
    """Horizons for per-user workload series."""

    series_days: int = Field(default=30, ge=1)
    series_weeks: int = Field(default=12, ge=1)
    series_months: int = Field(default=12, ge=1)


class CriticalPathConfig(BaseModel):
    """Configuration for the critical path analyzer."""

    include_completed: bool = True  # Completed tasks still occupy their place in the chain


class EngineConfig(BaseModel):
    """Complete engine configuration."""

    defaults: DefaultsPolicy = DefaultsPolicy()
    thresholds: RiskThresholds = RiskThresholds()
    summary: SummaryConfig = SummaryConfig()
    critical_path: CriticalPathConfig = CriticalPathConfig()


def load_config(config_path: Path | str) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Args:
        config_path: Path to loadline_config.yaml

    Returns:
        Validated EngineConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if data is None:
        return EngineConfig()

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the root level")

    unknown = set(data) - set(EngineConfig.model_fields)
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    return EngineConfig.model_validate(data)
