"""Loadline - workload, deadline and critical path analysis for task snapshots.

Main entry points:
- analyze / AnalysisService: run every analysis over one Snapshot
- load_inputs: read a snapshot YAML file and its loadline_config.yaml
- reschedule: propagate a delay through the dependency graph

Configuration:
- EngineConfig: defaulting policy, risk thresholds and summary horizons
"""

# Configuration
from .config import DefaultsPolicy, EngineConfig, RiskThresholds, load_config

# High-level service
from .engine import AnalysisResult, AnalysisService, analyze

# Errors
from .exceptions import (
    CyclicDependencyError,
    InvalidTaskSpanError,
    LoadlineError,
    MissingReferenceError,
    ParseError,
    ValidationError,
)

# Input loading
from .loader import load_inputs, load_snapshot

# Core dataclasses
from .models import Priority, Project, Snapshot, Task, TaskStatus, User

# Delay propagation
from .reschedule import RescheduleResult, reschedule

__version__ = "0.1.0"

__all__ = [
    # Core dataclasses
    "Task",
    "User",
    "Project",
    "Snapshot",
    "TaskStatus",
    "Priority",
    # Configuration
    "EngineConfig",
    "DefaultsPolicy",
    "RiskThresholds",
    "load_config",
    # High-level service
    "AnalysisService",
    "AnalysisResult",
    "analyze",
    # Input loading
    "load_inputs",
    "load_snapshot",
    # Delay propagation
    "reschedule",
    "RescheduleResult",
    # Errors
    "LoadlineError",
    "ValidationError",
    "InvalidTaskSpanError",
    "CyclicDependencyError",
    "MissingReferenceError",
    "ParseError",
]
