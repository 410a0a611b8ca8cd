"""Data models for Waypoint."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ReleaseType(enum.Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    REBUILD = "rebuild"


class PipelineState(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StepStatus(enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepResult:
    name: str
    status: StepStatus
    duration: float = 0.0
    detail: str = ""
