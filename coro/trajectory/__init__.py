"""
Trajectory module - execution journal.
"""

from .models import (
    ErrorEntry,
    LLMRequestEntry,
    LLMResponseEntry,
    StepCompleteEntry,
    TaskCompleteEntry,
    TaskStartEntry,
    ToolCallEntry,
    ToolResultEntry,
    Trajectory,
    TrajectoryEntry,
    TrajectoryMetadata,
)
from .recorder import TrajectoryRecorder

__all__ = [
    "ErrorEntry",
    "LLMRequestEntry",
    "LLMResponseEntry",
    "StepCompleteEntry",
    "TaskCompleteEntry",
    "TaskStartEntry",
    "ToolCallEntry",
    "ToolResultEntry",
    "Trajectory",
    "TrajectoryEntry",
    "TrajectoryMetadata",
    "TrajectoryRecorder",
]
