"""
Trajectory data models.

A trajectory is an append-only journal of everything an agent did. Entries
are immutable once created; metadata is always derived from the entries.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from coro.domain import Message, ToolCall, ToolResult
from coro.llm.base import Usage

TRAJECTORY_FORMAT_VERSION = "1.0"


# ============================================================================
# Entry payloads
# ============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True)


class TaskStartEntry(_Payload):
    type: Literal["task_start"] = "task_start"
    task: str
    agent_config: dict[str, Any] = Field(default_factory=dict)


class LLMRequestEntry(_Payload):
    type: Literal["llm_request"] = "llm_request"
    messages: list[Message]
    model: str
    provider: str


class LLMResponseEntry(_Payload):
    type: Literal["llm_response"] = "llm_response"
    message: Message
    usage: Usage | None = None
    finish_reason: str | None = None


class ToolCallEntry(_Payload):
    type: Literal["tool_call"] = "tool_call"
    tool_call: ToolCall


class ToolResultEntry(_Payload):
    type: Literal["tool_result"] = "tool_result"
    tool_result: ToolResult


class StepCompleteEntry(_Payload):
    type: Literal["step_complete"] = "step_complete"
    step_summary: str
    success: bool


class ErrorEntry(_Payload):
    type: Literal["error"] = "error"
    error: str
    context: str | None = None


class TaskCompleteEntry(_Payload):
    type: Literal["task_complete"] = "task_complete"
    success: bool
    final_result: str
    total_steps: int
    duration_ms: int


EntryType = Annotated[
    Union[
        TaskStartEntry,
        LLMRequestEntry,
        LLMResponseEntry,
        ToolCallEntry,
        ToolResultEntry,
        StepCompleteEntry,
        ErrorEntry,
        TaskCompleteEntry,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# Entry
# ============================================================================


class TrajectoryEntry(BaseModel):
    """One immutable journal record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    step: int = 0
    entry_type: EntryType

    @classmethod
    def task_start(cls, task: str, agent_config: dict[str, Any]) -> "TrajectoryEntry":
        return cls(entry_type=TaskStartEntry(task=task, agent_config=agent_config))

    @classmethod
    def llm_request(
        cls, messages: list[Message], model: str, provider: str, step: int
    ) -> "TrajectoryEntry":
        return cls(
            step=step,
            entry_type=LLMRequestEntry(
                messages=[m.model_copy(deep=True) for m in messages],
                model=model,
                provider=provider,
            ),
        )

    @classmethod
    def llm_response(
        cls,
        message: Message,
        usage: Usage | None,
        finish_reason: str | None,
        step: int,
    ) -> "TrajectoryEntry":
        return cls(
            step=step,
            entry_type=LLMResponseEntry(
                message=message.model_copy(deep=True),
                usage=usage,
                finish_reason=finish_reason,
            ),
        )

    @classmethod
    def tool_call(cls, tool_call: ToolCall, step: int) -> "TrajectoryEntry":
        return cls(
            step=step, entry_type=ToolCallEntry(tool_call=tool_call.model_copy(deep=True))
        )

    @classmethod
    def tool_result(cls, tool_result: ToolResult, step: int) -> "TrajectoryEntry":
        return cls(
            step=step,
            entry_type=ToolResultEntry(tool_result=tool_result.model_copy(deep=True)),
        )

    @classmethod
    def step_complete(cls, step_summary: str, success: bool, step: int) -> "TrajectoryEntry":
        return cls(
            step=step,
            entry_type=StepCompleteEntry(step_summary=step_summary, success=success),
        )

    @classmethod
    def error(cls, error: str, context: str | None, step: int) -> "TrajectoryEntry":
        return cls(step=step, entry_type=ErrorEntry(error=error, context=context))

    @classmethod
    def task_complete(
        cls, success: bool, final_result: str, total_steps: int, duration_ms: int
    ) -> "TrajectoryEntry":
        return cls(
            step=total_steps,
            entry_type=TaskCompleteEntry(
                success=success,
                final_result=final_result,
                total_steps=total_steps,
                duration_ms=duration_ms,
            ),
        )


# ============================================================================
# Document
# ============================================================================


class TrajectoryMetadata(BaseModel):
    id: str
    started_at: datetime
    completed_at: datetime | None = None
    version: str = TRAJECTORY_FORMAT_VERSION
    agent_type: str
    task: str | None = None
    success: bool | None = None
    total_steps: int = 0
    duration_ms: int | None = None


class Trajectory(BaseModel):
    metadata: TrajectoryMetadata
    entries: list[TrajectoryEntry]


__all__ = [
    "EntryType",
    "ErrorEntry",
    "LLMRequestEntry",
    "LLMResponseEntry",
    "StepCompleteEntry",
    "TRAJECTORY_FORMAT_VERSION",
    "TaskCompleteEntry",
    "TaskStartEntry",
    "ToolCallEntry",
    "ToolResultEntry",
    "Trajectory",
    "TrajectoryEntry",
    "TrajectoryMetadata",
]
