"""
Event protocol for agent execution.

Every observable happening of a task invocation is delivered to the output
capability as an AgentEvent. The engine never depends on event delivery.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .models import AgentExecutionContext, TokenUsage
from .tools import ToolCall, ToolResult


class AgentEventType(str, Enum):
    """Event types emitted by the agent engine"""

    # Run-level events
    EXECUTION_STARTED = "execution_started"
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_INTERRUPTED = "execution_interrupted"

    # Step-level events
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"

    # Tool events
    TOOL_EXECUTION_STARTED = "tool_execution_started"
    TOOL_EXECUTION_UPDATED = "tool_execution_updated"
    TOOL_EXECUTION_COMPLETED = "tool_execution_completed"

    # Progress
    AGENT_THINKING = "agent_thinking"
    TOKEN_USAGE_UPDATED = "token_usage_updated"
    STATUS_UPDATE = "status_update"
    MESSAGE = "message"

    # Compression
    COMPRESSION_STARTED = "compression_started"
    COMPRESSION_COMPLETED = "compression_completed"
    COMPRESSION_FAILED = "compression_failed"


class MessageLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    NORMAL = "normal"
    WARNING = "warning"
    ERROR = "error"


class ToolExecutionStatus(str, Enum):
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


class StepInfo(BaseModel):
    step_number: int
    task: str


class ToolExecutionInfo(BaseModel):
    """Snapshot of a tool execution for display."""

    execution_id: str
    tool_name: str
    parameters: Any = None
    status: ToolExecutionStatus
    result_content: str | None = None
    result_data: dict[str, Any] | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        tool_call: ToolCall,
        status: ToolExecutionStatus,
        result: ToolResult | None = None,
    ) -> "ToolExecutionInfo":
        return cls(
            execution_id=tool_call.id,
            tool_name=tool_call.name,
            parameters=tool_call.parameters,
            status=status,
            result_content=result.content if result else None,
            result_data=result.data if result else None,
        )


# ============================================================================
# Confirmation
# ============================================================================


class ConfirmationKind(str, Enum):
    TOOL_EXECUTION = "tool_execution"


class ConfirmationRequest(BaseModel):
    id: str
    kind: ConfirmationKind = ConfirmationKind.TOOL_EXECUTION
    title: str
    message: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class ConfirmationDecision(BaseModel):
    approved: bool
    note: str | None = None


# ============================================================================
# Event
# ============================================================================


class AgentEvent(BaseModel):
    """
    Unified agent event.

    Which optional fields are populated depends on the type:
    - EXECUTION_*: context (+ success/summary or reason in data)
    - STEP_*: step_info
    - TOOL_EXECUTION_*: tool_info
    - TOKEN_USAGE_UPDATED: token_usage
    - everything else: data
    """

    type: AgentEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    context: AgentExecutionContext | None = None
    step_info: StepInfo | None = None
    tool_info: ToolExecutionInfo | None = None
    token_usage: TokenUsage | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in (
            AgentEventType.EXECUTION_COMPLETED,
            AgentEventType.EXECUTION_INTERRUPTED,
        )


# ============================================================================
# Event Factory Functions
# ============================================================================


def create_execution_started_event(context: AgentExecutionContext) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.EXECUTION_STARTED, context=context.model_copy(deep=True)
    )


def create_execution_completed_event(
    context: AgentExecutionContext, success: bool, summary: str
) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.EXECUTION_COMPLETED,
        context=context.model_copy(deep=True),
        data={"success": success, "summary": summary},
    )


def create_execution_interrupted_event(
    context: AgentExecutionContext, reason: str
) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.EXECUTION_INTERRUPTED,
        context=context.model_copy(deep=True),
        data={"reason": reason},
    )


def create_step_started_event(step_number: int, task: str) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.STEP_STARTED,
        step_info=StepInfo(step_number=step_number, task=task),
    )


def create_step_completed_event(step_number: int, task: str) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.STEP_COMPLETED,
        step_info=StepInfo(step_number=step_number, task=task),
    )


def create_tool_event(event_type: AgentEventType, tool_info: ToolExecutionInfo) -> AgentEvent:
    return AgentEvent(type=event_type, tool_info=tool_info)


def create_thinking_event(step_number: int, thinking: str) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.AGENT_THINKING,
        data={"step_number": step_number, "thinking": thinking},
    )


def create_token_usage_event(token_usage: TokenUsage) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.TOKEN_USAGE_UPDATED, token_usage=token_usage.model_copy()
    )


def create_status_event(status: str, metadata: dict[str, Any] | None = None) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.STATUS_UPDATE,
        data={"status": status, "metadata": metadata or {}},
    )


def create_message_event(
    level: MessageLevel, content: str, metadata: dict[str, Any] | None = None
) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.MESSAGE,
        data={"level": level.value, "content": content, "metadata": metadata or {}},
    )


def create_compression_started_event(
    level: str, current_tokens: int, target_tokens: int, reason: str
) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.COMPRESSION_STARTED,
        data={
            "level": level,
            "current_tokens": current_tokens,
            "target_tokens": target_tokens,
            "reason": reason,
        },
    )


def create_compression_completed_event(
    summary: str, tokens_saved: int, messages_before: int, messages_after: int
) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.COMPRESSION_COMPLETED,
        data={
            "summary": summary,
            "tokens_saved": tokens_saved,
            "messages_before": messages_before,
            "messages_after": messages_after,
        },
    )


def create_compression_failed_event(error: str, fallback_action: str) -> AgentEvent:
    return AgentEvent(
        type=AgentEventType.COMPRESSION_FAILED,
        data={"error": error, "fallback_action": fallback_action},
    )
