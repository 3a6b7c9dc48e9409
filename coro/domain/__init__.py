"""
Domain module - Pure domain models with no external dependencies.

This module contains messages, execution models, tool models and events.
"""

# Messages
from .messages import (
    ContentBlock,
    ImageBlock,
    Message,
    MessageRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    pending_tool_use_ids,
)

# Models
from .models import AgentExecution, AgentExecutionContext, ExecutionStatus, TokenUsage

# Tools
from .tools import ToolCall, ToolDefinition, ToolResult

# Events
from .events import (
    AgentEvent,
    AgentEventType,
    ConfirmationDecision,
    ConfirmationKind,
    ConfirmationRequest,
    MessageLevel,
    StepInfo,
    ToolExecutionInfo,
    ToolExecutionStatus,
)

__all__ = [
    # Messages
    "ContentBlock",
    "ImageBlock",
    "Message",
    "MessageRole",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    "pending_tool_use_ids",
    # Models
    "AgentExecution",
    "AgentExecutionContext",
    "ExecutionStatus",
    "TokenUsage",
    # Tools
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    # Events
    "AgentEvent",
    "AgentEventType",
    "ConfirmationDecision",
    "ConfirmationKind",
    "ConfirmationRequest",
    "MessageLevel",
    "StepInfo",
    "ToolExecutionInfo",
    "ToolExecutionStatus",
]
