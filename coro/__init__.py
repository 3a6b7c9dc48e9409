"""
Coro - execution engine for tool-using coding agents

Top-level exports for easy access to core functionality.
"""

# Agent
from coro.agent import (
    AgentBuilder,
    AgentCore,
    ConversationManager,
    PersistedAgentContext,
)

# Domain models
from coro.domain import (
    AgentEvent,
    AgentEventType,
    AgentExecution,
    AgentExecutionContext,
    ExecutionStatus,
    Message,
    MessageRole,
    ToolCall,
    ToolResult,
)

# Capabilities
from coro.llm import LLMClient
from coro.output import AgentOutput, LoggingOutput, NullOutput, WireOutput
from coro.runtime import AbortController
from coro.tools import BaseTool, ToolExecutor, get_tool_registry
from coro.trajectory import Trajectory, TrajectoryRecorder

# Config
from coro.config import AgentConfig, ResolvedLLMConfig, settings

__version__ = "0.1.0"

__all__ = [
    # Agent
    "AgentBuilder",
    "AgentCore",
    "ConversationManager",
    "PersistedAgentContext",
    # Domain
    "AgentEvent",
    "AgentEventType",
    "AgentExecution",
    "AgentExecutionContext",
    "ExecutionStatus",
    "Message",
    "MessageRole",
    "ToolCall",
    "ToolResult",
    # Capabilities
    "LLMClient",
    "AgentOutput",
    "LoggingOutput",
    "NullOutput",
    "WireOutput",
    "AbortController",
    "BaseTool",
    "ToolExecutor",
    "get_tool_registry",
    "Trajectory",
    "TrajectoryRecorder",
    # Config
    "AgentConfig",
    "ResolvedLLMConfig",
    "settings",
]
