"""
Agent module - execution engine and its collaborators.

This module contains:
- AgentCore: The step loop
- AgentBuilder: Fluent construction from a model configuration
- ConversationManager: Token budget enforcement
- PersistedAgentContext: Conversation snapshots
"""

from .builder import AgentBuilder
from .core import AGENT_TYPE, AgentCore
from .prompt import DEFAULT_SYSTEM_PROMPT, build_system_prompt
from .state import SNAPSHOT_VERSION, PersistedAgentContext
from .tokens import (
    FALLBACK_MAX_MESSAGES,
    CompressionLevel,
    CompressionSummary,
    ConversationManager,
    ConversationTokenStats,
    MaybeCompressedResult,
    TokenCalculator,
    fallback_trim,
)

__all__ = [
    "AGENT_TYPE",
    "AgentBuilder",
    "AgentCore",
    "CompressionLevel",
    "CompressionSummary",
    "ConversationManager",
    "ConversationTokenStats",
    "DEFAULT_SYSTEM_PROMPT",
    "FALLBACK_MAX_MESSAGES",
    "MaybeCompressedResult",
    "PersistedAgentContext",
    "SNAPSHOT_VERSION",
    "TokenCalculator",
    "build_system_prompt",
    "fallback_trim",
]
