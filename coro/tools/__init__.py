"""
Tools module - tool capability, registry and built-in tools.

This module contains:
- BaseTool: Tool interface with capability flags
- ToolExecutor: Dispatches tool calls by name
- ToolRegistry: Builds executors from configured tool names
"""

from .base import BaseTool
from .executor import ToolExecutor
from .registry import ToolRegistry, get_tool_registry

__all__ = [
    "BaseTool",
    "ToolExecutor",
    "ToolRegistry",
    "get_tool_registry",
]
