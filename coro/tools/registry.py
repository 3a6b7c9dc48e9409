"""
Tool Registry - name-based tool discovery.

Provides:
- Built-in tool registration and discovery
- Custom tool registration (by import path or by class)
- Building a ToolExecutor from configured tool names
"""

from __future__ import annotations

import importlib
from typing import Any

from coro.tools.base import BaseTool
from coro.tools.executor import ToolExecutor
from coro.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for all available tools.

    Concrete shell/edit/search tools live outside coro; callers register
    them here under the names the agent configuration refers to.
    """

    # Built-in tool mappings: name -> (module_path, class_name)
    BUILTIN_TOOLS: dict[str, tuple[str, str]] = {
        "task_done": (
            "coro.tools.builtin.task_done",
            "TaskDoneTool",
        ),
        "sequentialthinking": (
            "coro.tools.builtin.sequential_thinking",
            "SequentialThinkingTool",
        ),
    }

    def __init__(self) -> None:
        self._custom_tools: dict[str, tuple[str, str]] = {}
        self._class_cache: dict[str, type] = {}

    def register(self, name: str, module_path: str, class_name: str) -> None:
        """Register a custom tool by import path."""
        if name in self.BUILTIN_TOOLS:
            logger.warning("overriding_builtin_tool", tool_name=name)
        self._custom_tools[name] = (module_path, class_name)
        self._class_cache.pop(name, None)
        logger.info("registered_custom_tool", tool_name=name, target=f"{module_path}.{class_name}")

    def register_class(self, name: str, tool_class: type[BaseTool]) -> None:
        """Register a custom tool class directly."""
        self.register(name, tool_class.__module__, tool_class.__qualname__)
        self._class_cache[name] = tool_class

    def unregister(self, name: str) -> bool:
        if name in self._custom_tools:
            del self._custom_tools[name]
            self._class_cache.pop(name, None)
            logger.info("unregistered_tool", tool_name=name)
            return True
        return False

    def get_tool_class(self, name: str) -> type:
        if name in self._class_cache:
            return self._class_cache[name]

        if name in self._custom_tools:
            module_path, class_name = self._custom_tools[name]
        elif name in self.BUILTIN_TOOLS:
            module_path, class_name = self.BUILTIN_TOOLS[name]
        else:
            raise KeyError(f"Tool not found: {name}. Available: {self.list_available()}")

        module = importlib.import_module(module_path)
        tool_class = getattr(module, class_name)
        self._class_cache[name] = tool_class
        return tool_class

    def create(self, name: str, **kwargs: Any) -> BaseTool:
        """Create a tool instance."""
        return self.get_tool_class(name)(**kwargs)

    def is_registered(self, name: str) -> bool:
        return name in self._custom_tools or name in self.BUILTIN_TOOLS

    def list_available(self) -> list[str]:
        return sorted(set(self.BUILTIN_TOOLS.keys()) | set(self._custom_tools.keys()))

    def build_executor(self, names: list[str]) -> ToolExecutor:
        """
        Build an executor holding the named tools.

        Names with no registration are skipped with a warning, so a default
        tool list can mention tools the host has not provided.
        """
        tools = []
        for name in names:
            if not self.is_registered(name):
                logger.warning("tool_not_registered", tool_name=name)
                continue
            tools.append(self.create(name))
        return ToolExecutor(tools)


# Global singleton instance
_registry: ToolRegistry | None = None


def get_tool_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
    return _registry


__all__ = ["ToolRegistry", "get_tool_registry"]
