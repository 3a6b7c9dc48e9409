"""
Tool executor - the tool capability consumed by the agent engine.
"""

import time

from coro.domain import ToolCall, ToolDefinition, ToolResult
from coro.exceptions import ToolError, ToolExecutionError, ToolNotFoundError
from coro.tools.base import BaseTool
from coro.utils.logging import get_logger

logger = get_logger(__name__)


class ToolExecutor:
    """Dispatches tool calls to a fixed set of tools by name."""

    def __init__(self, tools: list[BaseTool] | None = None):
        self.tools_map: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.add_tool(tool)

    def add_tool(self, tool: BaseTool) -> None:
        if tool.name in self.tools_map:
            logger.warning("tool_overridden", tool_name=tool.name)
        self.tools_map[tool.name] = tool

    def get_tool(self, name: str) -> BaseTool | None:
        return self.tools_map.get(name)

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a single tool call.

        Raises:
            ToolNotFoundError: No tool with that name
            ToolExecutionError: The tool failed
        """
        tool = self.tools_map.get(call.name)
        if tool is None:
            raise ToolNotFoundError(call.name)

        start_time = time.time()
        logger.debug("executing_tool", tool_name=call.name, tool_call_id=call.id)
        try:
            result = await tool.execute(call)
        except ToolError:
            raise
        except Exception as e:
            logger.error(
                "tool_execution_exception",
                tool_name=call.name,
                error=str(e),
                exc_info=True,
            )
            raise ToolExecutionError(call.name, str(e)) from e

        logger.debug(
            "tool_execution_completed",
            tool_name=call.name,
            success=result.success,
            duration=time.time() - start_time,
        )
        return result

    def requires_confirmation(self, name: str) -> bool:
        tool = self.tools_map.get(name)
        return tool is not None and tool.requires_confirmation

    def is_completion_tool(self, name: str) -> bool:
        tool = self.tools_map.get(name)
        return tool is not None and tool.completes_task

    def is_thought_tool(self, name: str) -> bool:
        tool = self.tools_map.get(name)
        return tool is not None and tool.emits_thoughts

    def get_tool_definitions(self) -> list[ToolDefinition]:
        return [tool.get_definition() for tool in self.tools_map.values()]

    def list_tools(self) -> list[str]:
        return list(self.tools_map.keys())


__all__ = ["ToolExecutor"]
