"""
Tests for ToolExecutor, ToolRegistry and the built-in tools
"""

import pytest

from coro.domain import ToolCall
from coro.exceptions import ToolError, ToolExecutionError, ToolNotFoundError
from coro.tools import ToolExecutor, ToolRegistry, get_tool_registry
from coro.tools.builtin import SequentialThinkingTool, TaskDoneTool
from coro.tools.builtin.sequential_thinking import MAX_BRANCHES, MAX_THOUGHT_HISTORY

from fakes import EchoTool, FailingTool, GuardedTool


def _call(name: str, parameters=None, call_id: str = "call_1") -> ToolCall:
    return ToolCall(id=call_id, name=name, parameters=parameters or {})


# ============================================================================
# ToolExecutor
# ============================================================================


@pytest.mark.asyncio
async def test_executor_dispatches_by_name():
    executor = ToolExecutor([EchoTool()])

    result = await executor.execute(_call("echo", {"text": "hi"}))

    assert result.success
    assert result.tool_call_id == "call_1"
    assert result.content == "echo: hi"


@pytest.mark.asyncio
async def test_executor_unknown_tool():
    executor = ToolExecutor([EchoTool()])

    with pytest.raises(ToolNotFoundError) as exc_info:
        await executor.execute(_call("missing"))
    assert exc_info.value.name == "missing"


@pytest.mark.asyncio
async def test_executor_wraps_tool_exceptions():
    executor = ToolExecutor([FailingTool()])

    with pytest.raises(ToolExecutionError) as exc_info:
        await executor.execute(_call("broken"))

    assert exc_info.value.name == "broken"
    assert exc_info.value.message == "disk on fire"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_executor_passes_tool_errors_through():
    class StrictTool(EchoTool):
        async def execute(self, call):
            raise ToolExecutionError(self.name, "bad arguments")

    executor = ToolExecutor([StrictTool("strict")])

    with pytest.raises(ToolError, match="bad arguments"):
        await executor.execute(_call("strict"))


def test_executor_capability_flags():
    executor = ToolExecutor([GuardedTool(), TaskDoneTool(), SequentialThinkingTool(), EchoTool()])

    assert executor.requires_confirmation("rm")
    assert not executor.requires_confirmation("echo")
    assert executor.is_completion_tool("task_done")
    assert not executor.is_completion_tool("echo")
    assert executor.is_thought_tool("sequentialthinking")
    assert not executor.is_thought_tool("unknown")


def test_executor_definitions_and_names():
    executor = ToolExecutor([EchoTool(), TaskDoneTool()])

    assert executor.list_tools() == ["echo", "task_done"]
    definitions = executor.get_tool_definitions()
    assert definitions[0].name == "echo"
    assert definitions[0].description == "Echo the parameters back"
    assert definitions[0].parameters["properties"] == {"text": {"type": "string"}}


def test_executor_later_tool_overrides():
    first, second = EchoTool(), EchoTool()
    executor = ToolExecutor([first])

    executor.add_tool(second)

    assert executor.get_tool("echo") is second


# ============================================================================
# ToolRegistry
# ============================================================================


def test_registry_builds_executor_skipping_unknown_names():
    registry = ToolRegistry()

    executor = registry.build_executor(["bash", "sequentialthinking", "task_done"])

    assert executor.list_tools() == ["sequentialthinking", "task_done"]
    assert isinstance(executor.get_tool("task_done"), TaskDoneTool)


def test_registry_custom_class():
    registry = ToolRegistry()
    registry.register_class("echo", EchoTool)

    assert registry.is_registered("echo")
    assert registry.list_available() == ["echo", "sequentialthinking", "task_done"]
    assert isinstance(registry.create("echo"), EchoTool)

    assert registry.unregister("echo")
    assert not registry.is_registered("echo")
    assert not registry.unregister("echo")


def test_registry_by_import_path():
    registry = ToolRegistry()
    registry.register("done", "coro.tools.builtin.task_done", "TaskDoneTool")

    assert registry.get_tool_class("done") is TaskDoneTool


def test_registry_unknown_tool():
    with pytest.raises(KeyError):
        ToolRegistry().create("nope")


def test_global_registry_is_shared():
    assert get_tool_registry() is get_tool_registry()


# ============================================================================
# Built-in tools
# ============================================================================


@pytest.mark.asyncio
async def test_task_done_reports_summary():
    tool = TaskDoneTool()

    result = await tool.execute(_call("task_done", {"summary": "Fixed the import"}))
    default = await tool.execute(_call("task_done"))

    assert TaskDoneTool.completes_task
    assert result.content == "Fixed the import"
    assert result.data == {"summary": "Fixed the import"}
    assert default.content == "Task completed"


@pytest.mark.asyncio
async def test_sequential_thinking_records_thought():
    tool = SequentialThinkingTool()

    result = await tool.execute(
        _call(
            "sequentialthinking",
            {
                "thought": "Check the stack trace first",
                "thought_number": 1,
                "total_thoughts": 3,
                "next_thought_needed": True,
            },
        )
    )

    assert result.success
    assert result.content == (
        "Thought: Check the stack trace first\n\n"
        "Thought 1/3 recorded. Next thought needed: true"
    )
    assert result.data["thought"] == "Check the stack trace first"
    assert result.data["thought_history_length"] == 1


@pytest.mark.asyncio
async def test_sequential_thinking_adjusts_total_and_tracks_branches():
    tool = SequentialThinkingTool()

    result = await tool.execute(
        _call(
            "sequentialthinking",
            {
                "thought": "Alternative: patch the caller",
                "thought_number": 5,
                "total_thoughts": 3,
                "next_thought_needed": False,
                "branch_from_thought": 2,
                "branch_id": "caller",
            },
        )
    )

    assert result.data["total_thoughts"] == 5
    assert result.data["branches"] == ["caller"]
    assert result.content.endswith("Thought 5/5 recorded. Next thought needed: false")


@pytest.mark.asyncio
async def test_sequential_thinking_history_is_bounded():
    tool = SequentialThinkingTool()

    for i in range(MAX_THOUGHT_HISTORY + MAX_BRANCHES + 5):
        result = await tool.execute(
            _call(
                "sequentialthinking",
                {
                    "thought": f"Idea {i}",
                    "thought_number": i + 1,
                    "total_thoughts": 1,
                    "next_thought_needed": True,
                    "branch_from_thought": 1,
                    "branch_id": f"b{i}",
                },
            )
        )

    assert len(tool.thought_history) == MAX_THOUGHT_HISTORY
    assert tool.thought_history[0].thought == f"Idea {MAX_BRANCHES + 5}"
    assert len(tool.branches) == MAX_BRANCHES
    assert "b0" not in tool.branches
    assert result.data["thought_history_length"] == MAX_THOUGHT_HISTORY


@pytest.mark.asyncio
async def test_sequential_thinking_rejects_invalid_input():
    tool = SequentialThinkingTool()

    with pytest.raises(ToolExecutionError):
        await tool.execute(_call("sequentialthinking", {"thought": "", "thought_number": 0}))
