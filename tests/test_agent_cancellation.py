"""
Tests for cooperative cancellation of agent tasks
"""

import asyncio

import pytest

from coro.domain import AgentEventType, ExecutionStatus, MessageRole
from coro.runtime import AbortController
from coro.tools.builtin import TaskDoneTool

from fakes import (
    BlockingLLM,
    RecordingOutput,
    ScriptedLLM,
    SlowTool,
    dangling_tool_use_ids,
    make_agent,
    tool_reply,
)

PROJECT = "/tmp/project"


async def _settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_cancel_before_first_step():
    """A pre-cancelled controller interrupts before any step starts."""
    controller, _ = AbortController.new()
    controller.cancel()
    output = RecordingOutput()
    llm = ScriptedLLM(tool_reply(("d1", "task_done", {})))
    agent = make_agent(llm, output=output, abort_controller=controller)

    result = await agent.execute_task_with_context("never runs", PROJECT)

    assert result.status == ExecutionStatus.INTERRUPTED
    assert result.interrupted
    assert result.final_result == "Execution interrupted"
    assert result.steps_executed == 0
    assert agent.execution_context.current_step == 0
    assert llm.requests == []

    assert output.types[-1] == AgentEventType.EXECUTION_INTERRUPTED
    assert output.events[-1].data == {"reason": "Execution interrupted by user"}
    assert AgentEventType.EXECUTION_COMPLETED not in output.types
    assert len(output.terminal_events()) == 1


@pytest.mark.asyncio
async def test_cancel_during_model_call():
    output = RecordingOutput()
    llm = BlockingLLM(tool_reply(("d1", "task_done", {})))
    agent = make_agent(llm, output=output)

    task = asyncio.create_task(agent.execute_task_with_context("slow model", PROJECT))
    await llm.entered.wait()
    agent.cancel()
    result = await task

    assert result.interrupted
    assert result.steps_executed == 1
    assert [m.role for m in agent.conversation_history] == [MessageRole.SYSTEM, MessageRole.USER]
    assert len(output.terminal_events()) == 1
    assert output.terminal_events()[0].type == AgentEventType.EXECUTION_INTERRUPTED


@pytest.mark.asyncio
async def test_cancel_during_tool_lets_tool_finish_in_background():
    slow = SlowTool()
    llm = ScriptedLLM(tool_reply(("s1", "slow", {})))
    agent = make_agent(llm, tools=[slow, TaskDoneTool()])

    task = asyncio.create_task(agent.execute_task_with_context("run slow tool", PROJECT))
    await slow.started.wait()
    agent.cancel()
    result = await task

    assert result.interrupted
    assert not slow.finished
    assert dangling_tool_use_ids(agent.conversation_history) == ["s1"]

    slow.release.set()
    await _settle()
    assert slow.finished
    # The late result is not written into the conversation
    assert dangling_tool_use_ids(agent.conversation_history) == ["s1"]


@pytest.mark.asyncio
async def test_continue_after_interruption_with_new_controller():
    slow = SlowTool()
    slow.release.set()
    llm = ScriptedLLM(tool_reply(("s1", "slow", {})), tool_reply(("d1", "task_done", {})))
    controller, _ = AbortController.new()
    agent = make_agent(llm, tools=[slow, TaskDoneTool()], abort_controller=controller)

    controller.cancel()
    interrupted = await agent.execute_task_with_context("first", PROJECT)
    assert interrupted.interrupted

    # A cancelled controller stays cancelled
    again = await agent.execute_task_with_context("first again", PROJECT)
    assert again.interrupted

    agent.set_abort_controller(AbortController())
    result = await agent.execute_task_with_context("second", PROJECT)

    assert result.success
    assert result.steps_executed == 2
    assert slow.finished
    assert dangling_tool_use_ids(agent.conversation_history) == []


@pytest.mark.asyncio
async def test_interrupted_tool_use_repaired_on_next_task():
    slow = SlowTool()
    llm = ScriptedLLM(tool_reply(("s1", "slow", {})), tool_reply(("d1", "task_done", {})))
    agent = make_agent(llm, tools=[slow, TaskDoneTool()])

    task = asyncio.create_task(agent.execute_task_with_context("first", PROJECT))
    await slow.started.wait()
    agent.cancel()
    await task
    slow.release.set()
    await _settle()

    agent.set_abort_controller(AbortController())
    result = await agent.execute_task_with_context("second", PROJECT)

    assert result.success
    history = agent.conversation_history
    assert dangling_tool_use_ids(history) == []
    repaired = [
        block
        for m in history
        for block in m.get_tool_results()
        if block.tool_use_id == "s1"
    ]
    assert len(repaired) == 1
    assert repaired[0].content == "Previous task interrupted or incomplete"
    assert agent.execution_context.original_goal == "first"


def test_set_abort_controller_rebinds():
    agent = make_agent(ScriptedLLM())
    controller = AbortController()

    agent.set_abort_controller(controller)
    agent.cancel("stop now")

    assert agent.abort_controller is controller
    assert controller.is_cancelled()
    assert controller.reason == "stop now"
