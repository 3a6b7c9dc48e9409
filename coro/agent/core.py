"""
AgentCore - the agent execution engine.

This module implements the step loop of a tool-using coding agent:
- One model call per step, tool calls dispatched in model order
- Cooperative cancellation raced against every step
- Token budget enforcement through the ConversationManager
- Append-only trajectory recording
- Context snapshots for later continuation

Every task invocation ends with exactly one terminal event and returns an
AgentExecution; step failures are results, not exceptions.
"""

import asyncio
import os
import time
from pathlib import Path

from coro.agent.prompt import build_system_prompt, build_user_message
from coro.agent.state import PersistedAgentContext
from coro.agent.tokens import FALLBACK_MAX_MESSAGES, ConversationManager, fallback_trim
from coro.config import AgentConfig, ResolvedLLMConfig, settings
from coro.domain import (
    AgentEvent,
    AgentEventType,
    AgentExecution,
    AgentExecutionContext,
    ConfirmationDecision,
    ConfirmationRequest,
    Message,
    MessageLevel,
    MessageRole,
    ToolCall,
    ToolExecutionInfo,
    ToolExecutionStatus,
    ToolResult,
    TokenUsage,
    pending_tool_use_ids,
)
from coro.domain.events import (
    create_compression_completed_event,
    create_compression_failed_event,
    create_compression_started_event,
    create_execution_completed_event,
    create_execution_interrupted_event,
    create_execution_started_event,
    create_message_event,
    create_step_completed_event,
    create_step_started_event,
    create_thinking_event,
    create_token_usage_event,
    create_tool_event,
)
from coro.exceptions import PersistenceError
from coro.llm.base import ChatOptions, LLMClient
from coro.output import AgentOutput, NullOutput
from coro.runtime.control import AbortController, race_cancellation
from coro.tools import ToolExecutor, ToolRegistry, get_tool_registry
from coro.trajectory import TrajectoryEntry, TrajectoryRecorder
from coro.utils.logging import get_logger

logger = get_logger(__name__)

AGENT_TYPE = "coro_agent"

INTERRUPTED_REASON = "Execution interrupted by user"
INTERRUPTED_RESULT = "Execution interrupted"
SYNTHETIC_TOOL_RESULT = "Previous task interrupted or incomplete"
CONFIRMATION_DENIED = "Execution cancelled by user"
COMPRESSION_FALLBACK_ACTION = "Simple message trimming applied"


class AgentCore:
    """
    Agent execution engine.

    Owns the conversation history, the execution context and the agent
    configuration. One task runs at a time per instance.

    Examples:
        >>> agent = AgentCore(AgentConfig(), llm_client, tool_executor, output=LoggingOutput())
        >>> result = await agent.execute_task("Fix the failing test")
        >>> result.success
    """

    def __init__(
        self,
        config: AgentConfig,
        llm_client: LLMClient,
        tool_executor: ToolExecutor,
        output: AgentOutput | None = None,
        abort_controller: AbortController | None = None,
        conversation_manager: ConversationManager | None = None,
        trajectory_recorder: TrajectoryRecorder | None = None,
    ):
        self._config = config
        self.llm_client = llm_client
        self.tool_executor = tool_executor
        self.output = output or NullOutput()
        self.conversation_manager = conversation_manager or ConversationManager(
            max_tokens=settings.default_max_context_tokens, llm_client=llm_client
        )
        self._trajectory_recorder = trajectory_recorder

        if abort_controller is None:
            abort_controller, registration = AbortController.new()
        else:
            registration = abort_controller.subscribe()
        self._abort_controller = abort_controller
        self._abort_registration = registration

        self._conversation_history: list[Message] = []
        self._execution_context: AgentExecutionContext | None = None
        self._lock = asyncio.Lock()
        # Tool invocations outliving an interrupted step
        self._background_tools: set[asyncio.Task] = set()

    @classmethod
    def from_llm_config(
        cls,
        agent_config: AgentConfig,
        llm_config: ResolvedLLMConfig,
        output: AgentOutput | None = None,
        tool_registry: ToolRegistry | None = None,
        abort_controller: AbortController | None = None,
    ) -> "AgentCore":
        """
        Build an engine from a resolved model configuration.

        Raises:
            UnsupportedProviderError: No client for the configured protocol
            MissingCredentialError: No API key could be resolved
        """
        from coro.config.model_provider_registry import create_llm_client

        llm_client = create_llm_client(llm_config)
        registry = tool_registry or get_tool_registry()
        tool_executor = registry.build_executor(agent_config.tools)

        max_tokens = llm_config.params.max_tokens or settings.default_max_context_tokens
        conversation_manager = ConversationManager(max_tokens=max_tokens, llm_client=llm_client)

        return cls(
            agent_config,
            llm_client,
            tool_executor,
            output=output,
            abort_controller=abort_controller,
            conversation_manager=conversation_manager,
        )

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def agent_type(self) -> str:
        return AGENT_TYPE

    @property
    def conversation_history(self) -> list[Message]:
        return list(self._conversation_history)

    @property
    def execution_context(self) -> AgentExecutionContext | None:
        return self._execution_context

    @property
    def abort_controller(self) -> AbortController:
        return self._abort_controller

    @property
    def trajectory_recorder(self) -> TrajectoryRecorder | None:
        return self._trajectory_recorder

    def set_trajectory_recorder(self, recorder: TrajectoryRecorder | None) -> None:
        self._trajectory_recorder = recorder

    def cancel(self, reason: str = INTERRUPTED_REASON) -> None:
        """Cancel the running task (and any later one bound to this controller)."""
        self._abort_controller.cancel(reason)

    def set_abort_controller(self, abort_controller: AbortController) -> None:
        """Bind future runs to another controller. A running task keeps its own."""
        self._abort_controller = abort_controller
        self._abort_registration = abort_controller.subscribe()

    def set_system_prompt(self, system_prompt: str | None) -> None:
        """Override the configured system prompt; None restores the default."""
        self._config = self._config.model_copy(update={"system_prompt": system_prompt})

    def get_configured_system_prompt(self) -> str | None:
        return self._config.system_prompt

    # ========================================================================
    # Task execution
    # ========================================================================

    async def execute_task(self, task: str) -> AgentExecution:
        """Execute a task with the current working directory as project path."""
        return await self.execute_task_with_context(task, os.getcwd())

    async def execute_task_with_context(
        self, task: str, project_path: str | Path
    ) -> AgentExecution:
        """
        Continue the conversation with a new task.

        History and original goal are kept from earlier tasks; only the
        current task and step counter are reset.
        """
        async with self._lock:
            return await self._run(task, str(project_path))

    async def _run(self, task: str, project_path: str) -> AgentExecution:
        start_time = time.monotonic()
        registration = self._abort_registration

        context = self._begin_context(task, project_path)
        await self._emit(create_execution_started_event(context))
        await self._record_safely(
            TrajectoryEntry.task_start(task, self._config.model_dump(mode="json"))
        )

        if not self._conversation_history:
            self._conversation_history.append(
                Message.system(self._get_system_prompt(project_path))
            )
        self._repair_dangling_tool_uses()
        self._conversation_history.append(build_user_message(task))

        logger.info("task_started", task=task, project_path=project_path)

        step = 0
        task_completed = False
        interrupted = False
        step_error: Exception | None = None

        while step < self._config.max_steps and not task_completed:
            if registration.is_cancelled():
                interrupted = True
                break

            step += 1
            context.current_step = step

            await self._apply_compression()

            if registration.is_cancelled():
                interrupted = True
                break

            await self._emit(create_step_started_event(step, context.current_task))
            try:
                cancelled, completed = await race_cancellation(
                    registration, self._execute_step(step, project_path)
                )
            except Exception as e:
                logger.error("step_failed", step=step, error=str(e), error_type=type(e).__name__)
                step_error = e
                break

            if cancelled:
                await self._emit(create_message_event(MessageLevel.NORMAL, "Task interrupted by user"))
                interrupted = True
                break

            task_completed = completed
            await self._emit(create_step_completed_event(step, context.current_task))
            await self._record_safely(
                TrajectoryEntry.step_complete(f"Step {step} completed", True, step)
            )

        duration = time.monotonic() - start_time
        duration_ms = int(duration * 1000)
        context.current_step = step
        context.execution_time = duration

        if interrupted:
            await self._record_safely(
                TrajectoryEntry.task_complete(False, INTERRUPTED_RESULT, step, duration_ms)
            )
            await self._emit(create_execution_interrupted_event(context, INTERRUPTED_REASON))
            logger.info("task_interrupted", steps=step, duration_ms=duration_ms)
            return AgentExecution.interruption(INTERRUPTED_RESULT, step, duration_ms)

        if step_error is not None:
            summary = f"Error in step {step}: {step_error}"
            await self._record_safely(TrajectoryEntry.error(str(step_error), f"Step {step}", step))
        elif task_completed:
            summary = "Task completed successfully"
        else:
            summary = f"Task incomplete after {step} steps"

        await self._record_safely(
            TrajectoryEntry.task_complete(task_completed, summary, step, duration_ms)
        )
        await self._emit(create_execution_completed_event(context, task_completed, summary))
        logger.info(
            "task_finished",
            success=task_completed,
            steps=step,
            duration_ms=duration_ms,
            summary=summary,
        )

        if task_completed:
            return AgentExecution.completed(summary, step, duration_ms)
        return AgentExecution.failure(summary, step, duration_ms)

    def _begin_context(self, task: str, project_path: str) -> AgentExecutionContext:
        if self._execution_context is None:
            self._execution_context = AgentExecutionContext(
                agent_id=AGENT_TYPE,
                original_goal=task,
                current_task=task,
                project_path=project_path,
                max_steps=self._config.max_steps,
                token_usage=TokenUsage(),
            )
        else:
            # Preserve the original goal across tasks
            self._execution_context.current_task = task
            self._execution_context.current_step = 0
            self._execution_context.max_steps = self._config.max_steps
        return self._execution_context

    def _repair_dangling_tool_uses(self) -> None:
        pending = pending_tool_use_ids(self._conversation_history)
        for tool_use_id in pending:
            self._conversation_history.append(
                Message.tool_result(tool_use_id, SYNTHETIC_TOOL_RESULT, is_error=True)
            )
        if pending:
            logger.warning("synthetic_tool_results_added", count=len(pending))

    # ========================================================================
    # Step
    # ========================================================================

    async def _execute_step(self, step: int, project_path: str) -> bool:
        """Run one model call and its tool calls. Returns True when the task is done."""
        messages = self._build_outbound_messages(project_path)

        await self._record(
            TrajectoryEntry.llm_request(
                messages, self.llm_client.model_name, self.llm_client.provider_name, step
            )
        )

        tool_definitions = self.tool_executor.get_tool_definitions()
        try:
            response = await self.llm_client.chat_completion(
                messages, tool_definitions or None, ChatOptions()
            )
        except Exception as e:
            logger.error("llm_request_failed", step=step, error=str(e))
            await self._emit(create_message_event(MessageLevel.ERROR, f"LLM request failed: {e}"))
            raise

        context = self._execution_context
        if response.usage is not None:
            context.token_usage.add(
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
                response.usage.total_tokens,
            )
            await self._emit(create_token_usage_event(context.token_usage))

        await self._record(
            TrajectoryEntry.llm_response(
                response.message,
                response.usage,
                response.finish_reason.value if response.finish_reason else None,
                step,
            )
        )

        self._conversation_history.append(response.message)

        tool_uses = response.message.get_tool_uses()
        if tool_uses:
            for tool_use in tool_uses:
                call = ToolCall(id=tool_use.id, name=tool_use.name, parameters=tool_use.input)
                if await self._handle_tool_call(call, step):
                    return True
            # Tool results are read by the model on the next step
            return False

        text = response.message.get_text()
        if text and text.strip():
            await self._emit(create_message_event(MessageLevel.NORMAL, text))
        return False

    async def _handle_tool_call(self, call: ToolCall, step: int) -> bool:
        await self._emit(
            create_tool_event(
                AgentEventType.TOOL_EXECUTION_STARTED,
                ToolExecutionInfo.create(call, ToolExecutionStatus.EXECUTING),
            )
        )
        await self._record(TrajectoryEntry.tool_call(call, step))

        result = await self._run_tool(call)

        status = ToolExecutionStatus.SUCCESS if result.success else ToolExecutionStatus.ERROR
        await self._emit(
            create_tool_event(
                AgentEventType.TOOL_EXECUTION_COMPLETED,
                ToolExecutionInfo.create(call, status, result),
            )
        )

        if self.tool_executor.is_thought_tool(call.name):
            thought = extract_thought(result)
            if thought:
                await self._emit(create_thinking_event(step, thought))

        await self._record(TrajectoryEntry.tool_result(result, step))

        self._conversation_history.append(
            Message.tool_result(call.id, result.content, is_error=not result.success)
        )
        return self.tool_executor.is_completion_tool(call.name) and result.success

    async def _run_tool(self, call: ToolCall) -> ToolResult:
        if self.tool_executor.requires_confirmation(call.name):
            decision = await self._request_confirmation(call)
            if not decision.approved:
                logger.info("tool_execution_denied", tool_name=call.name, note=decision.note)
                return ToolResult.error(call.id, CONFIRMATION_DENIED)

        # Shielded: an interrupted step leaves the tool running to completion
        task = asyncio.create_task(self._invoke_tool(call))
        self._background_tools.add(task)
        task.add_done_callback(self._background_tools.discard)
        return await asyncio.shield(task)

    async def _invoke_tool(self, call: ToolCall) -> ToolResult:
        try:
            return await self.tool_executor.execute(call)
        except Exception as e:
            logger.error("tool_execution_failed", tool_name=call.name, error=str(e))
            return ToolResult.error(call.id, f"Tool execution failed: {e}")

    async def _request_confirmation(self, call: ToolCall) -> ConfirmationDecision:
        request = ConfirmationRequest(
            id=call.id,
            title=f"Execute tool: {call.name}",
            message="This tool requires confirmation before execution.",
            metadata={
                "tool_name": call.name,
                "parameters": call.parameters,
                "tool_call_id": call.id,
            },
        )
        try:
            return await self.output.request_confirmation(request)
        except Exception as e:
            logger.warning("confirmation_failed", tool_name=call.name, error=str(e))
            return ConfirmationDecision(approved=False, note="Failed to obtain confirmation")

    def _build_outbound_messages(self, project_path: str) -> list[Message]:
        messages: list[Message] = []
        history = self._conversation_history
        if not history or history[0].role != MessageRole.SYSTEM:
            messages.append(Message.system(self._get_system_prompt(project_path)))
        messages.extend(history)
        return messages

    def _get_system_prompt(self, project_path: str) -> str:
        return build_system_prompt(
            self._config.system_prompt, project_path, self.tool_executor.list_tools()
        )

    # ========================================================================
    # Compression
    # ========================================================================

    async def _apply_compression(self) -> None:
        try:
            result = await self.conversation_manager.maybe_compress(
                self._conversation_history, self._execution_context
            )
        except Exception as e:
            logger.warning("compression_failed", error=str(e), fallback=COMPRESSION_FALLBACK_ACTION)
            self._conversation_history = fallback_trim(
                self._conversation_history, FALLBACK_MAX_MESSAGES
            )
            await self._emit(create_compression_failed_event(str(e), COMPRESSION_FALLBACK_ACTION))
            return

        self._conversation_history = list(result.messages)
        summary = result.compression_applied
        if summary is None:
            return

        await self._emit(
            create_compression_started_event(
                summary.level.value,
                summary.tokens_before,
                summary.tokens_after,
                f"Token usage requires {summary.level.value} compression",
            )
        )
        await self._emit(
            create_compression_completed_event(
                summary.summary,
                summary.tokens_saved,
                summary.messages_before,
                summary.messages_after,
            )
        )
        logger.info("compression_completed", summary=summary.summary)

    # ========================================================================
    # Output / trajectory plumbing
    # ========================================================================

    async def _emit(self, event: AgentEvent) -> None:
        try:
            await self.output.emit_event(event)
        except Exception as e:
            logger.debug("event_emission_failed", event_type=event.type.value, error=str(e))

    async def _record(self, entry: TrajectoryEntry) -> None:
        if self._trajectory_recorder is not None:
            await self._trajectory_recorder.record(entry)

    async def _record_safely(self, entry: TrajectoryEntry) -> None:
        try:
            await self._record(entry)
        except PersistenceError as e:
            logger.warning(
                "trajectory_record_failed",
                entry_type=entry.entry_type.type,
                error=str(e),
            )

    # ========================================================================
    # Snapshots
    # ========================================================================

    def export_context_snapshot(self) -> PersistedAgentContext:
        return PersistedAgentContext.new(
            self.agent_type,
            self._config,
            self._conversation_history,
            self._execution_context,
        )

    def export_context_json(self) -> str:
        return self.export_context_snapshot().to_json()

    def export_context_to_file(self, path: str | Path) -> None:
        self.export_context_snapshot().to_file(path)

    def restore_context_from_snapshot(self, snapshot: PersistedAgentContext) -> None:
        """Adopt the saved config if present; always replace history and context."""
        if snapshot.agent_type != self.agent_type:
            logger.warning(
                "snapshot_agent_type_mismatch",
                expected=self.agent_type,
                found=snapshot.agent_type,
            )
        if snapshot.config is not None:
            self._config = snapshot.config.model_copy(deep=True)
        self._conversation_history = [m.model_copy(deep=True) for m in snapshot.conversation_history]
        self._execution_context = (
            snapshot.execution_context.model_copy(deep=True)
            if snapshot.execution_context is not None
            else None
        )

    def restore_context_from_json(self, data: str) -> None:
        self.restore_context_from_snapshot(PersistedAgentContext.from_json(data))

    def restore_context_from_file(self, path: str | Path) -> None:
        self.restore_context_from_snapshot(PersistedAgentContext.from_file(path))

    def restore_from_history(self, messages: list[Message]) -> None:
        """Replace the history and drop the execution context."""
        self._conversation_history = list(messages)
        self._execution_context = None


def extract_thought(result: ToolResult) -> str | None:
    """Thought carried by a thought-stream tool result."""
    if result.data:
        thought = result.data.get("thought")
        if isinstance(thought, str):
            return thought

    marker = "Thought: "
    start = result.content.find(marker)
    if start == -1:
        return None
    start += len(marker)
    end = result.content.find("\n\n", start)
    if end == -1:
        return None
    return result.content[start:end]


__all__ = ["AgentCore", "AGENT_TYPE", "extract_thought"]
