"""
LoggingOutput - renders agent events to the structured log.

The non-interactive counterpart of a terminal renderer: run-level events
go to INFO, step and tool chatter to DEBUG, problems to WARNING/ERROR.
"""

import json
from typing import Any

from coro.domain import (
    AgentEvent,
    AgentEventType,
    ConfirmationDecision,
    ConfirmationRequest,
    MessageLevel,
    ToolExecutionInfo,
    ToolExecutionStatus,
)
from coro.output.base import AgentOutput
from coro.utils.logging import get_logger

logger = get_logger(__name__)

# Tools that should not produce status lines
SILENT_TOOLS = frozenset({"sequentialthinking"})

PARAMETER_PREVIEW_CHARS = 200


def _preview(value: Any, limit: int = PARAMETER_PREVIEW_CHARS) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class LoggingOutput(AgentOutput):
    """
    Logs every event through structlog.

    Args:
        auto_approve: Answer confirmation requests with approval instead of
            denying them
        silent_tools: Tool names whose executions are not logged
    """

    def __init__(self, auto_approve: bool = False, silent_tools: frozenset[str] = SILENT_TOOLS):
        self.auto_approve = auto_approve
        self.silent_tools = silent_tools
        self.active_tools: dict[str, ToolExecutionInfo] = {}

    async def emit_event(self, event: AgentEvent) -> None:
        handler = getattr(self, f"_on_{event.type.value}", None)
        if handler is not None:
            handler(event)

    async def request_confirmation(self, request: ConfirmationRequest) -> ConfirmationDecision:
        logger.info(
            "confirmation_requested",
            title=request.title,
            message=request.message,
            parameters=_preview(request.metadata.get("parameters")),
            approved=self.auto_approve,
        )
        if self.auto_approve:
            return ConfirmationDecision(approved=True, note="Auto-approved")
        return ConfirmationDecision(approved=False, note="Confirmation not available")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def _on_execution_started(self, event: AgentEvent) -> None:
        context = event.context
        logger.info(
            "execution_started",
            task=context.current_task,
            original_goal=context.original_goal,
            project_path=context.project_path,
        )

    def _on_execution_completed(self, event: AgentEvent) -> None:
        context = event.context
        usage = context.token_usage
        log = logger.info if event.data.get("success") else logger.error
        log(
            "execution_completed",
            success=event.data.get("success"),
            summary=event.data.get("summary"),
            steps=context.current_step,
            duration=f"{context.execution_time:.2f}s",
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens,
        )

    def _on_execution_interrupted(self, event: AgentEvent) -> None:
        context = event.context
        logger.warning(
            "execution_interrupted",
            reason=event.data.get("reason"),
            steps=context.current_step,
            duration=f"{context.execution_time:.2f}s",
        )

    # ------------------------------------------------------------------
    # Steps and tools
    # ------------------------------------------------------------------

    def _on_step_started(self, event: AgentEvent) -> None:
        logger.debug("step_started", step=event.step_info.step_number, task=event.step_info.task)

    def _on_tool_execution_started(self, event: AgentEvent) -> None:
        info = event.tool_info
        self.active_tools[info.execution_id] = info
        if info.tool_name in self.silent_tools:
            return
        logger.info(
            "tool_started",
            tool_name=info.tool_name,
            parameters=_preview(info.parameters),
        )

    def _on_tool_execution_completed(self, event: AgentEvent) -> None:
        info = event.tool_info
        self.active_tools.pop(info.execution_id, None)
        if info.tool_name in self.silent_tools:
            return
        log = logger.info if info.status == ToolExecutionStatus.SUCCESS else logger.warning
        log(
            "tool_completed",
            tool_name=info.tool_name,
            status=info.status.value,
            result=_preview(info.result_content or ""),
        )

    def _on_agent_thinking(self, event: AgentEvent) -> None:
        logger.info("agent_thinking", thinking=event.data.get("thinking"))

    def _on_status_update(self, event: AgentEvent) -> None:
        logger.debug("status_update", status=event.data.get("status"))

    def _on_message(self, event: AgentEvent) -> None:
        level = MessageLevel(event.data.get("level", MessageLevel.NORMAL.value))
        content = event.data.get("content", "")
        if level == MessageLevel.DEBUG:
            logger.debug("agent_message", content=content)
        elif level == MessageLevel.WARNING:
            logger.warning("agent_message", content=content)
        elif level == MessageLevel.ERROR:
            logger.error("agent_message", content=content)
        else:
            logger.info("agent_message", content=content)

    # ------------------------------------------------------------------
    # Compression
    # ------------------------------------------------------------------

    def _on_compression_started(self, event: AgentEvent) -> None:
        logger.info("compression_started", **event.data)

    def _on_compression_completed(self, event: AgentEvent) -> None:
        logger.info("compression_completed", **event.data)

    def _on_compression_failed(self, event: AgentEvent) -> None:
        logger.warning("compression_failed", **event.data)


__all__ = ["LoggingOutput", "SILENT_TOOLS"]
