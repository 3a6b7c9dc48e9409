"""
Output capability - where agent events go.

The engine emits every observable happening through an AgentOutput and
asks it for tool confirmations. Implementations decide how to render.
"""

from abc import ABC, abstractmethod
from typing import Any

from coro.domain import (
    AgentEvent,
    ConfirmationDecision,
    ConfirmationRequest,
    MessageLevel,
    TokenUsage,
)
from coro.domain.events import (
    create_message_event,
    create_status_event,
    create_token_usage_event,
)


class AgentOutput(ABC):
    """Abstract output sink for agent events."""

    @abstractmethod
    async def emit_event(self, event: AgentEvent) -> None:
        """Deliver one event."""

    @property
    def supports_realtime_updates(self) -> bool:
        """Whether TOOL_EXECUTION_UPDATED events are rendered."""
        return False

    async def request_confirmation(self, request: ConfirmationRequest) -> ConfirmationDecision:
        """
        Ask the user to approve an action.

        Outputs without an interactive surface deny.
        """
        return ConfirmationDecision(approved=False, note="Confirmation not supported")

    async def flush(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    async def message(
        self, level: MessageLevel, content: str, metadata: dict[str, Any] | None = None
    ) -> None:
        await self.emit_event(create_message_event(level, content, metadata))

    async def normal(self, content: str) -> None:
        await self.message(MessageLevel.NORMAL, content)

    async def info(self, content: str) -> None:
        await self.message(MessageLevel.INFO, content)

    async def debug(self, content: str) -> None:
        await self.message(MessageLevel.DEBUG, content)

    async def warning(self, content: str) -> None:
        await self.message(MessageLevel.WARNING, content)

    async def error(self, content: str) -> None:
        await self.message(MessageLevel.ERROR, content)

    async def emit_status(self, status: str, metadata: dict[str, Any] | None = None) -> None:
        await self.emit_event(create_status_event(status, metadata))

    async def emit_token_update(self, token_usage: TokenUsage) -> None:
        await self.emit_event(create_token_usage_event(token_usage))


__all__ = ["AgentOutput"]
