from coro.domain import AgentEvent
from coro.output.base import AgentOutput


class NullOutput(AgentOutput):
    """Discards every event. Confirmations are denied."""

    async def emit_event(self, event: AgentEvent) -> None:
        pass


__all__ = ["NullOutput"]
