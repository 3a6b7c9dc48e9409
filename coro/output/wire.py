"""
WireOutput - Event streaming channel for agent execution.

WireOutput is an AgentOutput backed by an asyncio.Queue: the engine writes
events, a consumer iterates them until the wire is closed.

Usage:
    wire = WireOutput(confirm=ask_user)
    agent = AgentCore(config, llm, tools, output=wire)

    task = asyncio.create_task(agent.execute_task("fix the build"))

    async for event in wire.read():
        render(event)
        if event.is_terminal:
            await wire.close()
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable

from coro.domain import AgentEvent, ConfirmationDecision, ConfirmationRequest
from coro.output.base import AgentOutput


ConfirmationHandler = Callable[[ConfirmationRequest], Awaitable[ConfirmationDecision]]


class WireOutput(AgentOutput):
    """
    Queue-backed event stream.

    - emit_event(): Put an event into the channel
    - read(): Async iterate over events until closed
    - close(): Signal that no more events will be written

    Confirmation requests go to the optional handler; without one they are
    denied.
    """

    # Sentinel value to signal end of stream
    _SENTINEL = object()

    def __init__(
        self,
        maxsize: int = 0,
        confirm: ConfirmationHandler | None = None,
        realtime_updates: bool = True,
    ):
        """
        Initialize WireOutput.

        Args:
            maxsize: Maximum queue size (0 = unlimited)
            confirm: Async callback answering confirmation requests
            realtime_updates: Whether the consumer renders tool updates
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._confirm = confirm
        self._realtime_updates = realtime_updates

    async def emit_event(self, event: AgentEvent) -> None:
        if self._closed:
            # Writes after close are dropped
            return
        await self._queue.put(event)

    @property
    def supports_realtime_updates(self) -> bool:
        return self._realtime_updates

    async def request_confirmation(self, request: ConfirmationRequest) -> ConfirmationDecision:
        if self._confirm is None:
            return await super().request_confirmation(request)
        return await self._confirm(request)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(self._SENTINEL)

    async def read(self) -> AsyncIterator[AgentEvent]:
        while True:
            item = await self._queue.get()
            if item is self._SENTINEL:
                # Re-put sentinel for other readers (if any)
                await self._queue.put(self._SENTINEL)
                break
            yield item

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"WireOutput(closed={self._closed}, qsize={self._queue.qsize()})"


__all__ = ["WireOutput", "ConfirmationHandler"]
