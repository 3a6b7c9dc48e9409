"""Base abstractions for tools within the coro stack."""

from abc import ABC, abstractmethod
from typing import Any

from coro.domain import ToolCall, ToolDefinition, ToolResult


class BaseTool(ABC):
    """
    Common interface that every concrete tool must implement.

    Capability flags are class attributes read by the engine:
    - requires_confirmation: ask the output capability before executing
    - completes_task: a successful result terminates the task with success
    - emits_thoughts: results carry reasoning to surface as thinking events
    """

    requires_confirmation: bool = False
    completes_task: bool = False
    emits_thoughts: bool = False

    def __init__(self) -> None:
        self.name = self.get_name()
        self.description = self.get_description()

    @abstractmethod
    def get_name(self) -> str:
        """Return the tool name."""

    @abstractmethod
    def get_description(self) -> str:
        """Return the tool description used for prompting."""

    @abstractmethod
    def get_parameters(self) -> dict[str, Any]:
        """Return the JSON schema describing `execute` parameters."""

    @abstractmethod
    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute the tool and return ToolResult directly.

        Args:
            call: The tool call as issued by the model

        Returns:
            ToolResult: Result keyed by call.id

        Raises:
            ToolExecutionError: The tool could not do its job
        """

    def get_definition(self) -> ToolDefinition:
        """Construct a `ToolDefinition` for LLM-facing registration."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.get_parameters(),
        )


__all__ = ["BaseTool"]
