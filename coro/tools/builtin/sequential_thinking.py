"""
Sequential thinking tool.

Lets the model reason in numbered steps, with revisions and branches. Each
accepted thought is echoed back; the engine surfaces it as a thinking event.
"""

from collections import deque
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from coro.domain import ToolCall, ToolResult
from coro.exceptions import ToolExecutionError
from coro.tools.base import BaseTool
from coro.utils.logging import get_logger

logger = get_logger(__name__)

# Retained per tool instance; the oldest entries are dropped first
MAX_THOUGHT_HISTORY = 100
MAX_BRANCHES = 20


class ThoughtData(BaseModel):
    thought: str = Field(min_length=1)
    thought_number: int = Field(ge=1)
    total_thoughts: int = Field(ge=1)
    next_thought_needed: bool
    is_revision: bool = False
    revises_thought: int | None = Field(default=None, ge=1)
    branch_from_thought: int | None = Field(default=None, ge=1)
    branch_id: str | None = None
    needs_more_thoughts: bool = False


class SequentialThinkingTool(BaseTool):
    emits_thoughts = True

    def __init__(self) -> None:
        super().__init__()
        self.thought_history: deque[ThoughtData] = deque(maxlen=MAX_THOUGHT_HISTORY)
        self.branches: dict[str, deque[ThoughtData]] = {}

    def get_name(self) -> str:
        return "sequentialthinking"

    def get_description(self) -> str:
        return (
            "A tool for dynamic, reflective problem solving through a sequence "
            "of thoughts. Each call records one thought. Thoughts can revise "
            "earlier ones or branch into alternatives, and the total estimate "
            "may be adjusted as understanding deepens. Set next_thought_needed "
            "to false once a satisfactory answer is reached."
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "thought": {"type": "string", "description": "Your current thinking step"},
                "next_thought_needed": {
                    "type": "boolean",
                    "description": "Whether another thought step is needed",
                },
                "thought_number": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Current thought number",
                },
                "total_thoughts": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Estimated total thoughts needed",
                },
                "is_revision": {
                    "type": "boolean",
                    "description": "Whether this revises previous thinking",
                },
                "revises_thought": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Which thought is being reconsidered",
                },
                "branch_from_thought": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Branching point thought number",
                },
                "branch_id": {"type": "string", "description": "Branch identifier"},
                "needs_more_thoughts": {
                    "type": "boolean",
                    "description": "If more thoughts are needed",
                },
            },
            "required": ["thought", "next_thought_needed", "thought_number", "total_thoughts"],
        }

    async def execute(self, call: ToolCall) -> ToolResult:
        params = call.parameters if isinstance(call.parameters, dict) else {}
        try:
            data = ThoughtData.model_validate(params)
        except ValidationError as e:
            raise ToolExecutionError(self.name, f"Invalid thought data: {e}") from e

        # Adjust the estimate rather than reject an overrun
        if data.thought_number > data.total_thoughts:
            data.total_thoughts = data.thought_number

        self.thought_history.append(data)
        if data.branch_from_thought and data.branch_id:
            if data.branch_id not in self.branches and len(self.branches) >= MAX_BRANCHES:
                self.branches.pop(next(iter(self.branches)))
            branch = self.branches.setdefault(data.branch_id, deque(maxlen=MAX_THOUGHT_HISTORY))
            branch.append(data)

        logger.debug(
            "thought_recorded",
            thought_number=data.thought_number,
            total_thoughts=data.total_thoughts,
            is_revision=data.is_revision,
        )

        content = (
            f"Thought: {data.thought}\n\n"
            f"Thought {data.thought_number}/{data.total_thoughts} recorded. "
            f"Next thought needed: {str(data.next_thought_needed).lower()}"
        )
        return ToolResult.ok(
            call.id,
            content,
            data={
                "thought": data.thought,
                "thought_number": data.thought_number,
                "total_thoughts": data.total_thoughts,
                "next_thought_needed": data.next_thought_needed,
                "branches": list(self.branches.keys()),
                "thought_history_length": len(self.thought_history),
            },
        )


__all__ = ["SequentialThinkingTool", "ThoughtData"]
