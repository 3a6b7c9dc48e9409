"""
Core execution models.

- TokenUsage: accumulated token counters for a run
- AgentExecutionContext: run metadata mutated by the engine
- AgentExecution: result of one task invocation
"""

from enum import Enum

from pydantic import BaseModel, Field


class TokenUsage(BaseModel):
    """Token counters, monotonically non-decreasing within a run."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, input_tokens: int, output_tokens: int, total_tokens: int) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.total_tokens += total_tokens


class AgentExecutionContext(BaseModel):
    """
    Execution metadata for an agent.

    original_goal is set once per agent lifetime; current_task and
    current_step are reset on every task invocation.
    """

    agent_id: str
    original_goal: str
    current_task: str
    project_path: str
    max_steps: int
    current_step: int = 0
    execution_time: float = Field(default=0.0, description="Wall-clock seconds of the last run")
    token_usage: TokenUsage = Field(default_factory=TokenUsage)


class ExecutionStatus(str, Enum):
    """Terminal state of a task invocation."""

    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


class AgentExecution(BaseModel):
    """Result of a task invocation."""

    status: ExecutionStatus
    final_result: str
    steps_executed: int
    duration_ms: int

    @property
    def success(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED

    @property
    def interrupted(self) -> bool:
        return self.status == ExecutionStatus.INTERRUPTED

    @classmethod
    def completed(cls, final_result: str, steps: int, duration_ms: int) -> "AgentExecution":
        return cls(
            status=ExecutionStatus.COMPLETED,
            final_result=final_result,
            steps_executed=steps,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(cls, final_result: str, steps: int, duration_ms: int) -> "AgentExecution":
        return cls(
            status=ExecutionStatus.FAILED,
            final_result=final_result,
            steps_executed=steps,
            duration_ms=duration_ms,
        )

    @classmethod
    def interruption(cls, final_result: str, steps: int, duration_ms: int) -> "AgentExecution":
        return cls(
            status=ExecutionStatus.INTERRUPTED,
            final_result=final_result,
            steps_executed=steps,
            duration_ms=duration_ms,
        )


__all__ = [
    "AgentExecution",
    "AgentExecutionContext",
    "ExecutionStatus",
    "TokenUsage",
]
