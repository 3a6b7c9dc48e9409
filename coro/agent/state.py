"""
Persisted agent context.

A snapshot captures everything needed to continue a conversation later:
configuration, history and execution context. It is self-contained and
serializes to pretty-printed JSON.
"""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from coro.config.schema import AgentConfig
from coro.domain import AgentExecutionContext, Message
from coro.exceptions import SnapshotError

SNAPSHOT_VERSION = 1


class PersistedAgentContext(BaseModel):
    """Versioned snapshot of an agent's conversation state."""

    version: int = Field(default=SNAPSHOT_VERSION, description="Snapshot format version")
    agent_type: str
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    config: AgentConfig | None = None
    conversation_history: list[Message] = Field(default_factory=list)
    execution_context: AgentExecutionContext | None = None

    @classmethod
    def new(
        cls,
        agent_type: str,
        config: AgentConfig | None,
        conversation_history: list[Message],
        execution_context: AgentExecutionContext | None,
    ) -> "PersistedAgentContext":
        return cls(
            agent_type=agent_type,
            config=config.model_copy(deep=True) if config is not None else None,
            conversation_history=[m.model_copy(deep=True) for m in conversation_history],
            execution_context=(
                execution_context.model_copy(deep=True) if execution_context is not None else None
            ),
        )

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, data: str) -> "PersistedAgentContext":
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise SnapshotError(f"Invalid snapshot: {e}") from e

    def to_file(self, path: str | Path) -> None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.to_json(), encoding="utf-8")
        except OSError as e:
            raise SnapshotError(f"Failed to write snapshot to {path}: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> "PersistedAgentContext":
        path = Path(path)
        try:
            data = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Failed to read snapshot from {path}: {e}") from e
        return cls.from_json(data)


__all__ = ["PersistedAgentContext", "SNAPSHOT_VERSION"]
