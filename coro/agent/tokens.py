"""
Token accounting and conversation compression.

ConversationManager keeps the history under a token budget. Compression is
best-effort: when it fails the caller applies fallback_trim(), which cannot
fail.
"""

import json
from enum import Enum

import tiktoken
from pydantic import BaseModel, Field

from coro.config.settings import settings
from coro.domain import (
    AgentExecutionContext,
    ImageBlock,
    Message,
    MessageRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from coro.exceptions import CompressionError
from coro.utils.logging import get_logger

logger = get_logger(__name__)

# Messages kept by the simple trim (leading System message included)
FALLBACK_MAX_MESSAGES = 50

SUMMARY_PREFIX = "[Conversation summary]"

SUMMARY_SYSTEM_PROMPT = (
    "You compress agent transcripts. Summarize the conversation below so the "
    "agent can continue the task: the user's goal, decisions made, files and "
    "commands touched, tool results that still matter, and open problems. "
    "Be concise and factual. Reply with the summary only."
)


# ============================================================================
# Models
# ============================================================================


class CompressionLevel(str, Enum):
    """Escalation levels, ordered none < light < medium < heavy."""

    NONE = "none"
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def __lt__(self, other: "CompressionLevel") -> bool:
        if not isinstance(other, CompressionLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "CompressionLevel") -> bool:
        if not isinstance(other, CompressionLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "CompressionLevel") -> bool:
        if not isinstance(other, CompressionLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "CompressionLevel") -> bool:
        if not isinstance(other, CompressionLevel):
            return NotImplemented
        return self.rank >= other.rank


_LEVEL_ORDER = [
    CompressionLevel.NONE,
    CompressionLevel.LIGHT,
    CompressionLevel.MEDIUM,
    CompressionLevel.HEAVY,
]


class CompressionSummary(BaseModel):
    level: CompressionLevel
    tokens_before: int
    tokens_after: int
    tokens_saved: int
    messages_before: int
    messages_after: int
    summary: str


class MaybeCompressedResult(BaseModel):
    messages: list[Message]
    compression_applied: CompressionSummary | None = None


class ConversationTokenStats(BaseModel):
    total_tokens: int
    message_count: int
    max_tokens: int
    threshold_tokens: int
    usage_ratio: float = Field(description="total_tokens / max_tokens")

    @property
    def needs_compression(self) -> bool:
        return self.total_tokens > self.threshold_tokens


# ============================================================================
# Token counting
# ============================================================================


class TokenCalculator:
    """
    Estimates the token cost of messages.

    Uses tiktoken when the encoding is available; otherwise falls back to
    4 characters per token. Pass encoding_name=None to force the fallback.
    """

    MESSAGE_OVERHEAD = 4
    IMAGE_TOKENS = 85

    def __init__(self, encoding_name: str | None = "cl100k_base"):
        self.encoding = None
        if encoding_name:
            try:
                self.encoding = tiktoken.get_encoding(encoding_name)
            except Exception as e:
                logger.warning("tiktoken_unavailable", encoding=encoding_name, error=str(e))

    def count_text(self, text: str) -> int:
        if not text:
            return 0
        if self.encoding is None:
            return len(text) // 4
        return len(self.encoding.encode(text, disallowed_special=()))

    def count_message(self, message: Message) -> int:
        total = self.MESSAGE_OVERHEAD
        if isinstance(message.content, str):
            return total + self.count_text(message.content)
        for block in message.content:
            if isinstance(block, TextBlock):
                total += self.count_text(block.text)
            elif isinstance(block, ToolUseBlock):
                total += self.count_text(block.name)
                total += self.count_text(json.dumps(block.input, ensure_ascii=False, default=str))
            elif isinstance(block, ToolResultBlock):
                total += self.count_text(block.content)
            elif isinstance(block, ImageBlock):
                total += self.IMAGE_TOKENS
        return total

    def count_messages(self, messages: list[Message]) -> int:
        return sum(self.count_message(m) for m in messages)


# ============================================================================
# Simple trim
# ============================================================================


def fallback_trim(
    messages: list[Message], max_messages: int = FALLBACK_MAX_MESSAGES
) -> list[Message]:
    """
    Keep the leading System message (if any) plus the most recent messages,
    at most max_messages in total. Older interior messages are dropped.

    Tool-role messages left at the start of the kept window lost their
    requesting Assistant message and are dropped as well.
    """
    if max_messages <= 0:
        return []
    if len(messages) <= max_messages:
        return list(messages)

    head: list[Message] = []
    rest = messages
    if messages[0].role == MessageRole.SYSTEM:
        head = [messages[0]]
        rest = messages[1:]

    room = max_messages - len(head)
    tail = list(rest[-room:]) if room > 0 else []
    while tail and tail[0].role == MessageRole.TOOL:
        tail.pop(0)
    return head + tail


# ============================================================================
# Compression manager
# ============================================================================


class ConversationManager:
    """
    Keeps conversation history under a token budget.

    Args:
        max_tokens: Token budget of the model context
        llm_client: Optional model used to write summaries; a local digest
            is used without one
        threshold: Fraction of max_tokens above which compression starts;
            compression aims to bring the history back under it
        keep_recent: Messages never touched by light/medium compression
        heavy_keep_recent: Tail kept by heavy compression
        truncate_chars: Character limit for texts outside the recent window
    """

    SUMMARY_TOKEN_ESTIMATE = 400

    def __init__(
        self,
        max_tokens: int,
        llm_client=None,
        threshold: float = 0.8,
        keep_recent: int = 10,
        heavy_keep_recent: int = 4,
        truncate_chars: int = 2000,
        token_calculator: TokenCalculator | None = None,
    ):
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")
        self.max_tokens = max_tokens
        self.llm_client = llm_client
        self.threshold = threshold
        self.keep_recent = keep_recent
        self.heavy_keep_recent = heavy_keep_recent
        self.truncate_chars = truncate_chars
        self.calculator = token_calculator or TokenCalculator(settings.token_encoding)

    @property
    def threshold_tokens(self) -> int:
        return int(self.max_tokens * self.threshold)

    def stats(self, messages: list[Message]) -> ConversationTokenStats:
        total = self.calculator.count_messages(messages)
        return ConversationTokenStats(
            total_tokens=total,
            message_count=len(messages),
            max_tokens=self.max_tokens,
            threshold_tokens=self.threshold_tokens,
            usage_ratio=total / self.max_tokens if self.max_tokens else 0.0,
        )

    def select_level(self, messages: list[Message]) -> CompressionLevel:
        """Lowest level whose projected cost fits the budget; heavy if none does."""
        budget = self.threshold_tokens
        if self.calculator.count_messages(messages) <= budget:
            return CompressionLevel.NONE
        for level in (CompressionLevel.LIGHT, CompressionLevel.MEDIUM):
            if self._project(level, messages) <= budget:
                return level
        return CompressionLevel.HEAVY

    async def maybe_compress(
        self,
        messages: list[Message],
        context: AgentExecutionContext | None = None,
    ) -> MaybeCompressedResult:
        """
        Compress the history if it exceeds the threshold.

        Raises:
            CompressionError: Compression was needed but could not be done
        """
        tokens_before = self.calculator.count_messages(messages)
        if tokens_before <= self.threshold_tokens:
            return MaybeCompressedResult(messages=messages)

        level = self.select_level(messages)
        logger.info(
            "compression_selected",
            level=level.value,
            tokens=tokens_before,
            budget=self.threshold_tokens,
            messages=len(messages),
        )

        try:
            compressed = await self._apply(level, messages, context)
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionError(f"{level.value} compression failed: {e}") from e

        tokens_after = self.calculator.count_messages(compressed)
        saved = max(tokens_before - tokens_after, 0)
        summary = CompressionSummary(
            level=level,
            tokens_before=tokens_before,
            tokens_after=tokens_after,
            tokens_saved=saved,
            messages_before=len(messages),
            messages_after=len(compressed),
            summary=(
                f"Applied {level.value} compression: {len(messages)} -> "
                f"{len(compressed)} messages, {tokens_before} -> {tokens_after} tokens"
            ),
        )
        return MaybeCompressedResult(messages=compressed, compression_applied=summary)

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def _project(self, level: CompressionLevel, messages: list[Message]) -> int:
        if level == CompressionLevel.LIGHT:
            return self.calculator.count_messages(self._light(messages))
        keep = self.keep_recent if level == CompressionLevel.MEDIUM else self.heavy_keep_recent
        head, interior, tail = self._partition(messages, keep)
        if level == CompressionLevel.HEAVY:
            tail = self._truncate_all(tail)
        cost = self.calculator.count_messages(head + tail)
        if interior:
            cost += self.SUMMARY_TOKEN_ESTIMATE
        return cost

    async def _apply(
        self,
        level: CompressionLevel,
        messages: list[Message],
        context: AgentExecutionContext | None,
    ) -> list[Message]:
        if level == CompressionLevel.LIGHT:
            return self._light(messages)

        keep = self.keep_recent if level == CompressionLevel.MEDIUM else self.heavy_keep_recent
        head, interior, tail = self._partition(messages, keep)
        if level == CompressionLevel.HEAVY:
            tail = self._truncate_all(tail)
        if not interior:
            return head + tail

        summary_text = await self._summarize(interior, context)
        summary_message = Message(
            role=MessageRole.USER,
            content=f"{SUMMARY_PREFIX}\n{summary_text}",
            metadata={"compressed_messages": len(interior), "level": level.value},
        )
        return head + [summary_message] + tail

    def _light(self, messages: list[Message]) -> list[Message]:
        boundary = max(len(messages) - self.keep_recent, 0)
        result = []
        for index, message in enumerate(messages):
            if index < boundary and message.role != MessageRole.SYSTEM:
                message = self._truncate_message(message)
            result.append(message)
        return result

    def _truncate_all(self, messages: list[Message]) -> list[Message]:
        return [self._truncate_message(m) for m in messages]

    def _partition(
        self, messages: list[Message], keep: int
    ) -> tuple[list[Message], list[Message], list[Message]]:
        """Split into (leading system, interior, recent tail)."""
        start = 1 if messages and messages[0].role == MessageRole.SYSTEM else 0
        cut = max(len(messages) - keep, start)
        # A Tool-role result stays with the Assistant message that requested it
        while start < cut < len(messages) and messages[cut].role == MessageRole.TOOL:
            cut -= 1
        return list(messages[:start]), list(messages[start:cut]), list(messages[cut:])

    def _truncate_message(self, message: Message) -> Message:
        if isinstance(message.content, str):
            text = self._truncate_text(message.content)
            if text is message.content:
                return message
            return message.model_copy(update={"content": text})

        changed = False
        blocks = []
        for block in message.content:
            if isinstance(block, TextBlock):
                text = self._truncate_text(block.text)
                if text is not block.text:
                    block = block.model_copy(update={"text": text})
                    changed = True
            elif isinstance(block, ToolResultBlock):
                text = self._truncate_text(block.content)
                if text is not block.content:
                    block = block.model_copy(update={"content": text})
                    changed = True
            blocks.append(block)
        if not changed:
            return message
        return message.model_copy(update={"content": blocks})

    def _truncate_text(self, text: str) -> str:
        if len(text) <= self.truncate_chars:
            return text
        dropped = len(text) - self.truncate_chars
        return f"{text[: self.truncate_chars]}\n... [truncated {dropped} characters]"

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    async def _summarize(
        self, messages: list[Message], context: AgentExecutionContext | None
    ) -> str:
        if self.llm_client is None:
            return self._digest(messages, context)

        transcript = "\n\n".join(_render(m) for m in messages)
        if context is not None:
            transcript = f"Original goal: {context.original_goal}\n\n{transcript}"
        try:
            response = await self.llm_client.chat_completion(
                [Message.system(SUMMARY_SYSTEM_PROMPT), Message.user(transcript)]
            )
        except Exception as e:
            raise CompressionError(f"Summary request failed: {e}") from e

        text = (response.message.get_text() or "").strip()
        if not text:
            raise CompressionError("Summary request returned no text")
        return text

    def _digest(self, messages: list[Message], context: AgentExecutionContext | None) -> str:
        counts: dict[str, int] = {}
        tools: list[str] = []
        first_request = None
        last_reply = None
        for message in messages:
            counts[message.role.value] = counts.get(message.role.value, 0) + 1
            for use in message.get_tool_uses():
                if use.name not in tools:
                    tools.append(use.name)
            text = message.get_text()
            if message.role == MessageRole.USER and first_request is None and text:
                first_request = text
            if message.role == MessageRole.ASSISTANT and text:
                last_reply = text

        lines = []
        if context is not None:
            lines.append(f"Goal: {context.original_goal}")
        lines.append(
            f"{len(messages)} earlier messages omitted ("
            + ", ".join(f"{role}: {n}" for role, n in sorted(counts.items()))
            + ")"
        )
        if tools:
            lines.append(f"Tools used: {', '.join(tools)}")
        if first_request:
            lines.append(f"Earlier request: {self._truncate_text_short(first_request)}")
        if last_reply:
            lines.append(f"Last assistant note: {self._truncate_text_short(last_reply)}")
        return "\n".join(lines)

    @staticmethod
    def _truncate_text_short(text: str, limit: int = 300) -> str:
        return text if len(text) <= limit else text[:limit] + "..."


def _render(message: Message) -> str:
    parts = []
    text = message.get_text()
    if text:
        parts.append(text)
    for use in message.get_tool_uses():
        parts.append(f"[tool call {use.name}] {json.dumps(use.input, ensure_ascii=False, default=str)}")
    for result in message.get_tool_results():
        status = "error" if result.is_error else "ok"
        parts.append(f"[tool result {status}] {result.content}")
    return f"{message.role.value.upper()}: " + "\n".join(parts)


__all__ = [
    "FALLBACK_MAX_MESSAGES",
    "CompressionLevel",
    "CompressionSummary",
    "ConversationManager",
    "ConversationTokenStats",
    "MaybeCompressedResult",
    "TokenCalculator",
    "fallback_trim",
]
