"""
Exception hierarchy for coro.

Task-level outcomes (step error, incomplete after max steps, interrupted)
are not exceptions; they are reported through AgentExecution.
"""


class CoroError(Exception):
    """Base exception for all coro errors."""

    pass


# ============================================================================
# Transport errors (model capability)
# ============================================================================


class LLMError(CoroError):
    """Base exception for model client failures."""

    pass


class LLMAuthenticationError(LLMError):
    """Credential rejected or missing at request time."""

    pass


class LLMNetworkError(LLMError):
    """Connection failure, timeout or unreadable response."""

    pass


class LLMInvalidRequestError(LLMError):
    """The request could not be built locally."""

    pass


class LLMAPIError(LLMError):
    """The provider rejected the request."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"API error ({status}): {message}")


class LLMUnsupportedError(LLMError):
    """The client does not support the requested capability."""

    pass


# ============================================================================
# Tool errors
# ============================================================================


class ToolError(CoroError):
    """Base exception for tool failures."""

    pass


class ToolNotFoundError(ToolError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ToolExecutionError(ToolError):
    def __init__(self, name: str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"Tool '{name}' failed: {message}")


# ============================================================================
# Persistence errors
# ============================================================================


class PersistenceError(CoroError):
    """Base exception for storage failures."""

    pass


class TrajectoryError(PersistenceError):
    pass


class TrajectoryRecordingError(TrajectoryError):
    """Writing the trajectory document failed."""

    pass


class TrajectoryLoadError(TrajectoryError):
    """The trajectory path does not exist or cannot be read."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Failed to load trajectory from {path}")


class TrajectoryFormatError(TrajectoryError):
    """The trajectory file exists but is not a valid trajectory document."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Invalid trajectory format in {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SnapshotError(PersistenceError):
    """Reading, writing or parsing a context snapshot failed."""

    pass


# ============================================================================
# Compression
# ============================================================================


class CompressionError(CoroError):
    """Compression could not be completed; callers fall back to trimming."""

    pass


__all__ = [
    "CoroError",
    "LLMError",
    "LLMAuthenticationError",
    "LLMNetworkError",
    "LLMInvalidRequestError",
    "LLMAPIError",
    "LLMUnsupportedError",
    "ToolError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "PersistenceError",
    "TrajectoryError",
    "TrajectoryRecordingError",
    "TrajectoryLoadError",
    "TrajectoryFormatError",
    "SnapshotError",
    "CompressionError",
]
