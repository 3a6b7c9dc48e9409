"""
Output module - AgentOutput capability and implementations.
"""

from .base import AgentOutput
from .logging import LoggingOutput
from .null import NullOutput
from .wire import ConfirmationHandler, WireOutput

__all__ = [
    "AgentOutput",
    "ConfirmationHandler",
    "LoggingOutput",
    "NullOutput",
    "WireOutput",
]
