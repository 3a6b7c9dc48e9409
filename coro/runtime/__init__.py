"""
Runtime module - cancellation primitives.
"""

from .control import AbortController, AbortRegistration, race_cancellation

__all__ = ["AbortController", "AbortRegistration", "race_cancellation"]
