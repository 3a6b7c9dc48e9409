"""
Structured logging for coro.

All modules obtain their logger through ``get_logger(__name__)`` and log
snake_case events with keyword context:

    logger = get_logger(__name__)
    logger.info("tool_execution_completed", tool_name="bash", success=True)
"""

import logging
import sys

import structlog

_configured = False


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        level: Log level name, defaults to settings.log_level
        json_logs: Render JSON lines instead of console output,
            defaults to the inverse of settings.debug
    """
    global _configured

    from coro.config.settings import settings

    level = (level or settings.log_level).upper()
    if json_logs is None:
        json_logs = not settings.debug

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to the given module name."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
