"""
System prompt construction.
"""

import os
import platform
from datetime import datetime

from coro.domain import Message

DEFAULT_SYSTEM_PROMPT = """You are an expert AI software engineering agent.

Your job is to complete the user's task in the project described below. Work step by step:
inspect the relevant files, make focused changes, and verify them with the tools you have.
Think before acting on anything non-trivial. When the task is done and verified, call the
task_done tool with a short summary of what you did.

IMPORTANT: When using tools that require file paths, always use absolute paths built from
the project root path below."""


def build_system_context() -> str:
    """Generic environment facts, free of any project details."""
    return "\n".join(
        [
            "System Information:",
            f"- Operating System: {platform.system()} {platform.release()}",
            f"- Architecture: {platform.machine()}",
            f"- Shell: {os.environ.get('SHELL', 'unknown')}",
            f"- Current date: {datetime.now().strftime('%Y-%m-%d')}",
        ]
    )


def build_system_prompt_with_context(project_path: str) -> str:
    return (
        f"{DEFAULT_SYSTEM_PROMPT}\n\n"
        f"Project root path: {project_path}\n\n"
        f"{build_system_context()}"
    )


def build_system_prompt(
    custom_prompt: str | None, project_path: str, tool_names: list[str]
) -> str:
    """
    Default prompt with project context, or the custom prompt with generic
    system context; both end with the available tool names.
    """
    if custom_prompt is not None:
        base_prompt = f"{custom_prompt}\n\n[System Context]:\n{build_system_context()}"
    else:
        base_prompt = build_system_prompt_with_context(project_path)
    return f"{base_prompt}\n\nAvailable tools: {', '.join(tool_names)}"


def build_user_message(task: str) -> Message:
    return Message.user(task)


__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "build_system_context",
    "build_system_prompt",
    "build_system_prompt_with_context",
    "build_user_message",
]
