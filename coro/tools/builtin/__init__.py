from .sequential_thinking import SequentialThinkingTool
from .task_done import TaskDoneTool

__all__ = ["SequentialThinkingTool", "TaskDoneTool"]
