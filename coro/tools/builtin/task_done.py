from typing import Any

from coro.domain import ToolCall, ToolResult
from coro.tools.base import BaseTool


class TaskDoneTool(BaseTool):
    """Completion signal: the model calls this once the task is finished."""

    completes_task = True

    def get_name(self) -> str:
        return "task_done"

    def get_description(self) -> str:
        return (
            "Report that the task has been completed. Call this only after "
            "the work is done and verified. Provide a short summary of what "
            "was accomplished."
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "summary": {
                    "type": "string",
                    "description": "Short summary of the completed work",
                }
            },
            "required": [],
        }

    async def execute(self, call: ToolCall) -> ToolResult:
        params = call.parameters if isinstance(call.parameters, dict) else {}
        summary = params.get("summary") or "Task completed"
        return ToolResult.ok(call.id, summary, data={"summary": summary})
