"""
Pydantic models for the Schedule_* tool arguments.

These models define the request contracts of the task-management tools.
Field names are snake_case in Python and camelCase on the wire
(``cronExpression``, ``toolParams``, ``taskId`` …); both spellings are
accepted.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

MAX_HISTORY_LIMIT = 20


class TaskArgs(BaseModel):
    """Common config: camelCase aliases, unknown keys rejected."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ============ REQUESTS ============

class CreateTaskArgs(TaskArgs):
    """Arguments of Schedule_CreateTask."""
    name: str = Field(..., min_length=1, description="Task name")
    cron_expression: str = Field(..., alias="cronExpression", min_length=1,
                                 description="Cron expression or @every interval")
    tool_name: Optional[str] = Field(None, alias="toolName", description="Exact tool name")
    tool_query: Optional[str] = Field(None, alias="toolQuery",
                                      description="Natural-language description of the tool")
    tool_params: Dict[str, Any] = Field(default_factory=dict, alias="toolParams",
                                        description="Parameters passed to the tool")
    enabled: bool = Field(default=True, description="Schedule immediately")

    @model_validator(mode="after")
    def _one_tool_target(self) -> "CreateTaskArgs":
        if bool(self.tool_name) == bool(self.tool_query):
            raise ValueError("Provide exactly one of toolName or toolQuery")
        return self


class TaskIdArgs(TaskArgs):
    """Arguments of tools addressing a single task."""
    task_id: str = Field(..., alias="taskId", min_length=1, description="Task ID")


class UpdateTaskArgs(TaskIdArgs):
    """Arguments of Schedule_UpdateTask; omitted fields stay unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    cron_expression: Optional[str] = Field(None, alias="cronExpression", min_length=1)
    tool_name: Optional[str] = Field(None, alias="toolName")
    tool_query: Optional[str] = Field(None, alias="toolQuery")
    tool_params: Optional[Dict[str, Any]] = Field(None, alias="toolParams")
    enabled: Optional[bool] = None

    @model_validator(mode="after")
    def _at_most_one_tool_target(self) -> "UpdateTaskArgs":
        if self.tool_name and self.tool_query:
            raise ValueError("Provide at most one of toolName or toolQuery")
        return self


class HistoryArgs(TaskIdArgs):
    """Arguments of Schedule_GetTaskHistory."""
    limit: int = Field(default=10, ge=1, le=MAX_HISTORY_LIMIT,
                       description="Number of most recent records")


class ListTasksArgs(TaskArgs):
    """Schedule_ListTasks takes no arguments."""


def format_validation_error(error: ValidationError) -> str:
    """One-line summary of a ValidationError: ``field: message; …``."""
    parts: List[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid arguments: " + "; ".join(parts)
