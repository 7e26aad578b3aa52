"""
Tool system for cleanerCore.

Tools are the named operations the service exposes. Each tool defines a JSON
schema (so a caller knows how to invoke it) and an async execute method.

Registered Tools
----------------
**Task Management** (task_tools.py), requires a TaskScheduler:
  - ``Schedule_CreateTask``     — Create a scheduled task
  - ``Schedule_ListTasks``      — List task summaries
  - ``Schedule_GetTaskDetails`` — Get a full task record
  - ``Schedule_UpdateTask``     — Update task fields
  - ``Schedule_EnableTask``     — Enable a task
  - ``Schedule_DisableTask``    — Disable a task
  - ``Schedule_DeleteTask``     — Delete a task
  - ``Schedule_RunTaskNow``     — Run a task immediately
  - ``Schedule_GetTaskHistory`` — Recent execution records

**Collaborator operations** (scanners, cleaners, …) are provided by the
hosting framework: any module listed in ``tool_modules`` is imported at
startup and its ``register_tools(registry)`` is called.
"""

from .base import (
    BaseTool,
    FunctionTool,
    ToolParameter,
    ToolDefinition,
    ToolResult,
    ToolRegistry,
    ToolNotFoundError,
    DuplicateToolError,
    coerce_result,
)

from .task_tools import (
    ScheduleTool,
    CreateTaskTool,
    ListTasksTool,
    GetTaskDetailsTool,
    UpdateTaskTool,
    EnableTaskTool,
    DisableTaskTool,
    DeleteTaskTool,
    RunTaskNowTool,
    GetTaskHistoryTool,
    register_schedule_tools,
)

__all__ = [
    # Base classes
    "BaseTool",
    "FunctionTool",
    "ToolParameter",
    "ToolDefinition",
    "ToolResult",
    "ToolRegistry",
    "ToolNotFoundError",
    "DuplicateToolError",
    "coerce_result",
    # Task tools
    "ScheduleTool",
    "CreateTaskTool",
    "ListTasksTool",
    "GetTaskDetailsTool",
    "UpdateTaskTool",
    "EnableTaskTool",
    "DisableTaskTool",
    "DeleteTaskTool",
    "RunTaskNowTool",
    "GetTaskHistoryTool",
    "register_schedule_tools",
]
