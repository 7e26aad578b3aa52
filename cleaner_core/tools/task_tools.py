"""
TASK_TOOLS
==========

Tools for managing scheduled tasks in cleanerCore (9 tools).

These tools are the caller-facing surface of the scheduler. Each one
validates its arguments with a pydantic model, calls the TaskScheduler, and
turns scheduler errors into ``ToolResult(success=False)`` with an actionable
message (for example the candidate tools of an ambiguous query).

Task Storage
------------
All tasks live in one JSON document (``schedules.json`` in the per-user
config directory), rewritten on every change. See ``scheduler/store.py``.

Tool Targets
------------
A task names its tool with exactly one of:
- ``toolName``: exact registered name (unknown names get "did you mean")
- ``toolQuery``: natural-language description, fuzzy-matched against tool
  names and descriptions; only a clear winner is accepted

Tools
-----
- ``Schedule_CreateTask``     — Create a task (and schedule it if enabled)
- ``Schedule_ListTasks``      — Summaries of all tasks
- ``Schedule_GetTaskDetails`` — Full task record
- ``Schedule_UpdateTask``     — Change any mutable field
- ``Schedule_EnableTask``     — Enable and schedule
- ``Schedule_DisableTask``    — Disable and unschedule
- ``Schedule_DeleteTask``     — Permanently delete
- ``Schedule_RunTaskNow``     — Run immediately, bypassing the schedule
- ``Schedule_GetTaskHistory`` — Most recent execution records (max 20)
"""

import json
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, List, Type

from pydantic import ValidationError

from ..scheduler.errors import ScheduleError, SchedulerError, TaskExecutionError
from .base import BaseTool, ToolDefinition, ToolParameter, ToolRegistry, ToolResult
from .task_models import (
    MAX_HISTORY_LIMIT,
    CreateTaskArgs,
    HistoryArgs,
    ListTasksArgs,
    TaskArgs,
    TaskIdArgs,
    UpdateTaskArgs,
    format_validation_error,
)

if TYPE_CHECKING:
    from ..scheduler.scheduler import TaskScheduler

logger = logging.getLogger(__name__)


TASK_ID_PARAM = ToolParameter(
    name="taskId",
    type="string",
    description="ID of the task",
    required=True
)


def _label(task) -> str:
    return f'Task "{task.name}" (ID: {task.id})'


class ScheduleTool(BaseTool):
    """
    Base for the Schedule_* tools.

    Subclasses set ``args_model`` and implement ``definition`` and ``run``.
    """

    args_model: Type[TaskArgs] = TaskIdArgs

    def __init__(self, scheduler: "TaskScheduler"):
        """
        Args:
            scheduler: TaskScheduler instance
        """
        self.scheduler = scheduler

    async def execute(self, **kwargs) -> ToolResult:
        try:
            args = self.args_model.model_validate(kwargs)
        except ValidationError as e:
            return ToolResult(success=False, output="", error=format_validation_error(e))

        try:
            return await self.run(args)
        except SchedulerError as e:
            logger.info(f"{self.name} failed: {e}")
            return ToolResult(success=False, output="", error=str(e))

    @abstractmethod
    async def run(self, args: Any) -> ToolResult:
        pass


class CreateTaskTool(ScheduleTool):
    """Create a new scheduled task bound to one tool."""

    args_model = CreateTaskArgs

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_CreateTask",
            description=(
                "Create a scheduled task that runs a tool on a cron schedule. "
                "Identify the tool with exactly one of toolName (exact name) or "
                "toolQuery (description, fuzzy matched)."
            ),
            parameters=[
                ToolParameter(
                    name="name",
                    type="string",
                    description="Human-readable name for the task",
                    required=True
                ),
                ToolParameter(
                    name="cronExpression",
                    type="string",
                    description="Cron expression (e.g. '0 2 * * *' for 2am daily) or '@every 30m'",
                    required=True
                ),
                ToolParameter(
                    name="toolName",
                    type="string",
                    description="Exact name of the tool to run",
                    required=False
                ),
                ToolParameter(
                    name="toolQuery",
                    type="string",
                    description="Description of the tool to run (e.g. 'clean temp files')",
                    required=False
                ),
                ToolParameter(
                    name="toolParams",
                    type="object",
                    description="Parameters passed to the tool on every run",
                    required=False
                ),
                ToolParameter(
                    name="enabled",
                    type="boolean",
                    description="Whether the task is scheduled right away (default: true)",
                    required=False,
                    default=True
                )
            ]
        )

    async def run(self, args: CreateTaskArgs) -> ToolResult:
        try:
            task = await self.scheduler.create_task(
                name=args.name,
                cron_expression=args.cron_expression,
                tool_name=args.tool_name,
                tool_query=args.tool_query,
                tool_params=args.tool_params,
                enabled=args.enabled
            )
        except ScheduleError as e:
            metadata = {"task_id": e.task.id, "enabled": False} if e.task else None
            return ToolResult(success=False, output="", error=str(e), metadata=metadata)

        return ToolResult(
            success=True,
            output=(
                f"{_label(task)} created.\n"
                f"  Tool: {task.tool_name}\n"
                f"  Schedule: {task.cron_expression}\n"
                f"  Enabled: {task.enabled}"
            ),
            metadata={
                "task_id": task.id,
                "tool_name": task.tool_name,
                "enabled": task.enabled,
                "next_run": self.scheduler.next_run_at(task.id)
            }
        )


class ListTasksTool(ScheduleTool):
    """List all scheduled tasks (summaries, no history)."""

    args_model = ListTasksArgs

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_ListTasks",
            description="List all scheduled tasks with their status and last/next run.",
            parameters=[]
        )

    async def run(self, args: ListTasksArgs) -> ToolResult:
        tasks = self.scheduler.list_tasks()
        return ToolResult(
            success=True,
            output=json.dumps(tasks, indent=2),
            metadata={"count": len(tasks)}
        )


class GetTaskDetailsTool(ScheduleTool):
    """Full record of one task, including parameters and history."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_GetTaskDetails",
            description="Get the full record of a scheduled task, including parameters and history.",
            parameters=[TASK_ID_PARAM]
        )

    async def run(self, args: TaskIdArgs) -> ToolResult:
        task = self.scheduler.get_task(args.task_id)
        details = task.to_dict()
        details["nextRunAt"] = self.scheduler.next_run_at(task.id)
        return ToolResult(
            success=True,
            output=json.dumps(details, indent=2),
            metadata={"task_id": task.id}
        )


class UpdateTaskTool(ScheduleTool):
    """Change any mutable field of a task."""

    args_model = UpdateTaskArgs

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_UpdateTask",
            description=(
                "Update a scheduled task. Only the given fields change. Changing "
                "cronExpression or enabled reschedules the task."
            ),
            parameters=[
                TASK_ID_PARAM,
                ToolParameter(name="name", type="string", description="New name", required=False),
                ToolParameter(name="cronExpression", type="string",
                              description="New cron expression", required=False),
                ToolParameter(name="toolName", type="string",
                              description="New exact tool name", required=False),
                ToolParameter(name="toolQuery", type="string",
                              description="New tool, by description", required=False),
                ToolParameter(name="toolParams", type="object",
                              description="Replacement tool parameters", required=False),
                ToolParameter(name="enabled", type="boolean",
                              description="Enable or disable the task", required=False)
            ]
        )

    async def run(self, args: UpdateTaskArgs) -> ToolResult:
        try:
            outcome = await self.scheduler.update_task(
                args.task_id,
                name=args.name,
                cron_expression=args.cron_expression,
                tool_name=args.tool_name,
                tool_query=args.tool_query,
                tool_params=args.tool_params,
                enabled=args.enabled
            )
        except ScheduleError as e:
            metadata = {"task_id": e.task.id, "enabled": False} if e.task else None
            return ToolResult(success=False, output="", error=str(e), metadata=metadata)

        task = outcome.task
        if not outcome.has_changes:
            return ToolResult(
                success=True,
                output=f"No changes were made to {_label(task)}.",
                metadata={"task_id": task.id, "changed": []}
            )

        return ToolResult(
            success=True,
            output=f"{_label(task)} updated: {', '.join(outcome.changed)}.",
            metadata={
                "task_id": task.id,
                "changed": outcome.changed,
                "rescheduled": outcome.rescheduled,
                "enabled": task.enabled
            }
        )


class EnableTaskTool(ScheduleTool):
    """Enable a task and arm its timer."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_EnableTask",
            description="Enable a disabled task so it runs on its schedule.",
            parameters=[TASK_ID_PARAM]
        )

    async def run(self, args: TaskIdArgs) -> ToolResult:
        changed = await self.scheduler.enable_task(args.task_id)
        task = self.scheduler.get_task(args.task_id)
        message = f"{_label(task)} enabled." if changed else f"{_label(task)} is already enabled."
        return ToolResult(
            success=True,
            output=message,
            metadata={"task_id": task.id, "changed": changed}
        )


class DisableTaskTool(ScheduleTool):
    """Disable a task and stop its timer."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_DisableTask",
            description="Disable a task (pause its schedule without deleting it).",
            parameters=[TASK_ID_PARAM]
        )

    async def run(self, args: TaskIdArgs) -> ToolResult:
        changed = await self.scheduler.disable_task(args.task_id)
        task = self.scheduler.get_task(args.task_id)
        message = f"{_label(task)} disabled." if changed else f"{_label(task)} is already disabled."
        return ToolResult(
            success=True,
            output=message,
            metadata={"task_id": task.id, "changed": changed}
        )


class DeleteTaskTool(ScheduleTool):
    """Permanently delete a task."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_DeleteTask",
            description="Permanently delete a scheduled task and its history.",
            parameters=[TASK_ID_PARAM]
        )

    async def run(self, args: TaskIdArgs) -> ToolResult:
        task = await self.scheduler.delete_task(args.task_id)
        return ToolResult(
            success=True,
            output=f"{_label(task)} deleted.",
            metadata={"task_id": task.id}
        )


class RunTaskNowTool(ScheduleTool):
    """Run a task immediately and report the outcome."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_RunTaskNow",
            description=(
                "Run a task immediately, regardless of its schedule or enabled state. "
                "The run is recorded in the task history."
            ),
            parameters=[TASK_ID_PARAM]
        )

    async def run(self, args: TaskIdArgs) -> ToolResult:
        try:
            record = await self.scheduler.run_task_now(args.task_id)
        except TaskExecutionError as e:
            return ToolResult(
                success=False,
                output="",
                error=str(e),
                metadata={"task_id": args.task_id, "record": e.record.to_dict() if e.record else None}
            )

        task = self.scheduler.get_task(args.task_id)
        return ToolResult(
            success=True,
            output=f"{_label(task)} ran successfully.\nResult: {record.details}",
            metadata={"task_id": task.id, "record": record.to_dict()}
        )


class GetTaskHistoryTool(ScheduleTool):
    """Most recent execution records of a task."""

    args_model = HistoryArgs

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="Schedule_GetTaskHistory",
            description="Get the most recent execution records of a task, newest first.",
            parameters=[
                TASK_ID_PARAM,
                ToolParameter(
                    name="limit",
                    type="integer",
                    description=f"Number of records to return (default 10, max {MAX_HISTORY_LIMIT})",
                    required=False,
                    default=10,
                    minimum=1,
                    maximum=MAX_HISTORY_LIMIT
                )
            ]
        )

    async def run(self, args: HistoryArgs) -> ToolResult:
        records = self.scheduler.get_task_history(args.task_id, limit=args.limit)
        return ToolResult(
            success=True,
            output=json.dumps([r.to_dict() for r in records], indent=2),
            metadata={"task_id": args.task_id, "count": len(records)}
        )


SCHEDULE_TOOL_CLASSES = [
    ListTasksTool,
    CreateTaskTool,
    GetTaskDetailsTool,
    UpdateTaskTool,
    EnableTaskTool,
    DisableTaskTool,
    DeleteTaskTool,
    RunTaskNowTool,
    GetTaskHistoryTool,
]


def register_schedule_tools(registry: ToolRegistry, scheduler: "TaskScheduler") -> List[BaseTool]:
    """Register every Schedule_* tool for ``scheduler``; returns the instances."""
    tools = [cls(scheduler) for cls in SCHEDULE_TOOL_CLASSES]
    for tool in tools:
        registry.register(tool)
    return tools
