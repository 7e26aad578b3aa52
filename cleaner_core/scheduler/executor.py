"""
EXECUTION_TRACKER
=================

Runs a task's tool through the registry and records the outcome.

``execute()`` always writes a history record, whatever the tool does:

1. Invoke ``task.tool_name`` with ``task.tool_params``
2. Success → details = first ``summary_length`` chars of the output
3. Failure (unknown tool, handler raised, or ``ToolResult.success`` False)
   → details = the error message, capped at ``details_length``
4. Re-find the task by id. It may have been deleted while the tool ran:
   then log and stop. Otherwise set lastRunAt/lastRunResult, prepend the
   record, cap history at ``max_history``, refresh updatedAt and save.

The outcome is returned, never raised. The engine decides whether a caller
should see the failure (manual runs) or not (timer fires).
"""

import asyncio
import logging
import time
from datetime import datetime, timezone

from ..tools.base import ToolRegistry
from .store import (
    RESULT_FAILURE,
    RESULT_SUCCESS,
    ScheduledTask,
    TaskExecutionRecord,
    TaskStore,
)

logger = logging.getLogger(__name__)

NO_TEXT_CONTENT = "(No text content)"


class ExecutionTracker:
    """Invoke task tools and keep bounded per-task execution history."""

    def __init__(
        self,
        store: TaskStore,
        registry: ToolRegistry,
        max_history: int = 20,
        summary_length: int = 200,
        details_length: int = 500
    ):
        self.store = store
        self.registry = registry
        self.max_history = max_history
        self.summary_length = summary_length
        self.details_length = details_length

    async def execute(self, task: ScheduledTask, trigger: str = "scheduled") -> TaskExecutionRecord:
        """
        Run ``task`` once and record the outcome in its history.

        Args:
            task: Task to run (its current tool_name/tool_params are used)
            trigger: "scheduled" or "manual"

        Returns:
            The history record written for this attempt
        """
        task_id = task.id
        tool_name = task.tool_name
        params = dict(task.tool_params)
        timestamp = datetime.now(timezone.utc).isoformat()
        started = time.monotonic()

        logger.info(f"Executing task {task_id} ({task.name}) -> {tool_name} [{trigger}]")

        try:
            result = await self.registry.invoke(tool_name, params)
        except asyncio.CancelledError:
            record = self._make_record(
                timestamp, RESULT_FAILURE, "Execution cancelled", trigger, started
            )
            if self._apply(task_id, record):
                await self.store.save()
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Task {task_id} failed: {message}")
            record = self._make_record(timestamp, RESULT_FAILURE, message, trigger, started)
        else:
            if result.success:
                summary = result.output[:self.summary_length] if result.output else NO_TEXT_CONTENT
                logger.info(f"Task {task_id} succeeded: {summary}")
                record = self._make_record(timestamp, RESULT_SUCCESS, summary, trigger, started)
            else:
                message = result.error or result.output or "Tool reported failure"
                logger.error(f"Task {task_id} failed: {message}")
                record = self._make_record(timestamp, RESULT_FAILURE, message, trigger, started)

        if self._apply(task_id, record):
            await self.store.save()
        return record

    def _make_record(
        self,
        timestamp: str,
        result: str,
        details: str,
        trigger: str,
        started: float
    ) -> TaskExecutionRecord:
        return TaskExecutionRecord(
            timestamp=timestamp,
            result=result,
            details=details[:self.details_length],
            trigger=trigger,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def _apply(self, task_id: str, record: TaskExecutionRecord) -> bool:
        task = self.store.update(
            task_id,
            lambda t: t.record_execution(record, self.max_history)
        )
        if task is None:
            logger.warning(f"Task {task_id} no longer exists, execution result not recorded")
            return False
        return True
