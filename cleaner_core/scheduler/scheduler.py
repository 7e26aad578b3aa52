"""
TASK_SCHEDULER
==============

Core task scheduler engine for cleanerCore.

The scheduler:
- Loads tasks from the task store at startup and arms a timer per enabled task
- Resolves each task's target tool (exact name or fuzzy query) on create/update
- Fires tasks on their cron schedule through the execution tracker
- Runs tasks on demand ("run now"), bypassing the timer
- Manages the task lifecycle (create, update, enable, disable, delete)

Usage:
    from cleaner_core.scheduler import TaskScheduler

    scheduler = TaskScheduler(store, registry, resolver, tracker)
    await scheduler.start()
    task = await scheduler.create_task(
        name="nightly",
        cron_expression="0 2 * * *",
        tool_query="clean temp files",
        tool_params={"dryRun": True},
    )
    ...
    await scheduler.stop()

Timer Invariant
---------------
An enabled task has exactly one live ``CronTimer``; a disabled task has none.
Timers are never mutated: a schedule change stops the old timer and arms a
new one. When arming fails (invalid cron) the task is forced to
``enabled=False`` and persisted, so the invariant holds even on error.

Schedule Syntax
---------------
- Standard 5-field cron: ``"0 2 * * *"``
- 6-field cron with seconds as the last field: ``"*/10 * * * * *"``
- croniter aliases: ``"@hourly"``, ``"@daily"``, ``"@weekly"``, …
- Interval shorthand: ``"@every 30s"``, ``"@every 5m"``, ``"@every 2h"``,
  ``"@every 1d"``

Execution Slot
--------------
Each timer runs one execution at a time. If a run outlasts the period, the
fires it overlapped are skipped and the next fire is computed from the time
the run finished. Stopping a timer never interrupts its in-flight execution;
``stop()`` gives in-flight executions ``shutdown_grace_seconds`` before
cancelling them.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterError, croniter

from ..tools.base import ToolRegistry
from .errors import (
    InvalidArgumentError,
    ScheduleError,
    TaskExecutionError,
    TaskNotFoundError,
)
from .executor import ExecutionTracker
from .resolver import ToolNameResolver
from .store import ScheduledTask, TaskExecutionRecord, TaskStore

logger = logging.getLogger(__name__)

INTERVAL_PATTERN = re.compile(r"^@every\s+(\d+)\s*([smhd])$", re.IGNORECASE)
INTERVAL_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
MAX_INTERVAL_SECONDS = 3650 * 86400  # ten years


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """ZoneInfo for ``name``; UTC when empty or unknown."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using UTC")
        return timezone.utc


# ============================================================================
# SCHEDULES
# ============================================================================

class CronSchedule:
    """Parsed schedule expression: cron syntax or ``@every`` interval."""

    def __init__(self, expression: str):
        """
        Parse and validate ``expression``.

        Raises:
            ScheduleError: not a valid cron or interval expression
        """
        self.expression = (expression or "").strip()
        self.interval: Optional[timedelta] = None

        if not self.expression:
            raise ScheduleError("Cron expression is empty")

        match = INTERVAL_PATTERN.match(self.expression)
        if match:
            seconds = int(match.group(1)) * INTERVAL_UNITS[match.group(2).lower()]
            if not 0 < seconds <= MAX_INTERVAL_SECONDS:
                raise ScheduleError(f"Invalid interval: {self.expression}")
            self.interval = timedelta(seconds=seconds)
        elif not croniter.is_valid(self.expression):
            raise ScheduleError(f"Invalid cron expression: {self.expression}")

        # Some expressions parse but never fire ("0 0 30 2 *")
        self.next_after(datetime.now(timezone.utc))

    def next_after(self, base: datetime) -> datetime:
        """
        First fire time strictly after ``base``.

        Raises:
            ScheduleError: no such fire time can be computed
        """
        try:
            if self.interval is not None:
                return base + self.interval
            return croniter(self.expression, base).get_next(datetime)
        except (CroniterError, OverflowError, ValueError) as e:
            raise ScheduleError(
                f"Cannot compute next run for '{self.expression}': {e}"
            ) from e

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"


def validate_cron_expression(expression: str) -> None:
    """Raise ScheduleError when ``expression`` cannot be scheduled."""
    CronSchedule(expression)


# ============================================================================
# TIMER
# ============================================================================

class CronTimer:
    """
    Live recurring trigger for one task.

    An asyncio task sleeps until the next fire time, then runs ``on_fire``
    as its own task and waits for it (one execution at a time). Cancelling
    the timer leaves that execution running.
    """

    def __init__(
        self,
        task_id: str,
        schedule: CronSchedule,
        on_fire: Callable[[str], Awaitable[None]],
        tz: tzinfo = timezone.utc
    ):
        self.task_id = task_id
        self.schedule = schedule
        self._on_fire = on_fire
        self._tz = tz
        self._handle: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self.next_fire: Optional[datetime] = None
        self.fire_count = 0

    @property
    def is_active(self) -> bool:
        return self._handle is not None and not self._handle.done()

    @property
    def in_flight(self) -> Optional[asyncio.Task]:
        if self._in_flight is not None and not self._in_flight.done():
            return self._in_flight
        return None

    def start(self) -> None:
        if self.is_active:
            return
        self.next_fire = self.schedule.next_after(datetime.now(self._tz))
        self._handle = asyncio.get_running_loop().create_task(
            self._run(), name=f"cron-timer-{self.task_id}"
        )

    def stop(self) -> Optional[asyncio.Task]:
        """Cancel future fires; return the execution still in flight, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.next_fire = None
        return self.in_flight

    async def _run(self) -> None:
        last_fire: Optional[datetime] = None
        try:
            while True:
                now = datetime.now(self._tz)
                base = now if last_fire is None or now > last_fire else last_fire
                try:
                    self.next_fire = self.schedule.next_after(base)
                except ScheduleError as e:
                    logger.error(f"Timer for task {self.task_id} stopped: {e}")
                    self.next_fire = None
                    return

                delay = (self.next_fire - datetime.now(self._tz)).total_seconds()
                while delay > 0:
                    await asyncio.sleep(delay)
                    delay = (self.next_fire - datetime.now(self._tz)).total_seconds()

                last_fire = self.next_fire
                self.fire_count += 1
                self._in_flight = asyncio.ensure_future(self._on_fire(self.task_id))
                try:
                    await asyncio.shield(self._in_flight)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception(f"Timer fire for task {self.task_id} raised")
                self._in_flight = None
        except asyncio.CancelledError:
            logger.debug(f"Timer for task {self.task_id} cancelled")


# ============================================================================
# TASK SCHEDULER
# ============================================================================

@dataclass
class UpdateOutcome:
    """What an update actually changed."""
    task: ScheduledTask
    changed: List[str] = field(default_factory=list)
    rescheduled: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


class TaskScheduler:
    """
    Owns the live timers bound to enabled tasks.

    Responsibilities:
    - Re-arm enabled tasks at startup
    - Keep timers in step with create/update/enable/disable/delete
    - Route timer fires and manual runs to the execution tracker
    - Drain in-flight executions at shutdown
    """

    def __init__(
        self,
        store: TaskStore,
        registry: ToolRegistry,
        resolver: ToolNameResolver,
        tracker: ExecutionTracker,
        timezone_name: str = "UTC",
        shutdown_grace_seconds: float = 5.0,
        default_history_limit: int = 10
    ):
        self.store = store
        self.registry = registry
        self.resolver = resolver
        self.tracker = tracker
        self.tz = resolve_timezone(timezone_name)
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.default_history_limit = default_history_limit
        self._timers: Dict[str, CronTimer] = {}
        self._detached: Set[asyncio.Task] = set()
        self._running = False

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self) -> None:
        """Load the store and arm a timer for every enabled task."""
        if self._running:
            return
        await self.store.load()

        disabled = []
        for task in self.store.list():
            if not task.enabled:
                continue
            try:
                self._arm(task)
            except ScheduleError as e:
                logger.error(f"Task {task.id} ({task.name}) not scheduled: {e}; disabling it")
                task.enabled = False
                task.touch()
                disabled.append(task.id)

        if disabled:
            await self.store.save()

        self._running = True
        logger.info(
            f"Scheduler started: {len(self._timers)} timer(s) armed, "
            f"{len(self.store)} task(s) loaded"
        )

    async def stop(self) -> None:
        """Stop every timer and wait for in-flight executions to finish."""
        for task_id in list(self._timers):
            self._disarm(task_id)

        pending = {t for t in self._detached if not t.done()}
        if pending:
            logger.info(f"Waiting for {len(pending)} in-flight execution(s)")
            _, still_pending = await asyncio.wait(
                pending, timeout=self.shutdown_grace_seconds
            )
            for t in still_pending:
                t.cancel()
            if still_pending:
                logger.warning(f"Cancelled {len(still_pending)} execution(s) at shutdown")
                await asyncio.gather(*still_pending, return_exceptions=True)

        self._running = False
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    # ========================================================================
    # TIMERS
    # ========================================================================

    def is_scheduled(self, task_id: str) -> bool:
        timer = self._timers.get(task_id)
        return timer is not None and timer.is_active

    def scheduled_task_ids(self) -> List[str]:
        return [task_id for task_id in self._timers if self.is_scheduled(task_id)]

    def next_run_at(self, task_id: str) -> Optional[str]:
        timer = self._timers.get(task_id)
        if timer is None or timer.next_fire is None:
            return None
        return timer.next_fire.isoformat()

    def _arm(self, task: ScheduledTask) -> None:
        """Replace any timer for ``task`` with a fresh one (raises ScheduleError)."""
        schedule = CronSchedule(task.cron_expression)
        self._disarm(task.id)
        timer = CronTimer(task.id, schedule, self._fire, tz=self.tz)
        timer.start()
        self._timers[task.id] = timer
        logger.info(f"Task {task.id} ({task.name}) scheduled: {schedule.expression}")

    def _disarm(self, task_id: str) -> bool:
        timer = self._timers.pop(task_id, None)
        if timer is None:
            return False
        in_flight = timer.stop()
        if in_flight is not None:
            self._detached.add(in_flight)
            in_flight.add_done_callback(self._detached.discard)
        logger.info(f"Task {task_id} unscheduled")
        return True

    async def _fire(self, task_id: str) -> None:
        task = self.store.find(task_id)
        if task is None:
            logger.warning(f"Timer fired for missing task {task_id}")
            return
        if not task.enabled:
            logger.warning(f"Timer fired for disabled task {task_id}, skipping")
            return
        await self.tracker.execute(task, trigger="scheduled")

    # ========================================================================
    # TASK MANAGEMENT
    # ========================================================================

    async def create_task(
        self,
        name: str,
        cron_expression: str,
        tool_name: Optional[str] = None,
        tool_query: Optional[str] = None,
        tool_params: Optional[Dict[str, Any]] = None,
        enabled: bool = True
    ) -> ScheduledTask:
        """
        Create, persist and (if enabled) schedule a task.

        Raises:
            InvalidArgumentError: missing name/cron, or both/neither tool args
            ToolResolutionError: the tool could not be resolved
            ScheduleError: the task was stored but disabled (``e.task``)
        """
        name = _require_text(name, "name")
        cron_expression = _require_text(cron_expression, "cronExpression")
        tool_params = _check_params(tool_params)

        resolved = self.resolver.resolve(tool_name, tool_query)

        task = ScheduledTask(
            id=str(uuid.uuid4()),
            name=name,
            cron_expression=cron_expression,
            tool_name=resolved,
            tool_params=tool_params,
            enabled=bool(enabled),
        )
        self.store.add(task)

        if task.enabled:
            try:
                self._arm(task)
            except ScheduleError as e:
                logger.error(f"Task {task.id} ({name}) created but not scheduled: {e}")
                task.enabled = False
                await self.store.save()
                raise ScheduleError(
                    f'Task "{name}" (ID: {task.id}) was created but failed to schedule '
                    f'and has been disabled: {e}',
                    task=task
                ) from e

        await self.store.save()
        logger.info(f"Task {task.id} ({name}) created for tool {resolved}")
        return task

    async def update_task(
        self,
        task_id: str,
        name: Optional[str] = None,
        cron_expression: Optional[str] = None,
        tool_name: Optional[str] = None,
        tool_query: Optional[str] = None,
        tool_params: Optional[Dict[str, Any]] = None,
        enabled: Optional[bool] = None
    ) -> UpdateOutcome:
        """
        Apply the given field changes; ``None`` means "leave unchanged".

        The tool is resolved before anything is mutated. Only a change to
        the cron expression or the enabled flag replaces the timer.

        Raises:
            TaskNotFoundError, InvalidArgumentError, ToolResolutionError
            ScheduleError: the update was saved but the task is now disabled
        """
        task = self.get_task(task_id)

        if tool_name is not None and tool_query is not None:
            raise InvalidArgumentError("Provide at most one of toolName or toolQuery")

        changes: Dict[str, Any] = {}
        if tool_name is not None or tool_query is not None:
            resolved = self.resolver.resolve(tool_name, tool_query)
            if resolved != task.tool_name:
                changes["toolName"] = resolved
        if name is not None:
            name = _require_text(name, "name")
            if name != task.name:
                changes["name"] = name
        if cron_expression is not None:
            cron_expression = _require_text(cron_expression, "cronExpression")
            if cron_expression != task.cron_expression:
                changes["cronExpression"] = cron_expression
        if tool_params is not None:
            tool_params = _check_params(tool_params)
            if tool_params != task.tool_params:
                changes["toolParams"] = tool_params
        if enabled is not None and bool(enabled) != task.enabled:
            changes["enabled"] = bool(enabled)

        if not changes:
            return UpdateOutcome(task=task)

        task.name = changes.get("name", task.name)
        task.cron_expression = changes.get("cronExpression", task.cron_expression)
        task.tool_name = changes.get("toolName", task.tool_name)
        task.tool_params = changes.get("toolParams", task.tool_params)
        task.enabled = changes.get("enabled", task.enabled)
        task.touch()

        needs_reschedule = "cronExpression" in changes or "enabled" in changes
        has_timer = task.id in self._timers
        rescheduled = False

        if has_timer and (needs_reschedule or not task.enabled):
            self._disarm(task.id)
            rescheduled = True

        if task.enabled and (needs_reschedule or not has_timer):
            try:
                self._arm(task)
                rescheduled = True
            except ScheduleError as e:
                logger.error(f"Task {task.id} ({task.name}) updated but not scheduled: {e}")
                task.enabled = False
                await self.store.save()
                raise ScheduleError(
                    f'Task "{task.name}" (ID: {task.id}) was updated but failed to '
                    f'schedule and has been disabled: {e}',
                    task=task
                ) from e

        await self.store.save()
        logger.info(f"Task {task.id} updated: {', '.join(changes)}")
        return UpdateOutcome(task=task, changed=list(changes), rescheduled=rescheduled)

    async def enable_task(self, task_id: str) -> bool:
        """
        Enable and schedule a task.

        Returns:
            False if it was already enabled (nothing changed)

        Raises:
            TaskNotFoundError
            ScheduleError: the cron expression is invalid; task stays disabled
        """
        task = self.get_task(task_id)
        if task.enabled:
            return False

        try:
            self._arm(task)
        except ScheduleError as e:
            logger.error(f"Task {task.id} ({task.name}) could not be enabled: {e}")
            raise ScheduleError(
                f'Failed to enable task "{task.name}" (ID: {task.id}): {e}',
                task=task
            ) from e

        task.enabled = True
        task.touch()
        await self.store.save()
        return True

    async def disable_task(self, task_id: str) -> bool:
        """
        Disable a task and stop its timer.

        Returns:
            False if it was already disabled (nothing changed)
        """
        task = self.get_task(task_id)
        if not task.enabled:
            return False

        self._disarm(task.id)
        task.enabled = False
        task.touch()
        await self.store.save()
        return True

    async def delete_task(self, task_id: str) -> ScheduledTask:
        """Stop the timer and remove the task. An in-flight run still finishes."""
        task = self.get_task(task_id)
        self._disarm(task.id)
        self.store.remove(task.id)
        await self.store.save()
        logger.info(f"Task {task.id} ({task.name}) deleted")
        return task

    async def run_task_now(self, task_id: str) -> TaskExecutionRecord:
        """
        Execute a task immediately, whatever its enabled state.

        Returns:
            The success record

        Raises:
            TaskNotFoundError
            TaskExecutionError: the run failed (recorded in history, ``e.record``)
        """
        task = self.get_task(task_id)
        record = await self.tracker.execute(task, trigger="manual")
        if not record.succeeded:
            raise TaskExecutionError(
                f'Task "{task.name}" (ID: {task.id}) failed: {record.details}',
                record=record
            )
        return record

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def list_tasks(self) -> List[dict]:
        """Summaries of all tasks (no params or history) with next run time."""
        tasks = []
        for task in self.store.list():
            summary = task.summary()
            summary["nextRunAt"] = self.next_run_at(task.id)
            tasks.append(summary)
        return tasks

    def get_task(self, task_id: str) -> ScheduledTask:
        task = self.store.find(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def get_task_history(self, task_id: str, limit: Optional[int] = None) -> List[TaskExecutionRecord]:
        """Most recent ``limit`` execution records, newest first."""
        if limit is None:
            limit = self.default_history_limit
        max_limit = self.tracker.max_history
        if not 1 <= limit <= max_limit:
            raise InvalidArgumentError(f"limit must be between 1 and {max_limit}")
        task = self.get_task(task_id)
        return task.execution_history[:limit]


def _require_text(value: Optional[str], field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{field_name} must be a non-empty string")
    return value.strip()


def _check_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidArgumentError("toolParams must be an object")
    return dict(params)
