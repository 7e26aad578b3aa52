"""
SCHEDULER MODULE
================

Cron-scheduled tool invocations for cleanerCore.

Users bind a schedule to one registered tool (named exactly, or found by a
fuzzy description query) with fixed parameters. The scheduler persists those
tasks, fires them on schedule, and keeps a bounded execution history.

Features:
- Cron schedules (5 or 6 fields, croniter aliases) and ``@every`` intervals
- Fuzzy tool resolution with ranked suggestions
- Crash-safe JSON persistence
- Bounded per-task run history (20 records)
- Task management exposed as ``Schedule_*`` tools
"""

from .errors import (
    SchedulerError,
    InvalidArgumentError,
    TaskNotFoundError,
    ToolResolutionError,
    UnknownToolError,
    NoMatchError,
    AmbiguousMatchError,
    ScheduleError,
    TaskExecutionError,
)

from .matching import Match, Scorer, SequenceScorer, fuzzy_search, normalize
from .resolver import ToolNameResolver
from .store import ScheduledTask, TaskExecutionRecord, TaskStore
from .executor import ExecutionTracker
from .scheduler import (
    CronSchedule,
    CronTimer,
    TaskScheduler,
    UpdateOutcome,
    validate_cron_expression,
)

__all__ = [
    'SchedulerError',
    'InvalidArgumentError',
    'TaskNotFoundError',
    'ToolResolutionError',
    'UnknownToolError',
    'NoMatchError',
    'AmbiguousMatchError',
    'ScheduleError',
    'TaskExecutionError',
    'Match',
    'Scorer',
    'SequenceScorer',
    'fuzzy_search',
    'normalize',
    'ToolNameResolver',
    'ScheduledTask',
    'TaskExecutionRecord',
    'TaskStore',
    'ExecutionTracker',
    'CronSchedule',
    'CronTimer',
    'TaskScheduler',
    'UpdateOutcome',
    'validate_cron_expression',
]
