"""
Scheduler error taxonomy.

Every error raised by the resolver, store and engine derives from
``SchedulerError`` so the tool layer can convert them into failed
ToolResults in one place.
"""

from typing import List, Optional, Tuple


class SchedulerError(Exception):
    """Base class for task scheduler errors."""


class InvalidArgumentError(SchedulerError):
    """Malformed or conflicting request."""


class TaskNotFoundError(SchedulerError):
    """No task with the requested id."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class ToolResolutionError(SchedulerError):
    """
    A task's target tool could not be resolved.

    Attributes:
        candidates: (tool_name, similarity) pairs, best first
    """

    def __init__(self, message: str, candidates: Optional[List[Tuple[str, float]]] = None):
        super().__init__(message)
        self.candidates = list(candidates or [])


class UnknownToolError(ToolResolutionError):
    """An exact tool name is not registered."""

    def __init__(self, tool_name: str, candidates: Optional[List[Tuple[str, float]]] = None):
        self.tool_name = tool_name
        message = f'Tool "{tool_name}" not found.'
        if candidates:
            names = ", ".join(name for name, _ in candidates)
            message += f" Did you mean: {names}?"
        super().__init__(message, candidates)


class NoMatchError(ToolResolutionError):
    """A free-text query matched no tool at all."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(
            f'No tool matches "{query}". Check the registered tool names and '
            f'pass toolName exactly.'
        )


class AmbiguousMatchError(ToolResolutionError):
    """A free-text query did not single out one tool strongly enough."""

    def __init__(self, query: str, candidates: List[Tuple[str, float]]):
        self.query = query
        listed = ", ".join(
            f"{name} (similarity: {score * 100:.0f}%)" for name, score in candidates
        )
        super().__init__(
            f'Query "{query}" is ambiguous. Closest tools: {listed}. '
            f'Specify toolName exactly.',
            candidates
        )


class ScheduleError(SchedulerError):
    """
    A cron expression could not be armed.

    ``task`` is set when the task was still stored, forced to disabled.
    """

    def __init__(self, message: str, task=None):
        super().__init__(message)
        self.task = task


class TaskExecutionError(SchedulerError):
    """A manual run failed; ``record`` is the history entry written for it."""

    def __init__(self, message: str, record=None):
        super().__init__(message)
        self.record = record
