"""
CLEANER_CORE
============

Local tool-invocation service with a cron task scheduler.

Features:
- Tool registry with exact-name invocation and schema export
- Fuzzy tool resolution from natural-language queries
- Cron / interval scheduled tasks persisted to JSON
- Bounded per-task execution history
- Task management exposed as Schedule_* tools

Usage:
    from cleaner_core import CleanerRuntime, load_config

    async with CleanerRuntime(load_config()) as runtime:
        runtime.registry.register_function(
            "Cleaner_CleanTempFiles", "Remove temporary files", clean_temp_files
        )
        result = await runtime.call_tool("Schedule_CreateTask", {
            "name": "nightly",
            "cronExpression": "0 2 * * *",
            "toolQuery": "clean temp files",
        })
"""

__version__ = "1.0.0"

# Configuration
from .config import GlobalConfig, load_config
from .logging_config import setup_logging

# Tools
from .tools import (
    BaseTool,
    FunctionTool,
    ToolRegistry,
    ToolDefinition,
    ToolParameter,
    ToolResult,
    ToolNotFoundError,
    DuplicateToolError,
)

# Scheduler
from .scheduler import (
    TaskScheduler,
    TaskStore,
    ScheduledTask,
    TaskExecutionRecord,
    ExecutionTracker,
    ToolNameResolver,
    SchedulerError,
)

# Runtime
from .runtime import CleanerRuntime

__all__ = [
    "__version__",
    "GlobalConfig",
    "load_config",
    "setup_logging",
    "BaseTool",
    "FunctionTool",
    "ToolRegistry",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    "ToolNotFoundError",
    "DuplicateToolError",
    "TaskScheduler",
    "TaskStore",
    "ScheduledTask",
    "TaskExecutionRecord",
    "ExecutionTracker",
    "ToolNameResolver",
    "SchedulerError",
    "CleanerRuntime",
]
