"""
CLEANER RUNTIME
===============

Service object that owns every piece of live state: the tool registry, the
task store, the resolver, the execution tracker and the scheduler (with its
timer map). Nothing is held in module globals; tests build a fresh runtime
per case.

Architecture
------------
::

    CleanerRuntime
    ├── config       GlobalConfig
    ├── registry     ToolRegistry   ← Schedule_* tools + tool_modules
    ├── store        TaskStore      (schedules.json)
    ├── resolver     ToolNameResolver(registry)
    ├── tracker      ExecutionTracker(store, registry)
    └── scheduler    TaskScheduler(store, registry, resolver, tracker)

Lifecycle
---------
1. ``CleanerRuntime(config)``: build components, register Schedule_* tools,
   import ``tool_modules`` and call their ``register_tools(registry)``.
2. ``await start()``: load the store and arm timers for enabled tasks.
3. ``await call_tool(name, params)``: caller-facing tool calls.
4. ``await stop()``: stop timers, drain in-flight executions.

Collaborator tools should be registered before ``start()`` so that tasks
created by name can be resolved; the registry is append-only afterwards.

Usage::

    async with CleanerRuntime(load_config()) as runtime:
        result = await runtime.call_tool("Schedule_ListTasks", {})
"""

import importlib
import logging
from typing import Dict, Optional

from .config.loader import GlobalConfig
from .scheduler.executor import ExecutionTracker
from .scheduler.resolver import ToolNameResolver
from .scheduler.scheduler import TaskScheduler
from .scheduler.store import TaskStore
from .tools.base import ToolRegistry, ToolResult
from .tools.task_tools import register_schedule_tools

logger = logging.getLogger(__name__)


class CleanerRuntime:
    """Owns registry, store and scheduler for one service process."""

    def __init__(
        self,
        config: Optional[GlobalConfig] = None,
        registry: Optional[ToolRegistry] = None
    ):
        self.config = config or GlobalConfig()
        sched_cfg = self.config.scheduler

        self.registry = registry or ToolRegistry(max_output_size=self.config.max_output_size)
        self.store = TaskStore(str(self.config.paths.schedules_path))
        self.resolver = ToolNameResolver(self.registry, config=self.config.resolver)
        self.tracker = ExecutionTracker(
            self.store,
            self.registry,
            max_history=sched_cfg.max_history,
            summary_length=sched_cfg.summary_length,
            details_length=sched_cfg.details_length,
        )
        self.scheduler = TaskScheduler(
            self.store,
            self.registry,
            self.resolver,
            self.tracker,
            timezone_name=sched_cfg.timezone,
            shutdown_grace_seconds=sched_cfg.shutdown_grace_seconds,
            default_history_limit=sched_cfg.default_history_limit,
        )

        register_schedule_tools(self.registry, self.scheduler)
        for module_name in self.config.tool_modules:
            self.load_tool_module(module_name)

    def load_tool_module(self, module_name: str) -> None:
        """
        Import ``module_name`` and call its ``register_tools(registry)``.

        Raises:
            ImportError: module cannot be imported
            AttributeError: module has no register_tools
        """
        module = importlib.import_module(module_name)
        register = getattr(module, "register_tools", None)
        if register is None:
            raise AttributeError(f"Tool module {module_name} has no register_tools(registry)")
        before = len(self.registry)
        register(self.registry)
        logger.info(f"Loaded {len(self.registry) - before} tool(s) from {module_name}")

    async def start(self) -> None:
        logger.info(f"Starting runtime with task store {self.store.path}")
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def call_tool(self, name: str, params: Optional[Dict] = None) -> ToolResult:
        """Caller-facing tool call; failures come back as ToolResult."""
        return await self.registry.execute(name, params or {})

    async def __aenter__(self) -> "CleanerRuntime":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
