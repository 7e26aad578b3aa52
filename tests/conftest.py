"""Shared fixtures: a registry of fake cleaner operations and a started scheduler.

The fake operations record their calls so tests can assert what ran and with
which parameters.
"""

from typing import Any, Dict, List, Tuple

import pytest
import pytest_asyncio

from cleaner_core.scheduler.executor import ExecutionTracker
from cleaner_core.scheduler.resolver import ToolNameResolver
from cleaner_core.scheduler.scheduler import TaskScheduler
from cleaner_core.scheduler.store import TaskStore
from cleaner_core.tools.base import ToolRegistry, ToolResult

Call = Tuple[str, Dict[str, Any]]


def register_fake_cleaners(registry: ToolRegistry, calls: List[Call]) -> None:
    """Register a small, realistic set of collaborator operations."""

    async def clean_temp_files(params: Dict[str, Any]) -> str:
        calls.append(("Cleaner_CleanTempFiles", params))
        return f"Removed 3 temporary files (dryRun={params.get('dryRun', False)})"

    def clean_app_caches(params: Dict[str, Any]) -> ToolResult:
        calls.append(("CleanAppCaches", params))
        return ToolResult(success=True, output="Cleared 120 MB of application caches")

    async def empty_trash(params: Dict[str, Any]) -> ToolResult:
        calls.append(("Cleaner_EmptyTrash", params))
        return ToolResult(success=False, output="", error="Trash is locked by another process")

    async def scan_large_files(params: Dict[str, Any]) -> str:
        calls.append(("Scan_LargeFiles", params))
        raise RuntimeError(f"Directory not found: {params.get('path')}")

    registry.register_function(
        "Cleaner_CleanTempFiles",
        "Remove temporary files from the system temp directories",
        clean_temp_files,
    )
    registry.register_function(
        "CleanAppCaches",
        "Clear application caches left behind by installed apps",
        clean_app_caches,
    )
    registry.register_function(
        "Cleaner_EmptyTrash",
        "Permanently empty the user's trash bin",
        empty_trash,
    )
    registry.register_function(
        "Scan_LargeFiles",
        "Find the largest files under a directory",
        scan_large_files,
    )


@pytest.fixture()
def calls() -> List[Call]:
    return []


@pytest.fixture()
def registry(calls: List[Call]) -> ToolRegistry:
    registry = ToolRegistry()
    register_fake_cleaners(registry, calls)
    return registry


@pytest.fixture()
def store_path(tmp_path) -> str:
    return str(tmp_path / "config" / "schedules.json")


@pytest.fixture()
def store(store_path: str) -> TaskStore:
    return TaskStore(store_path)


@pytest.fixture()
def tracker(store: TaskStore, registry: ToolRegistry) -> ExecutionTracker:
    return ExecutionTracker(store, registry)


@pytest_asyncio.fixture()
async def scheduler(store: TaskStore, registry: ToolRegistry, tracker: ExecutionTracker):
    sched = TaskScheduler(store, registry, ToolNameResolver(registry), tracker)
    await sched.start()
    yield sched
    await sched.stop()


def assert_timer_invariant(scheduler: TaskScheduler) -> None:
    """Enabled tasks have exactly one live timer; disabled tasks have none."""
    scheduled = scheduler.scheduled_task_ids()
    assert len(scheduled) == len(set(scheduled))
    for task in scheduler.store.list():
        assert scheduler.is_scheduled(task.id) == task.enabled, task.id
    assert set(scheduled) <= {t.id for t in scheduler.store.list()}
