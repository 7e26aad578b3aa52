"""Tests for the execution tracker."""

import json

import pytest

from cleaner_core.scheduler.executor import NO_TEXT_CONTENT, ExecutionTracker
from cleaner_core.scheduler.store import ScheduledTask, TaskStore
from cleaner_core.tools.base import ToolRegistry


def _add_task(store: TaskStore, tool_name: str, params=None, task_id: str = "t1") -> ScheduledTask:
    task = ScheduledTask(
        id=task_id,
        name="job",
        cron_expression="0 2 * * *",
        tool_name=tool_name,
        tool_params=params or {},
    )
    store.add(task)
    return task


class TestOutcomes:
    @pytest.mark.asyncio()
    async def test_success_records_summary(self, store, tracker, calls) -> None:
        task = _add_task(store, "Cleaner_CleanTempFiles", {"dryRun": True})

        record = await tracker.execute(task, trigger="manual")

        assert record.succeeded
        assert record.details == "Removed 3 temporary files (dryRun=True)"
        assert record.trigger == "manual"
        assert record.duration_ms >= 0
        assert calls == [("Cleaner_CleanTempFiles", {"dryRun": True})]
        assert task.last_run_result == "success"
        assert task.last_run_at == record.timestamp
        assert task.execution_history == [record]

    @pytest.mark.asyncio()
    async def test_long_output_truncated_to_summary(self, store: TaskStore) -> None:
        registry = ToolRegistry()
        registry.register_function("Report", "Long report", lambda params: "x" * 1000)
        tracker = ExecutionTracker(store, registry)
        task = _add_task(store, "Report")

        record = await tracker.execute(task)
        assert record.details == "x" * 200

    @pytest.mark.asyncio()
    async def test_empty_output_placeholder(self, store: TaskStore) -> None:
        registry = ToolRegistry()
        registry.register_function("Quiet", "Says nothing", lambda params: None)
        tracker = ExecutionTracker(store, registry)
        task = _add_task(store, "Quiet")

        record = await tracker.execute(task)
        assert record.succeeded
        assert record.details == NO_TEXT_CONTENT

    @pytest.mark.asyncio()
    async def test_raised_exception_recorded(self, store, tracker) -> None:
        task = _add_task(store, "Scan_LargeFiles", {"path": "/nope"})

        record = await tracker.execute(task)

        assert not record.succeeded
        assert record.details == "Directory not found: /nope"
        assert task.last_run_result == "failure"

    @pytest.mark.asyncio()
    async def test_reported_failure_recorded(self, store, tracker) -> None:
        task = _add_task(store, "Cleaner_EmptyTrash")

        record = await tracker.execute(task)

        assert record.result == "failure"
        assert record.details == "Trash is locked by another process"

    @pytest.mark.asyncio()
    async def test_unknown_tool_recorded(self, store, tracker) -> None:
        task = _add_task(store, "Ghost")

        record = await tracker.execute(task)

        assert record.result == "failure"
        assert record.details == "Tool not found: Ghost"

    @pytest.mark.asyncio()
    async def test_failure_details_capped(self, store: TaskStore) -> None:
        def explode(params):
            raise ValueError("e" * 2000)

        registry = ToolRegistry()
        registry.register_function("Explode", "Always fails", explode)
        tracker = ExecutionTracker(store, registry)
        task = _add_task(store, "Explode")

        record = await tracker.execute(task)
        assert record.details == "e" * 500


class TestHistory:
    @pytest.mark.asyncio()
    async def test_history_capped_newest_first(self, store, tracker) -> None:
        registry = tracker.registry
        counter = {"n": 0}

        def numbered(params):
            counter["n"] += 1
            return f"run {counter['n']}"

        registry.register_function("Numbered", "Counts runs", numbered)
        task = _add_task(store, "Numbered")

        for _ in range(25):
            await tracker.execute(task)

        assert len(task.execution_history) == 20
        assert task.execution_history[0].details == "run 25"
        assert task.execution_history[-1].details == "run 6"

    @pytest.mark.asyncio()
    async def test_outcome_persisted(self, store, tracker) -> None:
        task = _add_task(store, "CleanAppCaches")

        await tracker.execute(task)

        data = json.loads(store.path.read_text(encoding="utf-8"))
        history = data[0]["executionHistory"]
        assert history[0]["result"] == "success"
        assert history[0]["details"] == "Cleared 120 MB of application caches"
        assert history[0]["trigger"] == "scheduled"
        assert data[0]["lastRunResult"] == "success"

    @pytest.mark.asyncio()
    async def test_deleted_task_not_recorded(self, store, tracker) -> None:
        task = _add_task(store, "Cleaner_CleanTempFiles")
        store.remove(task.id)

        record = await tracker.execute(task)

        assert record.succeeded
        assert task.execution_history == []
        assert not store.path.exists()
