"""Tests for the JSON task store."""

import json
from pathlib import Path

import pytest

from cleaner_core.scheduler.store import ScheduledTask, TaskExecutionRecord, TaskStore


def _task(task_id: str = "t1", **overrides) -> ScheduledTask:
    fields = {
        "id": task_id,
        "name": "nightly",
        "cron_expression": "0 2 * * *",
        "tool_name": "Cleaner_CleanTempFiles",
        "tool_params": {"dryRun": True, "paths": ["/tmp"]},
    }
    fields.update(overrides)
    return ScheduledTask(**fields)


class TestLoad:
    @pytest.mark.asyncio()
    async def test_missing_file_is_empty(self, store: TaskStore) -> None:
        assert await store.load() == []
        assert not store.path.exists()

    @pytest.mark.asyncio()
    async def test_malformed_file_backed_up(self, store: TaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        assert await store.load() == []
        backup = Path(str(store.path) + ".corrupt")
        assert backup.read_text(encoding="utf-8") == "{not json"

    @pytest.mark.asyncio()
    async def test_non_array_document_is_malformed(self, store: TaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text('{"tasks": []}', encoding="utf-8")
        assert await store.load() == []

    @pytest.mark.asyncio()
    async def test_invalid_records_skipped(self, store: TaskStore) -> None:
        good = _task("good").to_dict()
        missing_tool = {"id": "bad", "name": "x", "cronExpression": "* * * * *"}
        duplicate = dict(good, name="copy")
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([good, missing_tool, duplicate]), encoding="utf-8")

        tasks = await store.load()
        assert [t.id for t in tasks] == ["good"]
        assert tasks[0].name == "nightly"

    @pytest.mark.asyncio()
    async def test_optional_fields_default(self, store: TaskStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([{
            "id": "minimal",
            "name": "m",
            "cronExpression": "@daily",
            "toolName": "CleanAppCaches",
            "enabled": False,
            "createdAt": "2026-01-01T00:00:00+00:00",
        }]), encoding="utf-8")

        task = (await store.load())[0]
        assert task.tool_params == {}
        assert task.execution_history == []
        assert task.last_run_at is None
        assert task.updated_at == "2026-01-01T00:00:00+00:00"


class TestSave:
    @pytest.mark.asyncio()
    async def test_round_trip(self, store: TaskStore, store_path: str) -> None:
        task = _task()
        task.record_execution(
            TaskExecutionRecord(
                timestamp="2026-01-02T02:00:00+00:00",
                result="success",
                details="Removed 3 temporary files",
                trigger="scheduled",
                duration_ms=12,
            ),
            max_history=20,
        )
        store.add(task)
        store.add(_task("t2", enabled=False, tool_params={}))
        assert await store.save() is True

        reloaded = TaskStore(store_path)
        assert await reloaded.load() == store.list()

    @pytest.mark.asyncio()
    async def test_document_format(self, store: TaskStore) -> None:
        store.add(_task())
        await store.save()

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert set(data[0]) == {
            "id", "name", "cronExpression", "toolName", "toolParams", "enabled",
            "createdAt", "updatedAt", "lastRunAt", "lastRunResult", "executionHistory",
        }
        assert data[0]["toolParams"] == {"dryRun": True, "paths": ["/tmp"]}

    @pytest.mark.asyncio()
    async def test_atomic_replace_leaves_no_temp_file(self, store: TaskStore) -> None:
        store.add(_task())
        await store.save()
        store.remove("t1")
        await store.save()

        assert json.loads(store.path.read_text(encoding="utf-8")) == []
        assert sorted(p.name for p in store.path.parent.iterdir()) == ["schedules.json"]

    @pytest.mark.asyncio()
    async def test_failure_is_reported_not_raised(self, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = TaskStore(str(blocker / "schedules.json"))
        store.add(_task())

        assert await store.save() is False
        assert store.find("t1") is not None


class TestCollection:
    def test_add_find_update_remove(self, store: TaskStore) -> None:
        store.add(_task())
        assert store.find("t1").name == "nightly"

        updated = store.update("t1", lambda t: setattr(t, "name", "renamed"))
        assert updated.name == "renamed"
        assert store.update("missing", lambda t: None) is None

        assert store.remove("t1").name == "renamed"
        assert store.remove("t1") is None
        assert len(store) == 0

    def test_duplicate_id_rejected(self, store: TaskStore) -> None:
        store.add(_task())
        with pytest.raises(ValueError):
            store.add(_task())

    def test_history_capped_newest_first(self) -> None:
        task = _task()
        for i in range(25):
            task.record_execution(
                TaskExecutionRecord(timestamp=f"t{i:02d}", result="success"), max_history=20
            )
        assert len(task.execution_history) == 20
        assert task.execution_history[0].timestamp == "t24"
        assert task.execution_history[-1].timestamp == "t05"
        assert task.last_run_at == "t24"
        assert task.last_run_result == "success"

    def test_invalid_record_result(self) -> None:
        with pytest.raises(ValueError):
            TaskExecutionRecord.from_dict({"timestamp": "t", "result": "maybe"})
