"""
TASK_STORE
==========

Durable collection of scheduled tasks, persisted as one JSON document.

The whole collection is loaded once at startup. From then on the in-memory
list is authoritative, and every mutation is followed by ``save()``, which
rewrites the full document.

Persistence
-----------
- **Missing file**: empty collection (first run), not an error.
- **Malformed file**: logged, copied aside to ``<file>.corrupt``, empty
  collection. Individual bad records are skipped with a warning.
- **Atomic save**: serialize → write ``<file>.tmp`` → ``os.replace``. A kill
  mid-write leaves the previous document intact.
- **Serialized save**: an ``asyncio.Lock`` orders concurrent saves and each
  one snapshots the collection inside the lock, so the last write to land is
  always the newest state.
- **Best effort**: save failures are logged and reported as ``False``, never
  raised. In-memory state is not rolled back.

Document Format
---------------
::

    [
      {
        "id": "5b0d…",
        "name": "nightly",
        "cronExpression": "0 2 * * *",
        "toolName": "Cleaner_CleanTempFiles",
        "toolParams": {"dryRun": true},
        "enabled": true,
        "createdAt": "2026-01-01T00:00:00+00:00",
        "updatedAt": "2026-01-01T00:00:00+00:00",
        "lastRunAt": null,
        "lastRunResult": null,
        "executionHistory": [
          {"timestamp": "…", "result": "success", "details": "…",
           "trigger": "manual", "durationMs": 12}
        ]
      }
    ]
"""

import asyncio
import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

RESULT_SUCCESS = "success"
RESULT_FAILURE = "failure"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class TaskExecutionRecord:
    """One attempt to run a task's tool."""
    timestamp: str
    result: str  # "success" | "failure"
    details: Optional[str] = None
    trigger: Optional[str] = None  # "scheduled" | "manual"
    duration_ms: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.result == RESULT_SUCCESS

    def to_dict(self) -> Dict:
        data = {
            "timestamp": self.timestamp,
            "result": self.result,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.trigger is not None:
            data["trigger"] = self.trigger
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "TaskExecutionRecord":
        result = data["result"]
        if result not in (RESULT_SUCCESS, RESULT_FAILURE):
            raise ValueError(f"Invalid execution result: {result!r}")
        return cls(
            timestamp=data["timestamp"],
            result=result,
            details=data.get("details"),
            trigger=data.get("trigger"),
            duration_ms=data.get("durationMs"),
        )


@dataclass
class ScheduledTask:
    """A user-defined binding of a cron schedule to a tool invocation."""
    id: str
    name: str
    cron_expression: str
    tool_name: str
    tool_params: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    last_run_at: Optional[str] = None
    last_run_result: Optional[str] = None
    execution_history: List[TaskExecutionRecord] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def record_execution(self, record: TaskExecutionRecord, max_history: int) -> None:
        """Prepend ``record`` (newest first) and drop the oldest beyond ``max_history``."""
        self.last_run_at = record.timestamp
        self.last_run_result = record.result
        self.execution_history.insert(0, record)
        del self.execution_history[max_history:]
        self.touch()

    def summary(self) -> Dict:
        """Listing view: everything except parameters and history."""
        return {
            "id": self.id,
            "name": self.name,
            "cronExpression": self.cron_expression,
            "toolName": self.tool_name,
            "enabled": self.enabled,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "lastRunAt": self.last_run_at,
            "lastRunResult": self.last_run_result,
        }

    def to_dict(self) -> Dict:
        data = self.summary()
        data["toolParams"] = dict(self.tool_params)
        data["executionHistory"] = [r.to_dict() for r in self.execution_history]
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "ScheduledTask":
        tool_params = data.get("toolParams") or {}
        if not isinstance(tool_params, dict):
            raise ValueError("toolParams must be an object")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            cron_expression=data["cronExpression"],
            tool_name=data["toolName"],
            tool_params=tool_params,
            enabled=bool(data.get("enabled", True)),
            created_at=data.get("createdAt") or utc_now_iso(),
            updated_at=data.get("updatedAt") or data.get("createdAt") or utc_now_iso(),
            last_run_at=data.get("lastRunAt"),
            last_run_result=data.get("lastRunResult"),
            execution_history=[
                TaskExecutionRecord.from_dict(r)
                for r in data.get("executionHistory") or []
            ],
        )


# ============================================================================
# TASK STORE
# ============================================================================

class TaskStore:
    """
    In-memory task collection backed by a JSON file.

    Collection methods (``add``, ``remove``, ``find``, ``update``) are
    synchronous and touch memory only; callers follow every mutation with
    ``await save()``.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._tasks: List[ScheduledTask] = []
        self._save_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> List[ScheduledTask]:
        """Replace the in-memory collection with the persisted document."""
        try:
            text = await asyncio.to_thread(self._read_text)
        except OSError as e:
            logger.error(f"Could not read task store {self.path}: {e}")
            self._tasks = []
            return self.list()

        if text is None:
            logger.info(f"No task store at {self.path}, starting empty")
            self._tasks = []
            return self.list()

        try:
            data = json.loads(text)
            if not isinstance(data, list):
                raise ValueError("top-level value must be an array")
        except ValueError as e:
            logger.error(f"Task store {self.path} is malformed ({e}), starting empty")
            await self._backup_corrupt()
            self._tasks = []
            return self.list()

        tasks = []
        seen = set()
        for index, entry in enumerate(data):
            try:
                task = ScheduledTask.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid task record #{index}: {e}")
                continue
            if task.id in seen:
                logger.warning(f"Skipping duplicate task id {task.id}")
                continue
            seen.add(task.id)
            tasks.append(task)

        self._tasks = tasks
        logger.info(f"Loaded {len(tasks)} task(s) from {self.path}")
        return self.list()

    async def save(self) -> bool:
        """
        Persist the whole collection.

        Returns:
            True if the document was written, False if the write failed
        """
        async with self._save_lock:
            try:
                payload = json.dumps(
                    [task.to_dict() for task in self._tasks],
                    indent=2,
                    ensure_ascii=False
                )
                await asyncio.to_thread(self._write_atomic, payload)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save task store {self.path}: {e}")
                return False
        logger.debug(f"Saved {len(self._tasks)} task(s) to {self.path}")
        return True

    def _read_text(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding='utf-8')

    def _write_atomic(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    async def _backup_corrupt(self) -> None:
        backup = self.path.with_name(self.path.name + ".corrupt")
        try:
            await asyncio.to_thread(shutil.copy2, self.path, backup)
            logger.warning(f"Malformed task store copied to {backup}")
        except OSError as e:
            logger.error(f"Could not back up malformed task store: {e}")

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def add(self, task: ScheduledTask) -> None:
        if self.find(task.id) is not None:
            raise ValueError(f"Duplicate task id: {task.id}")
        self._tasks.append(task)

    def remove(self, task_id: str) -> Optional[ScheduledTask]:
        task = self.find(task_id)
        if task is not None:
            self._tasks.remove(task)
        return task

    def find(self, task_id: str) -> Optional[ScheduledTask]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def update(
        self,
        task_id: str,
        mutator: Callable[[ScheduledTask], None]
    ) -> Optional[ScheduledTask]:
        """Apply ``mutator`` to the task in place; None if it does not exist."""
        task = self.find(task_id)
        if task is not None:
            mutator(task)
        return task

    def list(self) -> List[ScheduledTask]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)
