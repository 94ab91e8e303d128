"""
Task Progress Tracking

Progress updates are best-effort: a failing sink never interrupts an extraction.
TaskProgressStore is an in-memory store owned by whoever serves requests (created at
startup, cleared at shutdown); entries expire after a TTL.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]

DEFAULT_TASK_TTL_SECONDS = 30 * 60


def safe_progress_update(callback: Optional[ProgressCallback], payload: Dict[str, Any]) -> None:
    """Deliver a progress update, swallowing any error raised by the sink"""
    if callback is None:
        return

    try:
        callback(payload)
    except Exception as e:
        logger.debug(f"Progress callback failed (ignored): {e}")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clamp_progress(value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return 0
    return min(100, max(0, parsed))


class TaskProgressStore:
    """
    In-memory task progress records keyed by task id.

    Status moves running -> completed | failed. Updates to tasks that are not running
    are ignored, and a completed task cannot be marked failed.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TASK_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _touch(self, task: Dict[str, Any]) -> None:
        task["updated_at"] = _now_iso()
        task["_updated_clock"] = self._clock()

    def start(self, task_id: str, operation: str = "pdf_extract", step: str = "Task accepted",
              metadata: Optional[Dict[str, Any]] = None) -> None:
        if not task_id:
            return

        now = _now_iso()
        with self._lock:
            self._tasks[task_id] = {
                "task_id": task_id,
                "status": "running",
                "progress": 0,
                "step": step,
                "operation": operation,
                "metadata": dict(metadata or {}),
                "error": None,
                "started_at": now,
                "completed_at": None,
                "updated_at": now,
                "_updated_clock": self._clock(),
            }

    def update(self, task_id: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if not task or task["status"] != "running":
                return

            task["progress"] = _clamp_progress(payload.get("progress", task["progress"]))
            task["step"] = payload.get("step") or task["step"]
            metadata = payload.get("metadata")
            if isinstance(metadata, dict):
                task["metadata"].update(metadata)
            self._touch(task)

    def complete(self, task_id: str, step: str = "Task completed") -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if not task:
                return

            task["status"] = "completed"
            task["progress"] = 100
            task["step"] = step
            task["completed_at"] = _now_iso()
            self._touch(task)

    def fail(self, task_id: str, code: Optional[str] = None, message: Optional[str] = None,
             step: str = "Task failed") -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if not task or task["status"] == "completed":
                return

            task["status"] = "failed"
            task["step"] = step
            task["error"] = {
                "code": code or "INTERNAL_ERROR",
                "message": message or "Unexpected error occurred",
            }
            task["completed_at"] = _now_iso()
            self._touch(task)

    def get(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Public view of a task (None if unknown or expired)"""
        self.cleanup_expired()
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            return {k: v for k, v in task.items() if not k.startswith("_")}

    def cleanup_expired(self) -> int:
        """Drop tasks not updated within the TTL; returns how many were removed"""
        now = self._clock()
        with self._lock:
            expired = [
                task_id for task_id, task in self._tasks.items()
                if now - task["_updated_clock"] > self.ttl_seconds
            ]
            for task_id in expired:
                del self._tasks[task_id]

        if expired:
            logger.debug(f"Expired {len(expired)} task progress records")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()

    def callback_for(self, task_id: str) -> ProgressCallback:
        """Progress callback that feeds updates for task_id into this store"""
        def _callback(payload: Dict[str, Any]) -> None:
            self.update(task_id, payload)
        return _callback
