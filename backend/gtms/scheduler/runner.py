"""
Task runner for scheduled checks: wraps each job so its exception never escapes the scheduler,
logs failures with the task id and error class, and keeps the last-run status per task
(in-memory, served by /health/tasks).
"""
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class TaskStatus:
    task_id: str
    runs: int = 0
    failures: int = 0
    running: bool = False
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_duration_seconds: float | None = None
    last_ok: bool | None = None
    last_error: str | None = None
    last_result: Any = None

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        for key in ("last_started_at", "last_finished_at"):
            out[key] = out[key].isoformat() if out[key] is not None else None
        return out


class TaskRunner:
    def __init__(self):
        self._status: dict[str, TaskStatus] = {}

    def wrap(self, task_id: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        status = self._status.setdefault(task_id, TaskStatus(task_id=task_id))

        def run(*args, **kwargs):
            status.runs += 1
            status.running = True
            status.last_started_at = datetime.now(timezone.utc)
            t0 = time.monotonic()
            try:
                result = fn(*args, **kwargs)
                status.last_ok = True
                status.last_error = None
                status.last_result = result
                logger.info("Scheduled task %s finished (run %s): %s", task_id, status.runs, result)
                return result
            except Exception as e:
                status.failures += 1
                status.last_ok = False
                status.last_error = f"{type(e).__name__}: {e}"
                logger.exception(
                    "Scheduled task %s failed (run %s, %s failures): %s",
                    task_id,
                    status.runs,
                    status.failures,
                    e,
                    extra={"task_id": task_id, "error_class": type(e).__name__},
                )
                return None
            finally:
                status.running = False
                status.last_finished_at = datetime.now(timezone.utc)
                status.last_duration_seconds = round(time.monotonic() - t0, 3)

        run.__name__ = f"{task_id}_task"
        return run

    def status(self) -> dict[str, dict[str, Any]]:
        return {task_id: s.to_dict() for task_id, s in self._status.items()}


task_runner = TaskRunner()
