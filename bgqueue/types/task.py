"""
Task-related type definitions for internal use.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from bgqueue.constants import TaskStatus

# Zero-argument async callable; its return value is ignored.
TaskOperation = Callable[[], Awaitable[Any]]


@dataclass
class Task:
    """
    A unit of deferred work held by the queue.

    ``task_id`` is caller-supplied and not required to be unique; ``seq`` is
    assigned by the queue and keys the active set.
    """

    task_id: str
    operation: TaskOperation
    seq: int
    timeout: float | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    runner: asyncio.Task | None = field(default=None, repr=False)

    @property
    def wait_seconds(self) -> float:
        """Time spent in the backlog, or so far if not yet dispatched."""
        end = self.started_at or datetime.now(UTC)
        return max(0.0, (end - self.enqueued_at).total_seconds())


class TaskResult(BaseModel):
    """
    Settlement record of a task.
    Delivered through the future returned by ``submit``.
    """

    task_id: str
    status: TaskStatus
    error: str | None = None
    enqueued_at: datetime
    started_at: datetime | None = None
    finished_at: datetime
    wait_ms: float
    duration_ms: float | None = None

    @property
    def success(self) -> bool:
        """Check if the task succeeded."""
        return self.status == TaskStatus.SUCCEEDED


class QueueStatus(BaseModel):
    """Instantaneous backlog and active counts."""

    queued: int = Field(ge=0)
    processing: int = Field(ge=0)


class QueueStats(QueueStatus):
    """
    Queue status with lifetime counters.

    ``queued + processing + succeeded + failed == submitted`` holds at every
    sample.
    """

    name: str
    capacity: int
    submitted: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)
    closed: bool
