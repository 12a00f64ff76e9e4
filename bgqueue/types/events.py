"""
Event type definitions for queue listeners and WebSocket messaging.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from bgqueue.constants import (
    EVENT_TASK_FAILED,
    EVENT_TASK_QUEUED,
    EVENT_TASK_STARTED,
    EVENT_TASK_SUCCEEDED,
    TaskStatus,
)


class TaskEvent(BaseModel):
    """
    Event emitted when a task changes state.
    Delivered to queue listeners and relayed over WebSocket.
    """

    event_type: str
    task_id: str
    queue: str
    status: TaskStatus
    timestamp: datetime
    data: dict[str, Any] | None = None

    @classmethod
    def task_queued(cls, task_id: str, queue: str, backlog: int) -> "TaskEvent":
        """Create a task queued event."""
        return cls(
            event_type=EVENT_TASK_QUEUED,
            task_id=task_id,
            queue=queue,
            status=TaskStatus.QUEUED,
            timestamp=datetime.now(UTC),
            data={"backlog": backlog},
        )

    @classmethod
    def task_started(
        cls,
        task_id: str,
        queue: str,
        active: int,
        capacity: int,
    ) -> "TaskEvent":
        """Create a task started event."""
        return cls(
            event_type=EVENT_TASK_STARTED,
            task_id=task_id,
            queue=queue,
            status=TaskStatus.ACTIVE,
            timestamp=datetime.now(UTC),
            data={"active": active, "capacity": capacity},
        )

    @classmethod
    def task_succeeded(
        cls,
        task_id: str,
        queue: str,
        duration_ms: float | None,
    ) -> "TaskEvent":
        """Create a task succeeded event."""
        return cls(
            event_type=EVENT_TASK_SUCCEEDED,
            task_id=task_id,
            queue=queue,
            status=TaskStatus.SUCCEEDED,
            timestamp=datetime.now(UTC),
            data={"duration_ms": duration_ms},
        )

    @classmethod
    def task_failed(
        cls,
        task_id: str,
        queue: str,
        error: str,
        duration_ms: float | None,
    ) -> "TaskEvent":
        """Create a task failed event."""
        return cls(
            event_type=EVENT_TASK_FAILED,
            task_id=task_id,
            queue=queue,
            status=TaskStatus.FAILED,
            timestamp=datetime.now(UTC),
            data={"error": error, "duration_ms": duration_ms},
        )


class WebSocketMessage(BaseModel):
    """
    Message format for WebSocket communication.
    """

    type: str
    payload: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: TaskEvent) -> "WebSocketMessage":
        """Create a WebSocket message from a task event."""
        return cls(
            type=event.event_type,
            payload={
                "task_id": event.task_id,
                "queue": event.queue,
                "status": event.status,
                "data": event.data,
            },
            timestamp=event.timestamp,
        )
