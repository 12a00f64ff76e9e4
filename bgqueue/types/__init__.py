"""
Type definitions for the background task queue.
Contains input/output type definitions grouped by module.
"""

from bgqueue.types.api import HealthResponse
from bgqueue.types.events import TaskEvent, WebSocketMessage
from bgqueue.types.task import (
    QueueStats,
    QueueStatus,
    Task,
    TaskOperation,
    TaskResult,
)

__all__ = [
    # API types
    "HealthResponse",
    # Task types
    "Task",
    "TaskOperation",
    "TaskResult",
    "QueueStatus",
    "QueueStats",
    # Event types
    "TaskEvent",
    "WebSocketMessage",
]
