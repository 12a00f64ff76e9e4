"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle states.

    State transitions:
    - QUEUED -> ACTIVE (slot became free, task at backlog head)
    - ACTIVE -> SUCCEEDED (operation returned)
    - ACTIVE -> FAILED (operation raised or timed out)
    - QUEUED -> FAILED (queue shut down before dispatch)
    """

    QUEUED = "queued"
    ACTIVE = "active"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Default values
# Tunable per deployment: trades throughput against downstream rate limits.
DEFAULT_CAPACITY = 3
DEFAULT_QUEUE_NAME = "background"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_BACKLOG_DEPTH = "bgqueue_backlog_depth"
METRIC_ACTIVE_TASKS = "bgqueue_active_tasks"
METRIC_TASKS_SUBMITTED = "bgqueue_tasks_submitted_total"
METRIC_TASKS_SETTLED = "bgqueue_tasks_settled_total"
METRIC_TASK_DURATION = "bgqueue_task_duration_seconds"
METRIC_TASK_WAIT = "bgqueue_task_wait_seconds"

# Trace span names
SPAN_EXECUTE_TASK = "execute_task"

# Task event types
EVENT_TASK_QUEUED = "task.queued"
EVENT_TASK_STARTED = "task.started"
EVENT_TASK_SUCCEEDED = "task.succeeded"
EVENT_TASK_FAILED = "task.failed"
