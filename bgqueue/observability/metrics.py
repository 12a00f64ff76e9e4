"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from bgqueue.constants import (
    METRIC_ACTIVE_TASKS,
    METRIC_BACKLOG_DEPTH,
    METRIC_TASK_DURATION,
    METRIC_TASK_WAIT,
    METRIC_TASKS_SETTLED,
    METRIC_TASKS_SUBMITTED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for background task queues.

    Collects metrics for:
    - Backlog depth and active task count
    - Task submissions and settlements
    - Task execution duration and backlog wait time

    Every metric is labelled with the queue name, so several queues in one
    process can share a collector.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.backlog_depth = Gauge(
            METRIC_BACKLOG_DEPTH,
            "Number of tasks waiting for a concurrency slot",
            ["queue"],
            registry=self._registry,
        )

        self.active_tasks = Gauge(
            METRIC_ACTIVE_TASKS,
            "Number of tasks currently executing",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_submitted = Counter(
            METRIC_TASKS_SUBMITTED,
            "Total number of tasks submitted",
            ["queue"],
            registry=self._registry,
        )

        self.tasks_settled = Counter(
            METRIC_TASKS_SETTLED,
            "Total number of tasks settled",
            ["queue", "status"],
            registry=self._registry,
        )

        self.task_duration = Histogram(
            METRIC_TASK_DURATION,
            "Task execution duration in seconds",
            ["queue", "status"],
            buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.task_wait = Histogram(
            METRIC_TASK_WAIT,
            "Time tasks spend in the backlog in seconds",
            ["queue"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

    def record_task_submitted(self, queue: str) -> None:
        """Record a task submission."""
        self.tasks_submitted.labels(queue=queue).inc()

    def record_task_started(self, queue: str, wait_seconds: float) -> None:
        """Record a task leaving the backlog."""
        self.task_wait.labels(queue=queue).observe(wait_seconds)

    def record_task_settled(
        self,
        queue: str,
        status: str,
        duration_seconds: float | None,
    ) -> None:
        """Record a task settlement."""
        self.tasks_settled.labels(queue=queue, status=status).inc()
        if duration_seconds is not None:
            self.task_duration.labels(queue=queue, status=status).observe(
                duration_seconds
            )

    def update_queue_depth(self, queue: str, queued: int, processing: int) -> None:
        """Update backlog and active gauges for a queue."""
        self.backlog_depth.labels(queue=queue).set(queued)
        self.active_tasks.labels(queue=queue).set(processing)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
