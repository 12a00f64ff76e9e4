"""
Bounded-concurrency background task queue.

Tasks wait in a FIFO backlog and are admitted into an active set of at most
``capacity`` running asyncio tasks. There is no polling loop: dispatch runs
on every submission and every settlement.
"""

import asyncio
import itertools
import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from functools import partial

from opentelemetry.trace import Status, StatusCode

from bgqueue.constants import (
    DEFAULT_CAPACITY,
    DEFAULT_QUEUE_NAME,
    SPAN_EXECUTE_TASK,
    TaskStatus,
)
from bgqueue.errors import ConfigurationError, QueueClosedError
from bgqueue.observability.metrics import MetricsCollector, get_metrics
from bgqueue.observability.tracing import get_tracer
from bgqueue.types.events import TaskEvent
from bgqueue.types.task import (
    QueueStats,
    QueueStatus,
    Task,
    TaskOperation,
    TaskResult,
)

logger = logging.getLogger(__name__)

# Listeners are called synchronously on the event loop for every transition.
TaskListener = Callable[[TaskEvent], None]

# Seconds shutdown waits for cancelled tasks to unwind
CANCEL_GRACE_SECONDS = 1.0

SHUTDOWN_BEFORE_DISPATCH = "queue shut down before dispatch"
CANCELLED_DURING_SHUTDOWN = "cancelled during shutdown"


def _validate_timeout(timeout: float | None, name: str) -> float | None:
    if timeout is None:
        return None
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ConfigurationError(
            f"{name} must be a positive number of seconds, got {timeout!r}"
        )
    return float(timeout)


class BackgroundTaskQueue:
    """
    Runs at most ``capacity`` asynchronous operations at once.

    Features:
    - Non-blocking submission with FIFO admission into free slots
    - Failures (exceptions, timeouts) are logged and isolated per task
    - Optional future per task resolving with its ``TaskResult``
    - Graceful shutdown that drains, then settles whatever is left

    The queue is confined to the event loop it is used from and is not
    thread-safe.

    Usage:
        queue = BackgroundTaskQueue(capacity=3)
        queue.submit("REG-001", lambda: upload_documents(registration))
        ...
        await queue.shutdown(timeout=30)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        name: str = DEFAULT_QUEUE_NAME,
        default_timeout: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            capacity: Maximum number of tasks executing at once.
            name: Queue name used in logs, metrics and events.
            default_timeout: Deadline in seconds applied to tasks submitted
                without their own timeout. None means no deadline.
            metrics: Metrics collector. Defaults to the process-wide one.

        Raises:
            ConfigurationError: If capacity is not a positive integer or
                default_timeout is not positive.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigurationError(
                f"capacity must be a positive integer, got {capacity!r}"
            )

        self.name = name
        self._capacity = capacity
        self._default_timeout = _validate_timeout(default_timeout, "default_timeout")
        self._metrics = metrics or get_metrics()

        self._backlog: deque[Task] = deque()
        # Keyed by Task.seq since caller ids may repeat
        self._active: dict[int, Task] = {}
        self._handles: dict[int, asyncio.Future[TaskResult]] = {}
        self._listeners: list[TaskListener] = []
        self._idle_waiters: list[asyncio.Future[None]] = []
        self._seq = itertools.count(1)
        self._pumping = False
        self._closed = False

        self._submitted = 0
        self._succeeded = 0
        self._failed = 0

    @property
    def capacity(self) -> int:
        """Maximum number of concurrently executing tasks."""
        return self._capacity

    @property
    def closed(self) -> bool:
        """True once shutdown has begun."""
        return self._closed

    def submit(
        self,
        task_id: str,
        operation: TaskOperation,
        *,
        timeout: float | None = None,
    ) -> asyncio.Future[TaskResult]:
        """
        Add a task to the backlog and return immediately.

        Must be called from a running event loop. The operation's own failure
        never surfaces here; it is logged and reported through the returned
        future, which always resolves with a ``TaskResult`` and may be ignored.

        Args:
            task_id: Identifier for logs and events. Need not be unique.
            operation: Zero-argument async callable.
            timeout: Per-task deadline in seconds, overriding the default.

        Returns:
            Future resolving with the task's TaskResult once it settles.

        Raises:
            QueueClosedError: If shutdown has begun.
            TypeError: If operation is not callable.
            ConfigurationError: If timeout is not positive.
        """
        if self._closed:
            raise QueueClosedError(
                f"Queue {self.name!r} is shutting down, task {task_id} rejected"
            )
        if not callable(operation):
            raise TypeError(f"operation for task {task_id} must be callable")
        task_timeout = _validate_timeout(timeout, "timeout")
        loop = asyncio.get_running_loop()

        task = Task(
            task_id=str(task_id),
            operation=operation,
            seq=next(self._seq),
            timeout=task_timeout if task_timeout is not None else self._default_timeout,
        )
        handle: asyncio.Future[TaskResult] = loop.create_future()
        self._handles[task.seq] = handle
        self._backlog.append(task)
        self._submitted += 1

        logger.info(
            "Task queued",
            extra={
                "task_id": task.task_id,
                "queue": self.name,
                "queue_size": len(self._backlog),
            }
        )
        self._metrics.record_task_submitted(self.name)
        self._emit(TaskEvent.task_queued(task.task_id, self.name, len(self._backlog)))

        self._pump()
        return handle

    def get_status(self) -> QueueStatus:
        """Get current backlog length and active count."""
        return QueueStatus(queued=len(self._backlog), processing=len(self._active))

    def get_stats(self) -> QueueStats:
        """Get current counts together with lifetime counters."""
        return QueueStats(
            name=self.name,
            capacity=self._capacity,
            queued=len(self._backlog),
            processing=len(self._active),
            submitted=self._submitted,
            succeeded=self._succeeded,
            failed=self._failed,
            closed=self._closed,
        )

    def subscribe(self, listener: TaskListener) -> None:
        """Register a listener for task events."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: TaskListener) -> None:
        """Remove a previously registered listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def join(self) -> None:
        """Wait until the backlog and the active set are both empty."""
        if self._is_idle():
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._idle_waiters:
                self._idle_waiters.remove(waiter)

    async def shutdown(self, timeout: float | None = None) -> None:
        """
        Stop accepting tasks and wait for the queue to drain.

        If ``timeout`` elapses first, backlog entries are settled as failed
        without running and active tasks are cancelled, so every submitted
        task still settles exactly once. Calling it again is safe.

        Args:
            timeout: Seconds to wait for the drain. None waits indefinitely.
        """
        if not self._closed:
            self._closed = True
            logger.info(
                "Queue shutting down",
                extra={"queue": self.name, **self.get_status().model_dump()}
            )

        try:
            async with asyncio.timeout(timeout):
                await self.join()
        except TimeoutError:
            logger.warning(
                "Queue did not drain in time, abandoning remaining tasks",
                extra={"queue": self.name, **self.get_status().model_dump()}
            )
            await self._abandon()

        logger.info(
            "Queue stopped",
            extra={"queue": self.name, **self.get_stats().model_dump(exclude={"name"})}
        )

    def _pump(self) -> None:
        """
        Move tasks from the backlog head into free slots.

        The pass is synchronous. A listener that submits while it runs
        re-enters here and returns at once; the outer pass picks the new task up.
        """
        if self._pumping:
            return
        self._pumping = True
        try:
            while self._backlog and len(self._active) < self._capacity:
                task = self._backlog.popleft()
                task.started_at = datetime.now(UTC)
                runner = asyncio.create_task(
                    self._run(task),
                    name=f"{self.name}:{task.task_id}",
                )
                task.runner = runner
                self._active[task.seq] = task
                runner.add_done_callback(partial(self._on_runner_done, task))

                logger.info(
                    "Processing task",
                    extra={
                        "task_id": task.task_id,
                        "queue": self.name,
                        "active": f"{len(self._active)}/{self._capacity}",
                    }
                )
                self._metrics.record_task_started(self.name, task.wait_seconds)
                self._emit(
                    TaskEvent.task_started(
                        task.task_id, self.name, len(self._active), self._capacity
                    )
                )
        finally:
            self._pumping = False

        self._update_gauges()

    async def _run(self, task: Task) -> str | None:
        """
        Execute one task.

        Returns:
            None on success, otherwise the failure reason.
        """
        deadline = asyncio.timeout(task.timeout)

        with get_tracer().start_as_current_span(SPAN_EXECUTE_TASK) as span:
            span.set_attribute("task_id", task.task_id)
            span.set_attribute("queue", self.name)

            try:
                async with deadline:
                    await task.operation()
            except Exception as e:
                if deadline.expired():
                    error = f"timed out after {task.timeout:g}s"
                    logger.warning(
                        "Task timed out",
                        extra={"task_id": task.task_id, "queue": self.name, "timeout": task.timeout}
                    )
                else:
                    error = f"{type(e).__name__}: {e}"
                    logger.exception(
                        "Task failed",
                        extra={"task_id": task.task_id, "queue": self.name, "error": str(e)}
                    )
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, error))
                return error

        return None

    def _on_runner_done(self, task: Task, runner: asyncio.Task) -> None:
        if task.seq not in self._active:
            # Already settled by shutdown after ignoring cancellation
            return
        if runner.cancelled():
            error = CANCELLED_DURING_SHUTDOWN
            logger.warning(
                "Task cancelled",
                extra={"task_id": task.task_id, "queue": self.name}
            )
        elif runner.exception() is not None:
            exc = runner.exception()
            error = f"{type(exc).__name__}: {exc}"
            logger.error(
                "Task runner crashed",
                extra={"task_id": task.task_id, "queue": self.name, "error": str(exc)}
            )
        else:
            error = runner.result()

        self._settle(task, error)

    def _settle(self, task: Task, error: str | None) -> None:
        """Record a task's terminal state, free its slot and refill."""
        self._active.pop(task.seq, None)
        finished_at = datetime.now(UTC)

        duration = None
        if task.started_at is not None and error != SHUTDOWN_BEFORE_DISPATCH:
            duration = (finished_at - task.started_at).total_seconds()
        duration_ms = duration * 1000 if duration is not None else None

        if error is None:
            status = TaskStatus.SUCCEEDED
            self._succeeded += 1
            logger.info(
                "Task completed",
                extra={
                    "task_id": task.task_id,
                    "queue": self.name,
                    "duration": f"{duration:.2f}s",
                }
            )
        else:
            status = TaskStatus.FAILED
            self._failed += 1

        self._metrics.record_task_settled(self.name, status, duration)

        handle = self._handles.pop(task.seq, None)
        if handle is not None and not handle.done():
            handle.set_result(
                TaskResult(
                    task_id=task.task_id,
                    status=status,
                    error=error,
                    enqueued_at=task.enqueued_at,
                    started_at=task.started_at if duration is not None else None,
                    finished_at=finished_at,
                    wait_ms=task.wait_seconds * 1000,
                    duration_ms=duration_ms,
                )
            )

        if status == TaskStatus.SUCCEEDED:
            event = TaskEvent.task_succeeded(task.task_id, self.name, duration_ms)
        else:
            event = TaskEvent.task_failed(task.task_id, self.name, error, duration_ms)
        self._emit(event)

        self._pump()
        self._notify_if_idle()

    async def _abandon(self) -> None:
        """Settle the backlog unrun and cancel active tasks."""
        # Active slots are all taken while a backlog exists, so settling
        # here never dispatches.
        while self._backlog:
            task = self._backlog.popleft()
            task.started_at = datetime.now(UTC)
            self._settle(task, SHUTDOWN_BEFORE_DISPATCH)

        active = list(self._active.values())
        if not active:
            return
        for task in active:
            task.runner.cancel()

        # Done callbacks settle each runner before wait returns it as done
        _, pending = await asyncio.wait(
            [task.runner for task in active], timeout=CANCEL_GRACE_SECONDS
        )
        if not pending:
            return

        stuck = [task for task in active if task.runner in pending]
        logger.error(
            "Tasks ignored cancellation, settling without waiting",
            extra={
                "queue": self.name,
                "count": len(stuck),
                "task_ids": [task.task_id for task in stuck],
            }
        )
        for task in stuck:
            self._settle(task, CANCELLED_DURING_SHUTDOWN)

    def _emit(self, event: TaskEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    f"Task listener raised: {e}",
                    extra={"task_id": event.task_id, "queue": self.name}
                )

    def _is_idle(self) -> bool:
        return not self._backlog and not self._active

    def _notify_if_idle(self) -> None:
        if not self._is_idle():
            return
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _update_gauges(self) -> None:
        self._metrics.update_queue_depth(
            self.name, len(self._backlog), len(self._active)
        )
