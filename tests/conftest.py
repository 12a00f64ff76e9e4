"""
Pytest configuration and shared fixtures.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry

from bgqueue.api.main import create_app
from bgqueue.config import Settings
from bgqueue.observability.metrics import MetricsCollector
from bgqueue.queue import BackgroundTaskQueue


class Gate:
    """Task operation that blocks until the test releases it."""

    def __init__(self, name: str):
        self.name = name
        self.started = asyncio.Event()
        self.finished = False
        self._release = asyncio.Event()

    async def __call__(self) -> None:
        self.started.set()
        await self._release.wait()
        self.finished = True

    def release(self) -> None:
        self._release.set()


@pytest.fixture
def gate() -> type[Gate]:
    """Factory for blocking task operations."""
    return Gate


@pytest.fixture
def wait_until() -> Callable:
    """Poll a predicate on the event loop until it holds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.001)

    return _wait_until


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest_asyncio.fixture
async def make_queue(metrics: MetricsCollector) -> AsyncGenerator[Callable[..., BackgroundTaskQueue]]:
    """Create queues that are shut down after the test."""
    queues: list[BackgroundTaskQueue] = []

    def _make_queue(capacity: int = 2, **kwargs) -> BackgroundTaskQueue:
        kwargs.setdefault("name", "test")
        kwargs.setdefault("metrics", metrics)
        queue = BackgroundTaskQueue(capacity=capacity, **kwargs)
        queues.append(queue)
        return queue

    yield _make_queue

    for queue in queues:
        await queue.shutdown(timeout=1.0)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        queue_name="test",
        queue_capacity=2,
        queue_task_timeout_seconds=5.0,
        queue_shutdown_timeout_seconds=1.0,
        log_level="DEBUG",
        log_format="console",
    )


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app owning a queue built from settings."""
    app = create_app()
    yield app
    await app.state.queue.shutdown(timeout=1.0)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
