"""
FastAPI application entry point.

The application owns one process-lifetime BackgroundTaskQueue, exposes its
status and metrics, and drains it on shutdown.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from bgqueue import __version__
from bgqueue.api.routes import health_router, queue_router
from bgqueue.api.websocket import WebSocketManager, websocket_handler
from bgqueue.config import get_settings
from bgqueue.observability.logging import setup_logging
from bgqueue.observability.metrics import setup_metrics
from bgqueue.observability.tracing import instrument_fastapi, setup_tracing
from bgqueue.queue import BackgroundTaskQueue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    queue: BackgroundTaskQueue = app.state.queue

    # Startup
    setup_logging()
    setup_metrics()
    setup_tracing()

    logger.info(
        "Application started",
        extra={"queue": queue.name, "capacity": queue.capacity}
    )

    yield

    # Shutdown
    await queue.shutdown(timeout=settings.queue_shutdown_timeout_seconds)
    await app.state.ws_manager.close()
    logger.info("Application shutdown")


def create_app(queue: BackgroundTaskQueue | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        queue: Queue to expose. Built from settings when not provided.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    if queue is None:
        queue = BackgroundTaskQueue(
            capacity=settings.queue_capacity,
            name=settings.queue_name,
            default_timeout=settings.queue_task_timeout_seconds,
        )

    app = FastAPI(
        title="Background Task Queue API",
        description="Monitoring surface for a bounded-concurrency background task queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    ws_manager = WebSocketManager()
    queue.subscribe(ws_manager.publish)
    app.state.queue = queue
    app.state.ws_manager = ws_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(queue_router)

    @app.websocket("/ws/tasks")
    async def tasks_websocket(websocket: WebSocket):
        """
        WebSocket endpoint for real-time task updates.

        Clients receive every task event unless they subscribe to
        specific task ids.
        """
        await websocket_handler(websocket, app.state.ws_manager)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
