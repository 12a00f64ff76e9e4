"""
Health check routes.
"""

from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import Response

from bgqueue import __version__
from bgqueue.api.dependencies import QueueDep
from bgqueue.observability.metrics import get_metrics
from bgqueue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the service and whether its queue accepts tasks.",
)
async def health_check(queue: QueueDep) -> HealthResponse:
    """
    Perform a health check.

    A queue that is shutting down reports the service as degraded.

    Args:
        queue: The application's task queue.

    Returns:
        HealthResponse with service status.
    """
    queue_state = "closed" if queue.closed else "accepting"

    return HealthResponse(
        status="healthy" if not queue.closed else "degraded",
        version=__version__,
        queue=queue_state,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(queue: QueueDep) -> dict:
    """
    Kubernetes readiness probe endpoint.

    Returns:
        Ready status.
    """
    return {"ready": not queue.closed}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
