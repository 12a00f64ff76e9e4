"""
Queue introspection routes.
"""

from fastapi import APIRouter

from bgqueue.api.dependencies import QueueDep
from bgqueue.constants import API_V1_PREFIX
from bgqueue.types.task import QueueStats

router = APIRouter(prefix=f"{API_V1_PREFIX}/queue", tags=["Queue"])


@router.get(
    "/status",
    response_model=QueueStats,
    summary="Queue status",
    description="Current backlog and active counts with lifetime counters.",
)
async def queue_status(queue: QueueDep) -> QueueStats:
    """Read the queue's counters without side effects."""
    return queue.get_stats()
