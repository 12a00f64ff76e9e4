"""
API routes module.
"""

from bgqueue.api.routes.health import router as health_router
from bgqueue.api.routes.queue import router as queue_router

__all__ = ["health_router", "queue_router"]
