"""
FastAPI dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from bgqueue.queue import BackgroundTaskQueue


def get_queue(request: Request) -> BackgroundTaskQueue:
    """Get the queue owned by the running application."""
    return request.app.state.queue


# Type alias for dependency injection
QueueDep = Annotated[BackgroundTaskQueue, Depends(get_queue)]
