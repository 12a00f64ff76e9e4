"""
Background task queue module.
"""

from bgqueue.queue.background import BackgroundTaskQueue, TaskListener

__all__ = ["BackgroundTaskQueue", "TaskListener"]
