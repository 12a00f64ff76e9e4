"""
Bounded-Concurrency Background Task Queue

An in-process asyncio queue that runs at most N background operations at once,
with FIFO admission, isolated failures, and observability.
"""

__version__ = "0.1.0"
