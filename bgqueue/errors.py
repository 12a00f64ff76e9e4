"""
Exceptions raised by the background task queue.

Task failures are never raised to callers; these cover caller misuse only.
"""


class QueueError(Exception):
    """Base class for queue errors."""


class ConfigurationError(QueueError, ValueError):
    """Raised when a queue is constructed or used with invalid settings."""


class QueueClosedError(QueueError, RuntimeError):
    """Raised when submitting to a queue that is shutting down."""
