"""
API response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    queue: str
    timestamp: datetime
