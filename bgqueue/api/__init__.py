"""
API module.
Contains the FastAPI monitoring application and WebSocket event stream.
"""

from bgqueue.api.main import create_app, run

__all__ = ["create_app", "run"]
