"""
API package - FastAPI routes and schemas.
"""

from runwatch.api.routes import websocket, workflows

__all__ = ["websocket", "workflows"]
