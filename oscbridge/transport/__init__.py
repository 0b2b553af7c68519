# Transport Layer
# WebSocket connections from browser clients and the FastAPI application
# that serves them

from oscbridge.transport.handler import WebSocketHandler
from oscbridge.transport.app import create_app

__all__ = ["WebSocketHandler", "create_app"]
