"""
OSC Bridge Application

FastAPI application with the WebSocket endpoint browser clients connect
to. Pointer events arriving here are routed onto the OSC sink.

The endpoint is served at "/" (where the web client connects) and at
"/ws". GET /health reports mode, user count and emitter state.

Use create_app() to build an application for a given configuration;
all shared state lives in the RouterContext stored on app.state.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from oscbridge import __version__
from oscbridge.config import RouterSettings
from oscbridge.context import RouterContext
from oscbridge.emitter import OscEmitter
from oscbridge.transport.handler import WebSocketHandler

logger = logging.getLogger(__name__)


def create_app(
    settings: RouterSettings | None = None,
    emitter: OscEmitter | None = None
) -> FastAPI:
    """
    Build the bridge application.

    Args:
        settings: Startup settings (defaults to the environment)
        emitter: Emitter to use instead of UDP to the configured sink

    Raises:
        ConfigError: If the settings are invalid
    """
    if settings is None:
        settings = RouterSettings.from_env()
    settings.validate()

    context = RouterContext.create(settings, emitter=emitter)
    handler = WebSocketHandler(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Opens the OSC socket before the first connection is accepted and
        closes it on shutdown.
        """
        logger.info("Starting OSC bridge...")
        await context.start()

        yield

        logger.info("Shutting down OSC bridge...")
        await context.stop()
        logger.info("OSC bridge stopped")

    app = FastAPI(
        title="OSC Bridge",
        description="Multi-user WebSocket to OSC router for pointer and gesture events",
        version=__version__,
        lifespan=lifespan
    )
    app.state.context = context
    app.state.handler = handler

    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for browser clients.

        Every frame is one JSON envelope (data or control).
        """
        await handler.handle_connection(websocket)

    app.add_api_websocket_route("/", websocket_endpoint)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            **context.health(),
            "connections": handler.connection_count,
        }

    return app
