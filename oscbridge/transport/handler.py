"""
WebSocket Handler

The connection side of the bridge. Every browser client holds one
WebSocket; each frame is a single JSON envelope.

Supported inbound envelopes:
- {address, args}         -> routed by the policy engine onto OSC
- {type: "setMode"}       -> switches routing mode, snapshots to everyone
- {type: "requestActive"} -> (single mode) takes over, snapshots to everyone

Pushed to clients:
- state      -> on connect, and to everyone after any mode/active change
- userCount  -> to everyone on connect and disconnect

Clients are addressed by session id. The live WebSocket objects never
leave this module.

Each frame is handled to completion before the next one on the same
connection is read. A bad frame or a failure while handling one is
logged and contained to that frame.
"""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from oscbridge.context import RouterContext
from oscbridge.protocol.envelope import (
    DataEnvelope,
    EnvelopeError,
    RequestActiveEnvelope,
    SetModeEnvelope,
    StateSnapshot,
    create_state_snapshot,
    create_user_count,
    parse_envelope,
)
from oscbridge.session import ClientSession

logger = logging.getLogger(__name__)


def _is_open(websocket: WebSocket) -> bool:
    return (
        websocket.application_state == WebSocketState.CONNECTED
        and websocket.client_state == WebSocketState.CONNECTED
    )


class WebSocketHandler:
    """
    Accepts client connections and drives the per-connection receive loop.
    """

    def __init__(self, context: RouterContext):
        """
        Initialize the handler.

        Args:
            context: Shared registry, policy engine and emitter
        """
        self._context = context
        self._registry = context.registry
        self._engine = context.engine

        # Connection store: user_id -> WebSocket
        self._connections: dict[int, WebSocket] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def handle_connection(self, websocket: WebSocket) -> None:
        """
        Handle a WebSocket connection lifecycle.

        Disconnect cleanup always runs, whether the client closed, the
        transport failed or the server is shutting down.
        """
        await websocket.accept()
        user_id = self.on_connect(websocket).user_id

        try:
            await self.announce(user_id)

            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is None:
                    continue

                await self.on_message(user_id, raw)

        except WebSocketDisconnect:
            pass

        except Exception as e:
            logger.error(f"WebSocket error for user {user_id}: {e}")

        finally:
            await self.on_close(user_id)

    # === Lifecycle ===

    def on_connect(self, websocket: WebSocket) -> ClientSession:
        """
        Register a newly accepted connection.

        Synchronous; the caller follows up with announce().
        """
        session = self._registry.add()
        self._connections[session.user_id] = websocket
        self._engine.on_connect(session.user_id)

        logger.info(
            f"Client connected: user {session.user_id} "
            f"(total: {self._registry.count}, mode: {self._engine.mode.value})"
        )
        return session

    async def announce(self, user_id: int) -> None:
        """
        Greet a registered client.

        The new client gets its state snapshot first, then every client
        (including the new one) gets the updated user count.
        """
        await self.send_snapshot(user_id)
        await self.broadcast(create_user_count(self._registry.count).to_json())

    async def on_close(self, user_id: int) -> None:
        """
        Remove a session and tell the remaining clients.

        If the active user left in single mode, everyone also gets a
        fresh snapshot naming the new active user.
        """
        self._connections.pop(user_id, None)
        if self._registry.remove(user_id) is None:
            return

        active_changed = self._engine.on_disconnect(user_id)

        logger.info(f"Client disconnected: user {user_id} (total: {self._registry.count})")

        await self.broadcast(create_user_count(self._registry.count).to_json())
        if active_changed:
            await self.broadcast_snapshots()

    # === Inbound ===

    async def on_message(self, user_id: int, raw: str | bytes) -> None:
        """
        Handle one inbound frame from a client.

        Never raises: parse failures and handler errors are logged.
        """
        try:
            envelope = parse_envelope(raw)
        except EnvelopeError as e:
            logger.warning(f"Dropping frame from user {user_id} ({e.reason}): {e.detail}")
            return

        try:
            if isinstance(envelope, DataEnvelope):
                self._handle_data(user_id, envelope)
            elif isinstance(envelope, SetModeEnvelope):
                await self._handle_set_mode(user_id, envelope)
            elif isinstance(envelope, RequestActiveEnvelope):
                await self._handle_request_active(user_id)
        except Exception:
            logger.exception(f"Error handling frame from user {user_id}")

    def _handle_data(self, user_id: int, envelope: DataEnvelope) -> None:
        if user_id not in self._registry:
            return
        self._engine.dispatch(user_id, envelope.address, envelope.osc_args())

    async def _handle_set_mode(self, user_id: int, envelope: SetModeEnvelope) -> None:
        if not self._engine.set_mode(envelope.mode):
            return
        logger.info(f"User {user_id} set mode to {self._engine.mode.value}")
        await self.broadcast_snapshots()

    async def _handle_request_active(self, user_id: int) -> None:
        if not self._engine.request_active(user_id):
            return
        await self.broadcast_snapshots()

    # === Outbound ===

    def snapshot_for(self, user_id: int) -> StateSnapshot:
        """Current global state as seen by one client."""
        return create_state_snapshot(
            user_id=user_id,
            mode=self._engine.mode.value,
            total_users=self._registry.count,
            zone=self._engine.zone_for(user_id),
            is_active=self._engine.is_active(user_id),
        )

    async def send_snapshot(self, user_id: int) -> bool:
        """Send one client its state snapshot."""
        return await self._send_text(user_id, self.snapshot_for(user_id).to_json())

    async def broadcast_snapshots(self) -> None:
        """
        Send every client its own snapshot.

        All snapshots are built before the first send, so every client
        sees the same logical state.
        """
        frames = [
            (user_id, self.snapshot_for(user_id).to_json())
            for user_id in list(self._connections)
        ]
        for user_id, text in frames:
            await self._send_text(user_id, text)

    async def broadcast(self, text: str) -> None:
        """Send one serialized frame to every open connection."""
        for user_id in list(self._connections):
            await self._send_text(user_id, text)

    async def _send_text(self, user_id: int, text: str) -> bool:
        websocket = self._connections.get(user_id)
        if websocket is None or not _is_open(websocket):
            return False
        try:
            await websocket.send_text(text)
            return True
        except Exception as e:
            logger.warning(f"Error sending to user {user_id}: {e}")
            return False
