"""
Shared fixtures: a recording emitter (no sockets) and fake WebSockets.
"""

import json
import os

import pytest
from fastapi.websockets import WebSocketState

from oscbridge.config import RouterSettings
from oscbridge.context import RouterContext
from oscbridge.emitter import OscEmitter
from oscbridge.policy import PolicyEngine, RoutingMode
from oscbridge.protocol import OscMessage
from oscbridge.session import SessionRegistry
from oscbridge.transport import WebSocketHandler


class RecordingEmitter(OscEmitter):
    """Emitter that records messages instead of sending datagrams."""

    def __init__(self):
        super().__init__(host="127.0.0.1", port=9000, local_port=0)
        self.messages: list[OscMessage] = []
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    async def open(self) -> None:
        self._opened = True

    async def close(self) -> None:
        self._opened = False

    def send(self, message: OscMessage) -> bool:
        self.messages.append(message)
        return True

    def sent(self) -> list[tuple[str, list]]:
        """(address, values) pairs, in send order."""
        return [(m.address, m.values()) for m in self.messages]

    def clear(self) -> None:
        self.messages.clear()


class FakeWebSocket:
    """Just enough of a Starlette WebSocket for the handler."""

    def __init__(self, incoming: list | None = None):
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTED
        self.sent: list[dict] = []
        self._incoming = list(incoming or [])

    async def accept(self) -> None:
        self.application_state = WebSocketState.CONNECTED

    async def receive(self) -> dict:
        if not self._incoming:
            self.client_state = WebSocketState.DISCONNECTED
            return {"type": "websocket.disconnect", "code": 1000}
        item = self._incoming.pop(0)
        if isinstance(item, bytes):
            return {"type": "websocket.receive", "bytes": item}
        if not isinstance(item, str):
            item = json.dumps(item)
        return {"type": "websocket.receive", "text": item}

    async def send_text(self, text: str) -> None:
        if self.client_state != WebSocketState.CONNECTED:
            raise RuntimeError("send after close")
        self.sent.append(json.loads(text))

    def drop(self) -> None:
        """Simulate the peer going away without a close handshake."""
        self.client_state = WebSocketState.DISCONNECTED

    def frames(self, frame_type: str) -> list[dict]:
        return [f for f in self.sent if f.get("type") == frame_type]

    def last(self, frame_type: str) -> dict:
        return self.frames(frame_type)[-1]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep OSC_BRIDGE_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("OSC_BRIDGE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def registry():
    return SessionRegistry(zone_count=4)


@pytest.fixture
def engine(registry, emitter):
    return PolicyEngine(registry, emitter=emitter, initial_mode=RoutingMode.SEPARATE)


@pytest.fixture
def settings():
    return RouterSettings(osc_local_port=0)


@pytest.fixture
def context(settings, emitter):
    return RouterContext.create(settings, emitter=emitter)


@pytest.fixture
def handler(context):
    return WebSocketHandler(context)


@pytest.fixture
def connect(handler):
    """Connect a fresh fake client; returns (websocket, session)."""

    async def _connect():
        ws = FakeWebSocket()
        await ws.accept()
        session = handler.on_connect(ws)
        await handler.announce(session.user_id)
        return ws, session

    return _connect
