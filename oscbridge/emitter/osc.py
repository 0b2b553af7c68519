"""
OSC Emitter

Fire-and-forget OSC/UDP sender for routed events. One datagram socket,
one fixed remote endpoint (the sink: TouchDesigner, Max/MSP, ...).

Sends never raise into the caller: encoding problems, transport errors
and ICMP "port unreachable" reports are logged and the message is lost.
There is no retry and no backpressure; pointer streams are continuous,
so the next sample replaces a lost one.
"""

import asyncio
import logging

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from oscbridge.protocol.osc import OscMessage

logger = logging.getLogger(__name__)


def encode_message(message: OscMessage) -> bytes:
    """
    Encode a routed message as an OSC datagram.

    Raises:
        BuildError: If python-osc rejects the address or an argument
        OverflowError: If a number does not fit in float32
    """
    builder = OscMessageBuilder(address=message.address)
    for arg in message.args:
        builder.add_arg(arg.value, arg.tag)
    return builder.build().dgram


class _SinkProtocol(asyncio.DatagramProtocol):
    """Receives transport-level errors for the outbound socket."""

    def __init__(self, target: str):
        self._target = target

    def error_received(self, exc: Exception) -> None:
        logger.error(f"OSC transport error ({self._target}): {exc}")

    def connection_lost(self, exc: Exception | None) -> None:
        if exc:
            logger.error(f"OSC socket lost ({self._target}): {exc}")


class OscEmitter:
    """
    Sends OscMessages to the configured sink.

    open() must run inside the event loop before messages are sent;
    messages sent while closed are dropped with a warning.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 9000,
        local_host: str = "0.0.0.0",
        local_port: int = 0
    ):
        """
        Initialize the emitter.

        Args:
            host: Sink host
            port: Sink UDP port
            local_host: Local interface to bind
            local_port: Local UDP port to bind (0 = ephemeral)
        """
        self._host = host
        self._port = port
        self._local_addr = (local_host, local_port)
        self._transport: asyncio.DatagramTransport | None = None
        self._sent = 0
        self._failed = 0

    @property
    def target(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def is_open(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def stats(self) -> dict[str, int]:
        return {"sent": self._sent, "failed": self._failed}

    async def open(self) -> None:
        """
        Bind the datagram socket.

        Raises:
            OSError: If the local port cannot be bound or the sink host
                cannot be resolved
        """
        if self.is_open:
            return

        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _SinkProtocol(self.target),
            local_addr=self._local_addr,
            remote_addr=(self._host, self._port),
        )
        self._transport = transport
        logger.info(f"OSC sending to {self.target}")

    async def close(self) -> None:
        """Close the socket. In-flight datagrams may be lost."""
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        logger.info(f"OSC emitter closed (sent={self._sent}, failed={self._failed})")

    def send(self, message: OscMessage) -> bool:
        """
        Send one message without waiting for anything.

        Returns:
            True if the datagram was handed to the OS
        """
        if not self.is_open:
            self._failed += 1
            logger.warning(f"OSC emitter not open, dropping {message.address}")
            return False

        try:
            datagram = encode_message(message)
        except (BuildError, ValueError, TypeError, OverflowError) as e:
            self._failed += 1
            logger.error(f"Cannot encode OSC message {message.address}: {e}")
            return False

        try:
            self._transport.sendto(datagram)
        except OSError as e:
            self._failed += 1
            logger.error(f"OSC send to {self.target} failed: {e}")
            return False

        self._sent += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(message.describe())
        return True
