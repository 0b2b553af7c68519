"""
Routing Policy Engine

Decides what, if anything, each incoming pointer event becomes on the
OSC side. Exactly one routing mode is active for the whole process:

- separate: every client on its own address space (/user/{id}/...)
- single:   only the active client is forwarded, unmodified
- blended:  positions are averaged across all clients
- zones:    each client owns a cell of the screen grid (/zone/{n}/...)

Each mode is a RoutingPolicy. The engine holds one instance per
RoutingMode member and refuses to start if a member is missing, so an
unknown mode can never be stored and silently route nothing.

Routing is synchronous: a data envelope is routed and all its OSC
messages are handed to the emitter before control returns to the
event loop.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from oscbridge.protocol.osc import Number, OscArgument, OscMessage, numeric_values
from oscbridge.session.registry import SessionRegistry

if TYPE_CHECKING:
    from oscbridge.emitter import OscEmitter

logger = logging.getLogger(__name__)

# Addresses with special meaning
ADDRESS_XY = "/mouse/xy"
ADDRESS_X = "/mouse/x"
ADDRESS_Y = "/mouse/y"
ADDRESS_PRESS = "/press"
ADDRESS_USERS_COUNT = "/users/count"
ADDRESS_ACTIVE_USER = "/active/user"


class RoutingMode(str, Enum):
    """Process-wide collaboration policy."""
    SEPARATE = "separate"
    SINGLE = "single"
    BLENDED = "blended"
    ZONES = "zones"

    @classmethod
    def parse(cls, name: str) -> "RoutingMode | None":
        """Look up a mode by name; None if unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass
class RouteRequest:
    """
    Everything a policy needs to route one event.
    """
    sender_id: int
    address: str
    args: tuple[OscArgument, ...]
    registry: SessionRegistry
    active_user: int | None = None


class RoutingPolicy:
    """
    Base class for routing modes.

    Override route() to map one inbound event to zero or more
    outbound OSC messages.
    """

    mode: RoutingMode

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def on_enter(self, registry: SessionRegistry) -> None:
        """Called when the engine switches into this mode."""

    def route(self, request: RouteRequest) -> list[OscMessage]:
        return []


class SeparatePolicy(RoutingPolicy):
    """
    Every client is forwarded under its own prefix.

    /mouse/x from client 5 -> /user/5/mouse/x, followed by /users/count.
    """

    mode = RoutingMode.SEPARATE

    def route(self, request: RouteRequest) -> list[OscMessage]:
        return [
            OscMessage(f"/user/{request.sender_id}{request.address}", request.args),
            OscMessage.of(ADDRESS_USERS_COUNT, request.registry.count),
        ]


class SinglePolicy(RoutingPolicy):
    """
    Only the active client is heard.

    The active client's events pass through unchanged, followed by its
    id on /active/user. Everyone else is muted.
    """

    mode = RoutingMode.SINGLE

    def route(self, request: RouteRequest) -> list[OscMessage]:
        if request.active_user is None or request.sender_id != request.active_user:
            return []
        return [
            OscMessage(request.address, request.args),
            OscMessage.of(ADDRESS_ACTIVE_USER, request.sender_id),
        ]


class BlendedPolicy(RoutingPolicy):
    """
    All clients steer one shared cursor.

    Position events update the sender's entry in the aggregate and emit
    the mean over every connected client. Presses pass through from
    anyone. Other addresses are forwarded unchanged.
    """

    mode = RoutingMode.BLENDED

    def route(self, request: RouteRequest) -> list[OscMessage]:
        if request.address == ADDRESS_PRESS:
            return [OscMessage(request.address, request.args)]

        if request.address not in (ADDRESS_XY, ADDRESS_X, ADDRESS_Y):
            return [OscMessage(request.address, request.args)]

        if not self._apply_position(request):
            logger.debug(
                f"Ignoring {request.address} from {request.sender_id}: "
                f"expected numeric arguments"
            )
            return []

        mean = request.registry.mean_position()
        if mean is None:
            return []

        mean_x, mean_y = mean
        return [
            OscMessage.of(ADDRESS_X, mean_x),
            OscMessage.of(ADDRESS_Y, mean_y),
            OscMessage.of(ADDRESS_XY, mean_x, mean_y),
            OscMessage.of(ADDRESS_USERS_COUNT, request.registry.count),
        ]

    def _apply_position(self, request: RouteRequest) -> bool:
        values = numeric_values(request.args)
        registry = request.registry

        if request.address == ADDRESS_XY:
            if len(values) < 2:
                return False
            return registry.update_position(request.sender_id, x=values[0], y=values[1]) is not None

        if not values:
            return False

        if request.address == ADDRESS_X:
            return registry.update_position(request.sender_id, x=values[0]) is not None
        return registry.update_position(request.sender_id, y=values[0]) is not None


class ZonesPolicy(RoutingPolicy):
    """
    Each client owns a grid cell.

    Events are re-addressed under /zone/{n}. For /mouse/xy the engine also
    reports whether the pointer is inside the client's own zone.
    """

    mode = RoutingMode.ZONES

    def on_enter(self, registry: SessionRegistry) -> None:
        registry.reassign_zones()

    def route(self, request: RouteRequest) -> list[OscMessage]:
        registry = request.registry
        session = registry.get(request.sender_id)
        if session is None:
            return []

        zone = session.zone
        if zone is None:
            zone = registry.assign_zone(request.sender_id)

        prefix = f"/zone/{zone}"

        if request.address == ADDRESS_PRESS:
            return [OscMessage(f"{prefix}/press", request.args)]

        messages = [OscMessage(f"{prefix}{request.address}", request.args)]

        if request.address == ADDRESS_XY:
            values = numeric_values(request.args)
            if len(values) >= 2:
                inside = registry.classify_zone(values[0], values[1]) == zone
                messages.append(
                    OscMessage(f"{prefix}/active", (Number(1.0 if inside else 0.0),))
                )

        return messages


class PolicyEngine:
    """
    The routing-mode state machine.

    Owns the current RoutingMode and, for single mode, the active user.
    Reads and mutates the SessionRegistry; sends through the emitter.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        emitter: "OscEmitter | None" = None,
        initial_mode: RoutingMode = RoutingMode.SEPARATE
    ):
        """
        Initialize the engine.

        Args:
            registry: Session registry shared with the connection handler
            emitter: Outbound OSC emitter (None routes without sending)
            initial_mode: Mode active at startup
        """
        self._registry = registry
        self._emitter = emitter
        self._policies: dict[RoutingMode, RoutingPolicy] = {}
        self._register_default_policies()

        self._mode = initial_mode
        self._active_user: int | None = None
        self._policies[self._mode].on_enter(self._registry)
        if self._mode == RoutingMode.SINGLE:
            self._ensure_active_user()

    def _register_default_policies(self) -> None:
        """Register one policy per mode."""
        for policy in (SeparatePolicy(), SinglePolicy(), BlendedPolicy(), ZonesPolicy()):
            self._policies[policy.mode] = policy

        missing = [m.value for m in RoutingMode if m not in self._policies]
        if missing:
            raise RuntimeError(f"No routing policy registered for: {missing}")

    @property
    def mode(self) -> RoutingMode:
        return self._mode

    @property
    def active_user(self) -> int | None:
        return self._active_user

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # === State transitions ===

    def set_mode(self, name: str | RoutingMode) -> bool:
        """
        Switch routing mode.

        Entering zones reassigns every session's zone, even when zones
        was already active. Entering single picks an active user if
        there is none.

        Returns:
            True if the mode was applied, False if the name is unknown
        """
        mode = name if isinstance(name, RoutingMode) else RoutingMode.parse(name)
        if mode is None:
            logger.warning(f"Ignoring unknown routing mode: {name!r}")
            return False

        previous = self._mode
        self._mode = mode
        self._policies[mode].on_enter(self._registry)

        if mode == RoutingMode.SINGLE:
            self._ensure_active_user()

        logger.info(f"Routing mode: {previous.value} -> {mode.value}")
        return True

    def request_active(self, user_id: int) -> bool:
        """
        Make a client the active user.

        Only honored in single mode and for a connected session.
        """
        if self._mode != RoutingMode.SINGLE:
            logger.debug(f"requestActive from {user_id} ignored in {self._mode.value} mode")
            return False

        if user_id not in self._registry:
            return False

        if self._active_user != user_id:
            logger.info(f"Active user: {self._active_user} -> {user_id}")
        self._active_user = user_id
        return True

    def on_connect(self, user_id: int) -> None:
        """Mode-specific bookkeeping for a new session."""
        if self._mode == RoutingMode.ZONES:
            self._registry.assign_zone(user_id)
        elif self._mode == RoutingMode.SINGLE:
            self._ensure_active_user()

    def on_disconnect(self, user_id: int) -> bool:
        """
        Clean up after a session left the registry.

        Returns:
            True if the active user changed while single mode is on
        """
        if self._active_user != user_id:
            return False

        self._active_user = None
        self._ensure_active_user()
        logger.info(f"Active user {user_id} left; active user is now {self._active_user}")
        return self._mode == RoutingMode.SINGLE

    def _ensure_active_user(self) -> None:
        """Keep the active user pointing at a live session (lowest id wins)."""
        if self._active_user is not None and self._active_user in self._registry:
            return
        self._active_user = self._registry.lowest_id()
        if self._active_user is not None:
            logger.info(f"Active user set to {self._active_user}")

    # === Per-client view ===

    def is_active(self, user_id: int) -> bool:
        """Whether a client's events are currently forwarded."""
        if self._mode == RoutingMode.SINGLE:
            return user_id == self._active_user
        return True

    def zone_for(self, user_id: int) -> int | None:
        """The client's zone, reported only while zones mode is active."""
        if self._mode != RoutingMode.ZONES:
            return None
        session = self._registry.get(user_id)
        return session.zone if session else None

    # === Routing ===

    def route(
        self,
        sender_id: int,
        address: str,
        args: tuple[OscArgument, ...]
    ) -> list[OscMessage]:
        """
        Route one event under the current mode without sending it.

        A /mouse/xy sample always refreshes the sender's last position;
        blended mode additionally tracks single-axis samples.
        """
        if address == ADDRESS_XY and self._mode != RoutingMode.BLENDED:
            values = numeric_values(args)
            if len(values) >= 2:
                self._registry.update_position(sender_id, x=values[0], y=values[1])

        request = RouteRequest(
            sender_id=sender_id,
            address=address,
            args=args,
            registry=self._registry,
            active_user=self._active_user,
        )
        return self._policies[self._mode].route(request)

    def dispatch(
        self,
        sender_id: int,
        address: str,
        args: tuple[OscArgument, ...]
    ) -> list[OscMessage]:
        """
        Route one event and hand every resulting message to the emitter.

        Returns:
            The messages that were emitted
        """
        messages = self.route(sender_id, address, args)
        if self._emitter is not None:
            for message in messages:
                self._emitter.send(message)
        return messages
