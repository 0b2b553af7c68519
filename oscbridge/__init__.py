# OSC Bridge - multi-user WebSocket to OSC router
# Browser clients stream pointer/gesture events over WebSocket; the bridge
# routes them onto one OSC/UDP sink under a switchable collaboration mode

__version__ = "0.1.0"

from oscbridge.config import RouterSettings, ConfigError
from oscbridge.context import RouterContext
from oscbridge.policy import PolicyEngine, RoutingMode
from oscbridge.session import SessionRegistry, ClientSession
from oscbridge.emitter import OscEmitter
from oscbridge.protocol import OscMessage, Number, Text

__all__ = [
    "__version__",
    # Configuration
    "RouterSettings",
    "ConfigError",
    "RouterContext",
    # Core
    "PolicyEngine",
    "RoutingMode",
    "SessionRegistry",
    "ClientSession",
    "OscEmitter",
    # OSC model
    "OscMessage",
    "Number",
    "Text",
]
