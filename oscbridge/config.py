"""
Bridge Configuration

Settings come from three layers, later ones winning:
1. Defaults below
2. OSC_BRIDGE_* environment variables (a .env file in the working
   directory is loaded first)
3. Command line flags (see oscbridge.__main__)

Environment variables:
- OSC_BRIDGE_LISTEN_HOST: WebSocket listen interface (default "0.0.0.0")
- OSC_BRIDGE_WS_PORT: WebSocket listen port (default 8000)
- OSC_BRIDGE_OSC_HOST: OSC sink host (default "127.0.0.1")
- OSC_BRIDGE_OSC_PORT: OSC sink port (default 9000)
- OSC_BRIDGE_OSC_LOCAL_HOST: Local interface for the UDP socket (default "0.0.0.0")
- OSC_BRIDGE_OSC_LOCAL_PORT: Local UDP port, 0 for ephemeral (default 57121)
- OSC_BRIDGE_MODE: Initial routing mode (default "separate")
- OSC_BRIDGE_ZONES: Zone count, a perfect square (default 4)
- OSC_BRIDGE_LOG_LEVEL: Logging level (default "INFO")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any

from dotenv import load_dotenv

from oscbridge.policy.engine import RoutingMode
from oscbridge.session.registry import is_perfect_square

ENV_PREFIX = "OSC_BRIDGE_"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigError(ValueError):
    """Invalid startup configuration. Fatal."""


@dataclass(frozen=True)
class RouterSettings:
    """
    Startup configuration for the bridge.

    Attributes:
        listen_host: Interface the WebSocket server binds
        ws_port: WebSocket listen port
        osc_host: OSC sink host
        osc_port: OSC sink UDP port
        osc_local_host: Local interface for the outbound UDP socket
        osc_local_port: Local UDP port for the outbound socket (0 = ephemeral)
        initial_mode: Routing mode at startup
        zone_count: Number of zones, a perfect square; fixed for the process
        log_level: Root logging level name
    """
    listen_host: str = "0.0.0.0"
    ws_port: int = 8000
    osc_host: str = "127.0.0.1"
    osc_port: int = 9000
    osc_local_host: str = "0.0.0.0"
    osc_local_port: int = 57121
    initial_mode: str = RoutingMode.SEPARATE.value
    zone_count: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> RouterSettings:
        """
        Build settings from OSC_BRIDGE_* environment variables.

        Raises:
            ConfigError: If a numeric variable is not an integer
        """
        if load_dotenv_file:
            load_dotenv()

        env_names = {
            "listen_host": "LISTEN_HOST",
            "ws_port": "WS_PORT",
            "osc_host": "OSC_HOST",
            "osc_port": "OSC_PORT",
            "osc_local_host": "OSC_LOCAL_HOST",
            "osc_local_port": "OSC_LOCAL_PORT",
            "initial_mode": "MODE",
            "zone_count": "ZONES",
            "log_level": "LOG_LEVEL",
        }

        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + env_names[f.name])
            if raw is None or raw == "":
                continue
            if f.type in (int, "int"):
                try:
                    values[f.name] = int(raw)
                except ValueError:
                    raise ConfigError(
                        f"{ENV_PREFIX}{env_names[f.name]} must be an integer, got {raw!r}"
                    ) from None
            else:
                values[f.name] = raw

        return cls(**values)

    def with_overrides(self, **overrides: Any) -> RouterSettings:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def mode(self) -> RoutingMode:
        """The initial mode as an enum (call validate() first)."""
        return RoutingMode(self.initial_mode)

    def validate(self) -> RouterSettings:
        """
        Check the settings before any socket is opened.

        Returns:
            self, for chaining

        Raises:
            ConfigError: On the first invalid value
        """
        for name in ("ws_port", "osc_port", "osc_local_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise ConfigError(f"{name} must be between 0 and 65535, got {port}")

        if not self.osc_host:
            raise ConfigError("osc_host must not be empty")

        if RoutingMode.parse(self.initial_mode) is None:
            choices = ", ".join(m.value for m in RoutingMode)
            raise ConfigError(
                f"Unknown routing mode {self.initial_mode!r} (expected one of: {choices})"
            )

        if not is_perfect_square(self.zone_count):
            raise ConfigError(
                f"zone_count must be a perfect square (4, 9, 16, ...), got {self.zone_count}"
            )

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level {self.log_level!r}")

        return self


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT
    )
