"""
Router Context

The bridge's shared state, built once at startup and handed to the
connection handler and HTTP routes. Nothing in the package keeps
module-level state.
"""

import logging
from dataclasses import dataclass

from oscbridge.config import RouterSettings
from oscbridge.emitter import OscEmitter
from oscbridge.policy import PolicyEngine
from oscbridge.session import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class RouterContext:
    """Registry, policy engine and emitter for one bridge process."""
    settings: RouterSettings
    registry: SessionRegistry
    engine: PolicyEngine
    emitter: OscEmitter

    @classmethod
    def create(
        cls,
        settings: RouterSettings,
        emitter: OscEmitter | None = None
    ) -> "RouterContext":
        """
        Wire up the components for the given settings.

        Args:
            settings: Validated startup settings
            emitter: Emitter to use instead of a UDP emitter for the
                configured sink
        """
        registry = SessionRegistry(zone_count=settings.zone_count)
        if emitter is None:
            emitter = OscEmitter(
                host=settings.osc_host,
                port=settings.osc_port,
                local_host=settings.osc_local_host,
                local_port=settings.osc_local_port,
            )
        engine = PolicyEngine(registry, emitter=emitter, initial_mode=settings.mode)
        return cls(settings=settings, registry=registry, engine=engine, emitter=emitter)

    async def start(self) -> None:
        await self.emitter.open()
        logger.info(
            f"Router ready (mode: {self.engine.mode.value}, "
            f"zones: {self.registry.zone_count}, osc: {self.emitter.target})"
        )

    async def stop(self) -> None:
        await self.emitter.close()

    def health(self) -> dict:
        """Summary for the health endpoint."""
        return {
            "status": "healthy",
            "mode": self.engine.mode.value,
            "users": self.registry.count,
            "active_user": self.engine.active_user,
            "zone_count": self.registry.zone_count,
            "osc_target": self.emitter.target,
            "osc_open": self.emitter.is_open,
            "osc_stats": self.emitter.stats,
        }
