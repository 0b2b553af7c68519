# Routing Policy Engine
# One routing policy per collaboration mode; the engine owns the current
# mode and the single-mode active user

from oscbridge.policy.engine import (
    PolicyEngine,
    RoutingMode,
    RoutingPolicy,
    RouteRequest,
    SeparatePolicy,
    SinglePolicy,
    BlendedPolicy,
    ZonesPolicy,
)

__all__ = [
    "PolicyEngine",
    "RoutingMode",
    "RoutingPolicy",
    "RouteRequest",
    "SeparatePolicy",
    "SinglePolicy",
    "BlendedPolicy",
    "ZonesPolicy",
]
