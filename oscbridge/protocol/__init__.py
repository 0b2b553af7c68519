# Wire Protocol
# Inbound/outbound WebSocket envelopes and the OSC argument/message model
# shared by the policy engine and the emitter

from oscbridge.protocol.envelope import (
    DataEnvelope,
    SetModeEnvelope,
    RequestActiveEnvelope,
    ControlType,
    InboundEnvelope,
    StateSnapshot,
    UserCountUpdate,
    EnvelopeError,
    parse_envelope,
    create_state_snapshot,
    create_user_count,
)
from oscbridge.protocol.osc import (
    Number,
    Text,
    OscArgument,
    OscMessage,
    to_osc_argument,
    numeric_values,
)

__all__ = [
    # Envelopes
    "DataEnvelope",
    "SetModeEnvelope",
    "RequestActiveEnvelope",
    "ControlType",
    "InboundEnvelope",
    "StateSnapshot",
    "UserCountUpdate",
    "EnvelopeError",
    "parse_envelope",
    "create_state_snapshot",
    "create_user_count",
    # OSC
    "Number",
    "Text",
    "OscArgument",
    "OscMessage",
    "to_osc_argument",
    "numeric_values",
]
