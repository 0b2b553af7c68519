# Outbound Emitter
# Best-effort OSC over UDP to one fixed sink

from oscbridge.emitter.osc import OscEmitter, encode_message

__all__ = ["OscEmitter", "encode_message"]
