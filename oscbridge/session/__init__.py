# Session Registry
# Tracks connected clients, their ids, zone assignments and last positions

from oscbridge.session.session import ClientSession, DEFAULT_POSITION
from oscbridge.session.registry import SessionRegistry, is_perfect_square

__all__ = [
    "ClientSession",
    "DEFAULT_POSITION",
    "SessionRegistry",
    "is_perfect_square",
]
