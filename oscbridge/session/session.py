"""
Client Session Model

The bridge's record of one connected client, alive exactly as long as
its WebSocket connection.
"""

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_POSITION: tuple[float, float] = (0.5, 0.5)


class ClientSession(BaseModel):
    """
    One connected client.

    Sessions are addressed by integer id everywhere outside the
    connection handler; the live socket is never stored here.
    """

    user_id: int = Field(
        ...,
        ge=1,
        description="Sequential id, never reused within the process"
    )
    zone: int | None = Field(
        default=None,
        ge=1,
        description="Assigned grid cell, only meaningful in zones mode"
    )
    last_position: tuple[float, float] = Field(
        default=DEFAULT_POSITION,
        description="Last reported (x, y) in the unit square"
    )
    connected_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the connection was accepted"
    )

    def move_to(self, x: float | None = None, y: float | None = None) -> tuple[float, float]:
        """Update one or both axes, keeping the other."""
        current_x, current_y = self.last_position
        self.last_position = (
            current_x if x is None else x,
            current_y if y is None else y,
        )
        return self.last_position
