"""
Bridge Envelope Models

Every WebSocket frame carries exactly one JSON envelope.

Inbound (client -> bridge):
- Data:            {"address": "/mouse/xy", "args": [0.25, 0.75]}
- Set mode:        {"type": "setMode", "mode": "blended"}
- Request active:  {"type": "requestActive"}

Outbound (bridge -> client):
- State snapshot:  {"type": "state", "userId": 3, "mode": "single",
                    "totalUsers": 4, "zone": null, "isActive": false}
- User count:      {"type": "userCount", "count": 4}

Frames carrying a "type" key are control envelopes; anything else must be
a data envelope. Clients never receive an error frame: a frame that fails
to parse is logged by the handler and dropped.
"""

import json
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from oscbridge.protocol.osc import OscArgument, to_osc_argument


class ControlType(str, Enum):
    """Control envelope types accepted from clients."""
    SET_MODE = "setMode"
    REQUEST_ACTIVE = "requestActive"


class EnvelopeError(ValueError):
    """Raised when an inbound frame cannot be turned into an envelope."""

    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"
    INVALID_DATA = "invalid_data"
    INVALID_CONTROL = "invalid_control"

    def __init__(self, reason: str, detail: str):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}")


class DataEnvelope(BaseModel):
    """
    One routed pointer/gesture event.

    ``args`` may be empty but must be present. Numbers must be finite
    (a literal such as 1e400 overflows to infinity and is refused).
    """
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    address: str = Field(
        ...,
        min_length=1,
        description="Slash-delimited event address, e.g. /mouse/xy"
    )
    args: list[float | str] = Field(
        ...,
        description="Ordered event arguments (numbers or strings)"
    )

    def osc_args(self) -> tuple[OscArgument, ...]:
        """Arguments as tagged OSC values."""
        return tuple(to_osc_argument(v) for v in self.args)


class SetModeEnvelope(BaseModel):
    """Switch the process-wide routing mode."""
    type: Literal["setMode"]
    mode: str = Field(..., description="Requested routing mode name")


class RequestActiveEnvelope(BaseModel):
    """Ask to become the forwarded client in single mode."""
    type: Literal["requestActive"]


ControlEnvelope = Annotated[
    Union[SetModeEnvelope, RequestActiveEnvelope],
    Field(discriminator="type"),
]

InboundEnvelope = Union[DataEnvelope, SetModeEnvelope, RequestActiveEnvelope]

_control_adapter = TypeAdapter(ControlEnvelope)


def _reject_constant(name: str) -> float:
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"non-standard JSON constant {name}")


def parse_envelope(raw: str | bytes) -> InboundEnvelope:
    """
    Parse one inbound frame.

    Raises:
        EnvelopeError: If the frame is not valid JSON, not an object,
            or does not match either envelope shape.
    """
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError) as e:
        raise EnvelopeError(EnvelopeError.INVALID_JSON, str(e)) from e

    if not isinstance(data, dict):
        raise EnvelopeError(
            EnvelopeError.NOT_AN_OBJECT,
            f"expected a JSON object, got {type(data).__name__}"
        )

    if "type" in data:
        try:
            return _control_adapter.validate_python(data)
        except ValidationError as e:
            raise EnvelopeError(EnvelopeError.INVALID_CONTROL, str(e)) from e

    try:
        return DataEnvelope.model_validate(data)
    except ValidationError as e:
        raise EnvelopeError(EnvelopeError.INVALID_DATA, str(e)) from e


# === Outbound messages ===

class StateSnapshot(BaseModel):
    """Global state as it pertains to one client."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["state"] = "state"
    user_id: int = Field(..., alias="userId")
    mode: str
    total_users: int = Field(..., alias="totalUsers")
    zone: int | None = None
    is_active: bool = Field(..., alias="isActive")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class UserCountUpdate(BaseModel):
    """Connected client count, pushed on connect and disconnect."""
    type: Literal["userCount"] = "userCount"
    count: int

    def to_json(self) -> str:
        return self.model_dump_json()


def create_state_snapshot(
    user_id: int,
    mode: str,
    total_users: int,
    zone: int | None,
    is_active: bool
) -> StateSnapshot:
    """Build the state frame sent to a single client."""
    return StateSnapshot(
        user_id=user_id,
        mode=mode,
        total_users=total_users,
        zone=zone,
        is_active=is_active
    )


def create_user_count(count: int) -> UserCountUpdate:
    """Build the user-count frame broadcast to every client."""
    return UserCountUpdate(count=count)
