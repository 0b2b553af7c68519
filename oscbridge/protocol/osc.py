"""
OSC Message Model

Routed events leave the bridge as OSC messages: an address string plus an
ordered argument list. Each argument carries its own wire tag so the emitter
never has to guess a type from a raw value.

Argument tags:
- Number -> "f" (float32)
- Text   -> "s" (string)
"""

from dataclasses import dataclass, field
from typing import ClassVar, Iterable, Union


@dataclass(frozen=True)
class Number:
    """A numeric OSC argument, sent as float."""
    value: float
    tag: ClassVar[str] = "f"

    def render(self) -> str:
        return f"{self.value:.3f}"


@dataclass(frozen=True)
class Text:
    """A string OSC argument."""
    value: str
    tag: ClassVar[str] = "s"

    def render(self) -> str:
        return self.value


OscArgument = Union[Number, Text]


def to_osc_argument(value: float | int | str) -> OscArgument:
    """
    Tag a raw envelope value.

    Booleans are numbers on the wire (1.0 / 0.0).
    """
    if isinstance(value, (int, float)):
        return Number(float(value))
    return Text(str(value))


def numeric_values(args: Iterable[OscArgument]) -> list[float]:
    """Return the values of the leading Number arguments."""
    values: list[float] = []
    for arg in args:
        if not isinstance(arg, Number):
            break
        values.append(arg.value)
    return values


@dataclass(frozen=True)
class OscMessage:
    """One outbound OSC message."""
    address: str
    args: tuple[OscArgument, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, address: str, *values: float | int | str) -> "OscMessage":
        """Build a message from raw values."""
        return cls(address, tuple(to_osc_argument(v) for v in values))

    def values(self) -> list[float | str]:
        """Raw argument values, in order."""
        return [arg.value for arg in self.args]

    def describe(self) -> str:
        """Compact log form: ``/mouse/xy [0.250, 0.750]``."""
        rendered = ", ".join(arg.render() for arg in self.args)
        return f"{self.address} [{rendered}]"
