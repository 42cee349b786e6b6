"""Rolling indicator computations for the tick engine.

Indicators are small stateful objects fed one sample per tick.  Each
keeps a bounded window of optional float samples with the newest sample
at the front; once the window holds more than ``length`` samples the
oldest is evicted.  A sample is ``None`` when there was nothing to
observe on that tick (a tick for another asset, or an upstream
indicator that was not ready yet).  Absent samples occupy a slot in the
window but are skipped by the computations.

The set of indicator kinds is closed: :class:`MovingAverage` and
:class:`Momentum`.  :func:`build_indicator` maps an
:class:`IndicatorSpec` to the matching class.

Indicator values are ordinary floats.  They are derived statistics and
never enter the ledger.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..config import PRICE_INPUT

Sample = Optional[float]


class IndicatorSpec(BaseModel):
    """Declarative description of an indicator to register.

    Attributes:
        kind: ``moving_average`` or ``momentum``.
        length: Window size in samples (at least 1).
        input: ``"price"`` for the tick midpoint, otherwise the name of
            another registered indicator.
        asset: When set, a ``"price"`` input only samples ticks for this
            asset; ticks for other assets contribute an absent sample.
    """

    kind: Literal["moving_average", "momentum"]
    length: int = Field(ge=1)
    input: str = PRICE_INPUT
    asset: Optional[str] = None

    @property
    def uses_price(self) -> bool:
        return self.input == PRICE_INPUT


class _WindowIndicator:
    """Shared window handling for the indicator kinds."""

    kind: str = ""

    def __init__(self, name: str, spec: IndicatorSpec) -> None:
        self.name = name
        self.spec = spec
        self._window: Deque[Sample] = deque(maxlen=spec.length)

    @property
    def length(self) -> int:
        return self.spec.length

    @property
    def input(self) -> str:
        return self.spec.input

    def update(self, sample: Sample) -> None:
        # appendleft on a bounded deque drops the oldest sample at the right
        self._window.appendleft(None if sample is None else float(sample))

    def samples(self) -> list[Sample]:
        """Window contents, newest first."""
        return list(self._window)

    def _present(self) -> Iterator[float]:
        return (s for s in self._window if s is not None)

    def value(self) -> Optional[float]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, length={self.length}, "
            f"input={self.input!r}, samples={len(self._window)})"
        )


class MovingAverage(_WindowIndicator):
    """Arithmetic mean of the present samples in the window."""

    kind = "moving_average"

    def value(self) -> Optional[float]:
        present = list(self._present())
        if not present:
            return None
        return sum(present) / len(present)


class Momentum(_WindowIndicator):
    """Oldest present sample minus newest present sample."""

    kind = "momentum"

    def value(self) -> Optional[float]:
        present = list(self._present())
        if not present:
            return None
        # window is newest first
        return present[-1] - present[0]


Indicator = Union[MovingAverage, Momentum]

_KINDS = {
    MovingAverage.kind: MovingAverage,
    Momentum.kind: Momentum,
}


def build_indicator(name: str, spec: IndicatorSpec) -> Indicator:
    """Create the indicator instance described by ``spec``."""
    return _KINDS[spec.kind](name, spec)


def parse_indicator_option(text: str) -> tuple[str, IndicatorSpec]:
    """Parse a ``NAME=KIND:LENGTH[:INPUT][@ASSET]`` command-line value.

    ``KIND`` accepts ``ma``/``moving_average`` and ``mom``/``momentum``.
    ``INPUT`` defaults to ``price``.

    >>> parse_indicator_option("fast=ma:5")[1].length
    5
    """
    if "=" not in text:
        raise ValueError(f"Indicator {text!r} must look like NAME=KIND:LENGTH[:INPUT][@ASSET]")
    name, body = text.split("=", 1)
    name = name.strip()
    if not name:
        raise ValueError(f"Indicator {text!r} has an empty name")
    asset: Optional[str] = None
    if "@" in body:
        body, asset = body.rsplit("@", 1)
        asset = asset.strip() or None
    parts = [p.strip() for p in body.split(":")]
    if len(parts) not in (2, 3):
        raise ValueError(f"Indicator {text!r} must look like NAME=KIND:LENGTH[:INPUT][@ASSET]")
    aliases = {"ma": "moving_average", "mom": "momentum"}
    kind = aliases.get(parts[0].lower(), parts[0].lower())
    try:
        length = int(parts[1])
    except ValueError:
        raise ValueError(f"Indicator {text!r} has a non-integer length {parts[1]!r}")
    input_name = parts[2] if len(parts) == 3 and parts[2] else PRICE_INPUT
    spec = IndicatorSpec(kind=kind, length=length, input=input_name, asset=asset)
    return name, spec
