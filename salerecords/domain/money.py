from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Annotated, Iterable, Literal

from pydantic import PlainSerializer

RoundStrategy = Literal["none", "ceil", "floor", "round"]

_ROUNDING_MODES = {
    "none": ROUND_HALF_UP,
    "round": ROUND_HALF_UP,
    "ceil": ROUND_CEILING,
    "floor": ROUND_FLOOR,
}

ZERO = Decimal("0")


@dataclass(frozen=True)
class RoundingSpec:
    digits: int
    strategy: RoundStrategy

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.digits)


# Plain fixed-point at cent precision, used whenever a store policy does not apply.
DEFAULT_ROUNDING = RoundingSpec(digits=2, strategy="none")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def to_fixed(value, spec: RoundingSpec | None = None) -> Decimal:
    spec = spec or DEFAULT_ROUNDING
    return to_decimal(value).quantize(spec.quantum, rounding=_ROUNDING_MODES[spec.strategy])


def sum_fixed(values: Iterable) -> Decimal:
    total = ZERO
    for value in values:
        total = to_fixed(total + to_decimal(value))
    return total


# Decimal in memory, JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
