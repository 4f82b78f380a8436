"""Health quantity units and conversion.

Units are grouped by dimension; conversion is only defined between units
of the same dimension. Unit strings follow the Apple Health export format
(``count``, ``km``, ``mi``, ``km/hr``, ``m/s``, ``%``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass


class IncompatibleUnitError(ValueError):
    """Raised when converting between units of different dimensions."""


class UnknownUnitError(ValueError):
    """Raised when a unit string is not in the registry."""


@dataclass(frozen=True)
class Unit:
    """A unit with a linear factor to its dimension's base unit."""

    symbol: str
    dimension: str
    factor: float  # multiply by this to reach the base unit

    def __str__(self) -> str:
        return self.symbol


# Base units: count, meter, meter/second, percent
_UNITS: dict[str, Unit] = {
    u.symbol: u
    for u in (
        Unit("count", "count", 1.0),
        Unit("m", "length", 1.0),
        Unit("cm", "length", 0.01),
        Unit("km", "length", 1000.0),
        Unit("ft", "length", 0.3048),
        Unit("in", "length", 0.0254),
        Unit("mi", "length", 1609.344),
        Unit("m/s", "speed", 1.0),
        Unit("km/hr", "speed", 1000.0 / 3600.0),
        Unit("mi/hr", "speed", 1609.344 / 3600.0),
        Unit("ft/s", "speed", 0.3048),
        Unit("%", "percent", 1.0),
    )
}

COUNT = _UNITS["count"]
METER = _UNITS["m"]
CENTIMETER = _UNITS["cm"]
METERS_PER_SECOND = _UNITS["m/s"]
PERCENT = _UNITS["%"]


def get_unit(symbol: str) -> Unit:
    """Look up a unit by its symbol.

    Raises:
        UnknownUnitError: If the symbol is not registered.
    """
    try:
        return _UNITS[symbol]
    except KeyError:
        raise UnknownUnitError(f"Unknown unit: {symbol!r}") from None


@dataclass(frozen=True)
class Quantity:
    """A numeric value tagged with a unit."""

    value: float
    unit: Unit

    def double_value(self, unit: Unit) -> float:
        """Return the value expressed in ``unit``.

        Raises:
            IncompatibleUnitError: If ``unit`` measures a different dimension.
        """
        if unit.dimension != self.unit.dimension:
            raise IncompatibleUnitError(
                f"Cannot convert {self.unit} ({self.unit.dimension}) "
                f"to {unit} ({unit.dimension})"
            )
        if unit == self.unit:
            return float(self.value)
        return self.value * self.unit.factor / unit.factor

    def is_compatible(self, unit: Unit) -> bool:
        return unit.dimension == self.unit.dimension
