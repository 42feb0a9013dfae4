# Overview: Pure unit conversion and rounding helpers for meter and stock quantities.

"""
Volume conversion and step-wise rounding.

ROUNDING:
Every derived quantity or amount is rounded to 2 decimals immediately after
it is derived, before any further arithmetic. round2 rounds half up
(toward +infinity), so reference totals reproduce exactly.
"""

from __future__ import annotations

import math


GALLONS_TO_LITERS = 3.78541
LITERS_TO_GALLONS = 0.264172

# Tolerance used for every amount / quantity comparison
TOLERANCE = 0.01
FLOAT_EPSILON = 1e-9

# Worst case of liters -> gallons -> liters: each leg rounds to 2 decimals,
# so the gallon rounding (<= 0.005 gal, about 0.019 L) survives the trip
ROUND_TRIP_LITERS_BOUND = 0.02

UNIT_GALLONS = "GALLONS"
UNIT_LITERS = "LITERS"
UNIT_UNITS = "UNITS"

VOLUME_UNITS = {UNIT_GALLONS, UNIT_LITERS}

_UNIT_ALIASES = {
    "galones": UNIT_GALLONS,
    "galon": UNIT_GALLONS,
    "gallons": UNIT_GALLONS,
    "gallon": UNIT_GALLONS,
    "gal": UNIT_GALLONS,
    "litros": UNIT_LITERS,
    "litro": UNIT_LITERS,
    "liters": UNIT_LITERS,
    "liter": UNIT_LITERS,
    "litres": UNIT_LITERS,
    "litre": UNIT_LITERS,
    "l": UNIT_LITERS,
    "unidades": UNIT_UNITS,
    "unidad": UNIT_UNITS,
    "units": UNIT_UNITS,
    "unit": UNIT_UNITS,
    "und": UNIT_UNITS,
}


class UnitError(ValueError):
    """Raised for unknown or incompatible unit strings."""
    pass


def round2(value: float) -> float:
    """Round half up to 2 decimals (0.125 -> 0.13, -0.125 -> -0.12)."""
    return math.floor(value * 100 + 0.5) / 100


def within_tolerance(a: float, b: float, tolerance: float = TOLERANCE) -> bool:
    # Epsilon absorbs float noise only; 0.014 apart is not a match
    return abs(a - b) <= tolerance + FLOAT_EPSILON


def normalize_unit(unit: str | None) -> str:
    if unit is None:
        raise UnitError("Unit is required")
    key = str(unit).strip().lower()
    if key.upper() in {UNIT_GALLONS, UNIT_LITERS, UNIT_UNITS}:
        return key.upper()
    try:
        return _UNIT_ALIASES[key]
    except KeyError:
        raise UnitError(f"Invalid unit: {unit}")


def gallons_to_liters(gallons: float) -> float:
    return round2(gallons * GALLONS_TO_LITERS)


def liters_to_gallons(liters: float) -> float:
    return round2(liters * LITERS_TO_GALLONS)


def to_both_units(quantity: float, unit: str) -> tuple[float, float]:
    """
    Express a volume in liters and gallons.

    Returns (liters, gallons), each rounded. The side matching the input
    unit is the input itself (rounded).
    """
    canonical = normalize_unit(unit)
    if canonical == UNIT_GALLONS:
        return gallons_to_liters(quantity), round2(quantity)
    if canonical == UNIT_LITERS:
        return round2(quantity), liters_to_gallons(quantity)
    raise UnitError(f"Unit {unit} is not a volume unit")


def convert_quantity(quantity: float, from_unit: str, to_unit: str) -> float:
    source = normalize_unit(from_unit)
    target = normalize_unit(to_unit)
    if source == target:
        return round2(quantity)
    if source in VOLUME_UNITS and target in VOLUME_UNITS:
        liters, gallons = to_both_units(quantity, source)
        return gallons if target == UNIT_GALLONS else liters
    raise UnitError(f"Cannot convert {source} to {target}")


def price_per_gallon(price_per_liter: float) -> float:
    return round2(price_per_liter / LITERS_TO_GALLONS)
