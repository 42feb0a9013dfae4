# Overview: Dispenser meter deltas; hose lookup, quantity and value per hose reading.

from __future__ import annotations

from dataclasses import dataclass

from forecourt.extensions import db
from forecourt.models import Dispenser, Hose, Product
from forecourt.services.catalog_service import find_product_by_code
from forecourt.services.closure_schemas import HoseReading
from forecourt.services.units import (
    UnitError,
    normalize_unit,
    price_per_gallon,
    round2,
    to_both_units,
    within_tolerance,
)


@dataclass
class HoseDelta:
    """Priced meter delta of one hose. Only built for positive deltas."""
    label: str
    dispenser_number: str
    reading: HoseReading
    product: Product
    unit: str
    quantity: float
    quantity_liters: float
    quantity_gallons: float
    unit_price: float
    price_per_gallon: float
    value: float
    hose: Hose | None = None


def hose_label(dispenser_number: str, hose_number: str) -> str:
    return f"Dispenser {dispenser_number} hose {hose_number}"


def find_hose(location_id: int, dispenser_number: str, hose_number: str) -> Hose | None:
    return db.session.query(Hose).join(
        Dispenser, Hose.dispenser_id == Dispenser.id
    ).filter(
        Dispenser.location_id == location_id,
        Dispenser.number == str(dispenser_number),
        Hose.number == str(hose_number),
    ).first()


def compute_hose_delta(
    location_id: int,
    dispenser_number: str,
    reading: HoseReading,
) -> tuple[HoseDelta | None, list[str], list[str]]:
    """
    Validate one hose reading and price its delta.

    delta = round2(current - previous), in the meter's unit. Fuel is priced
    per liter: value = round2(liters * sale_price).

    Returns:
        (delta or None, errors, warnings). None means the hose has no
        inventory or payment effect: an error was recorded or the delta is 0.
    """
    errors: list[str] = []
    warnings: list[str] = []
    label = hose_label(dispenser_number, reading.number)

    product = find_product_by_code(reading.product_code)
    if product is None:
        errors.append(f"{label}: product {reading.product_code} not found")
        return None, errors, warnings

    try:
        unit = normalize_unit(reading.unit or product.unit)
        quantity = round2(reading.current_reading - reading.previous_reading)
        if quantity > 0:
            liters, gallons = to_both_units(quantity, unit)
    except UnitError as exc:
        errors.append(f"{label}: {exc}")
        return None, errors, warnings

    if quantity < 0:
        errors.append(
            f"{label}: current reading {reading.current_reading} is lower than "
            f"previous reading {reading.previous_reading}"
        )
        return None, errors, warnings

    if quantity == 0:
        warnings.append(f"{label}: no sales recorded (meter did not move)")
        return None, errors, warnings

    hose = find_hose(location_id, dispenser_number, reading.number)
    if hose is None:
        warnings.append(f"{label}: hose is not registered; meter history was not recorded")
    else:
        # Never-read hoses have nothing to continue from
        if hose.current_reading is not None \
                and not within_tolerance(hose.current_reading, reading.previous_reading):
            warnings.append(
                f"{label}: previous reading {reading.previous_reading} does not continue "
                f"the last recorded reading {hose.current_reading}"
            )
        if hose.product_id != product.id:
            warnings.append(f"{label}: hose is registered for a different product than {product.code}")

    sale_price = product.sale_price or 0.0
    return HoseDelta(
        label=label,
        dispenser_number=str(dispenser_number),
        reading=reading,
        product=product,
        unit=unit,
        quantity=quantity,
        quantity_liters=liters,
        quantity_gallons=gallons,
        unit_price=sale_price,
        price_per_gallon=price_per_gallon(sale_price),
        value=round2(liters * sale_price),
        hose=hose,
    ), errors, warnings
