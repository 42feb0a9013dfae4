# Overview: Service-layer operations for inventory; stock checks, reservations and deductions.

"""
Forecourt Inventory Invariants (authoritative)

Two stock models:
- Non-fuel products carry a mutable current_stock in the product's own unit.
- Fuel is held in tanks. A dispenser sale is CHECKED against the tank level
  but never deducted from it; tank levels change only through height
  readings (see tank_service).

Business invariants:
- Stock may never go negative. A line that would overdraw is rejected as a
  whole; partial deductions do not exist.
- Within one closure, several lines for the same product are checked
  against a running view (StockReservations), so they cannot jointly
  overdraw what each would individually fit.
- Deductions are written in the closure's single transaction, under row lock.
"""

from __future__ import annotations

from forecourt.extensions import db
from forecourt.models import Product, Tank
from forecourt.services.concurrency import lock_for_update
from forecourt.services.units import UNIT_LITERS, convert_quantity, normalize_unit, round2


DIRECTION_OUT = "OUT"
DIRECTION_IN = "IN"


class InventoryError(Exception):
    """Raised when inventory operations fail."""
    pass


class InsufficientStockError(InventoryError):
    def __init__(self, product_code: str, available: float, requested: float):
        self.product_code = product_code
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_code}: "
            f"available {available:.2f}, requested {requested:.2f}"
        )


# =============================================================================
# FUEL TANKS
# =============================================================================

def find_active_tank(product_id: int, location_id: int) -> Tank | None:
    return db.session.query(Tank).filter_by(
        product_id=product_id,
        location_id=location_id,
        is_active=True,
    ).order_by(Tank.id.asc()).first()


def check_tank_capacity(tank: Tank, quantity_liters: float, quantity_gallons: float) -> str | None:
    """
    Check a dispenser sale against the tank's current level.

    The comparison is made in the tank's own unit. Returns an error message
    when the level is insufficient, else None. The tank is not modified.
    """
    tank_unit = normalize_unit(tank.unit)
    requested = quantity_liters if tank_unit == UNIT_LITERS else quantity_gallons
    level = round2(tank.current_level or 0.0)
    if requested > level:
        return (
            f"Insufficient level in tank {tank.name}: "
            f"available {level:.2f} {tank_unit}, requested {requested:.2f} {tank_unit}"
        )
    return None


# =============================================================================
# NON-FUEL STOCK
# =============================================================================

class StockReservations:
    """
    In-memory running stock view for one closure.

    Nothing is written to the database; reserved quantities are deducted
    at commit by adjust_stock.
    """

    def __init__(self):
        self._available: dict[int, float] = {}
        self._reserved: dict[int, float] = {}
        self._products: dict[int, Product] = {}

    def available(self, product: Product) -> float:
        if product.id not in self._available:
            self._available[product.id] = round2(product.current_stock or 0.0)
            self._products[product.id] = product
        return self._available[product.id]

    def reserve(self, product: Product, quantity: float) -> bool:
        """Reserve quantity (product unit). Returns False without side effects if short."""
        available = self.available(product)
        if quantity > available:
            return False
        self._available[product.id] = round2(available - quantity)
        self._reserved[product.id] = round2(self._reserved.get(product.id, 0.0) + quantity)
        return True

    def reserved_items(self) -> list[tuple[Product, float]]:
        return [(self._products[pid], qty) for pid, qty in self._reserved.items() if qty > 0]

    def projected_stock(self, product: Product) -> float:
        return self.available(product)


def quantity_in_product_unit(product: Product, quantity: float, unit: str | None) -> float:
    """Convert a sale quantity to the product's unit. Raises UnitError."""
    if not unit:
        return round2(quantity)
    return convert_quantity(quantity, unit, product.unit)


def stock_level_warning(product: Product, remaining: float) -> str | None:
    if remaining <= 0:
        return f"Product {product.code} is out of stock after this shift"
    if remaining <= (product.min_stock or 0.0):
        return (
            f"Product {product.code} is below minimum stock: "
            f"{remaining:.2f} remaining, minimum {product.min_stock:.2f}"
        )
    return None


def adjust_stock(product_id: int, quantity: float, direction: str = DIRECTION_OUT) -> Product:
    """
    Apply a stock movement under row lock. Flushes, never commits.

    Raises:
        InventoryError: unknown product or direction
        InsufficientStockError: an OUT movement would drive stock negative
    """
    if direction not in (DIRECTION_OUT, DIRECTION_IN):
        raise InventoryError(f"Invalid stock direction: {direction}")
    if quantity < 0:
        raise InventoryError("Stock movement quantity must be non-negative")

    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise InventoryError(f"Product {product_id} not found")

    current = round2(product.current_stock or 0.0)
    if direction == DIRECTION_OUT:
        if quantity > current:
            raise InsufficientStockError(product.code, current, quantity)
        product.current_stock = round2(current - quantity)
    else:
        product.current_stock = round2(current + quantity)

    db.session.flush()
    return product
