# Overview: Product catalog and payment-method registry lookups.

from __future__ import annotations

from forecourt.extensions import db
from forecourt.models import Product, PaymentMethod
from forecourt.services.concurrency import run_with_retry
from forecourt.services.units import normalize_unit


# Seeded by `flask system seed-payment-methods`
DEFAULT_PAYMENT_METHODS = [
    ("CASH", "Cash"),
    ("EFECTIVO", "Efectivo"),
    ("CREDIT_CARD", "Credit card"),
    ("DEBIT_CARD", "Debit card"),
    ("TARJETA_CREDITO", "Tarjeta de credito"),
    ("TARJETA_DEBITO", "Tarjeta de debito"),
    ("TRANSFER", "Bank transfer"),
    ("TRANSFERENCIA", "Transferencia"),
    ("RUMBO", "Rumbo loyalty"),
    ("BONOS_VIVE_TERPEL", "Bonos Vive Terpel"),
]


class CatalogError(Exception):
    """Raised when catalog operations fail."""
    pass


def normalize_method_code(code: str | None) -> str:
    """Upper case, inner whitespace collapsed to underscores."""
    if not code:
        return ""
    return "_".join(str(code).strip().upper().split())


def find_product_by_code(code: str | None) -> Product | None:
    if not code:
        return None
    return db.session.query(Product).filter_by(code=str(code).strip()).first()


def find_method_by_code(code: str | None) -> PaymentMethod | None:
    normalized = normalize_method_code(code)
    if not normalized:
        return None
    return db.session.query(PaymentMethod).filter_by(code=normalized, is_active=True).first()


def create_product(
    code: str,
    name: str,
    *,
    unit: str = "UNITS",
    is_fuel: bool = False,
    sale_price: float = 0.0,
    current_stock: float = 0.0,
    min_stock: float = 0.0,
    product_type: str | None = None,
) -> Product:
    def _op():
        if not code:
            raise CatalogError("Product code is required")
        if not name:
            raise CatalogError("Product name is required")
        if find_product_by_code(code):
            raise CatalogError(f"Product code {code} already exists")

        product = Product(
            code=code.strip(),
            name=name,
            unit=normalize_unit(unit),
            is_fuel=is_fuel,
            product_type=product_type or ("FUEL" if is_fuel else None),
            sale_price=sale_price,
            current_stock=current_stock,
            min_stock=min_stock,
        )
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op, label=f"create product {code}")


def seed_payment_methods() -> int:
    """Insert missing default payment methods. Returns how many were created."""
    created = 0
    for code, name in DEFAULT_PAYMENT_METHODS:
        if db.session.query(PaymentMethod).filter_by(code=code).first():
            continue
        db.session.add(PaymentMethod(code=code, name=name))
        created += 1
    db.session.commit()
    return created
