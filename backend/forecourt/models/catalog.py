from __future__ import annotations

from ..extensions import db
from forecourt.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data (fuels, lubricants, store items).

    UNITS:
    - Fuel products are priced per liter (sale_price) regardless of how the
      dispenser meter counts.
    - current_stock is expressed in the product's own unit
      (GALLONS, LITERS or UNITS).

    FUEL STOCK:
    Fuel is physically held in tanks. For fuel products the tank level is the
    authoritative quantity; current_stock is informational.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_fuel_active", "is_fuel", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    product_type = db.Column(db.String(32), nullable=True)  # FUEL, LUBRICANT, BEVERAGE, ...

    unit = db.Column(db.String(16), nullable=False, default="UNITS")
    is_fuel = db.Column(db.Boolean, nullable=False, default=False)

    sale_price = db.Column(db.Float, nullable=False, default=0.0)
    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    min_stock = db.Column(db.Float, nullable=False, default=0.0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "product_type": self.product_type,
            "unit": self.unit,
            "is_fuel": self.is_fuel,
            "sale_price": self.sale_price,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class PaymentMethod(db.Model):
    """
    Payment method registry (cash, cards, transfers, loyalty programs).

    Codes are stored normalized: upper case, spaces replaced by underscores.
    """
    __tablename__ = "payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
