from __future__ import annotations

from ..extensions import db
from forecourt.time_utils import to_utc_z

class ShiftRecord(db.Model):
    """
    Durable shift-closure aggregate.

    LIFECYCLE:
    - Created exactly once per (location, start date, start time, end time).
    - Never updated. A re-submission with the same key is a conflict.

    STATUS:
    - SUCCESS: no per-line errors
    - SUCCESS_WITH_ERRORS: committed, but some lines were rejected

    The uq_shift_records_location_key constraint is what actually prevents
    two closures of the same shift; the service pre-check only improves the
    error message.
    """
    __tablename__ = "shift_records"
    __table_args__ = (
        db.UniqueConstraint(
            "location_id", "shift_date", "start_time", "end_time",
            name="uq_shift_records_location_key",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    operator_id = db.Column(db.Integer, nullable=True, index=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=False)
    shift_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)    # "HH:MM"

    status = db.Column(db.String(24), nullable=False, index=True)

    total_liters = db.Column(db.Float, nullable=False, default=0.0)
    total_gallons = db.Column(db.Float, nullable=False, default=0.0)
    computed_total = db.Column(db.Float, nullable=False, default=0.0)
    declared_total = db.Column(db.Float, nullable=False, default=0.0)
    variance = db.Column(db.Float, nullable=False, default=0.0)

    total_cash = db.Column(db.Float, nullable=False, default=0.0)
    total_card = db.Column(db.Float, nullable=False, default=0.0)
    total_transfer = db.Column(db.Float, nullable=False, default=0.0)
    total_loyalty = db.Column(db.Float, nullable=False, default=0.0)
    total_vouchers = db.Column(db.Float, nullable=False, default=0.0)
    total_other = db.Column(db.Float, nullable=False, default=0.0)

    products_updated = db.Column(db.Integer, nullable=False, default=0)
    tanks_updated = db.Column(db.Integer, nullable=False, default=0)

    errors = db.Column(db.JSON, nullable=False, default=list)
    warnings = db.Column(db.JSON, nullable=False, default=list)
    payload = db.Column(db.JSON, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    location = db.relationship("Location", backref=db.backref("shift_records", lazy=True))

    def to_dict(self, include_payload: bool = False) -> dict:
        data = {
            "id": self.id,
            "location_id": self.location_id,
            "operator_id": self.operator_id,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "shift_date": self.shift_date.isoformat() if self.shift_date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "total_liters": self.total_liters,
            "total_gallons": self.total_gallons,
            "computed_total": self.computed_total,
            "declared_total": self.declared_total,
            "variance": self.variance,
            "totals_by_bucket": {
                "cash": self.total_cash,
                "card": self.total_card,
                "transfer": self.total_transfer,
                "loyalty": self.total_loyalty,
                "vouchers": self.total_vouchers,
                "other": self.total_other,
            },
            "products_updated": self.products_updated,
            "tanks_updated": self.tanks_updated,
            "errors": self.errors or [],
            "warnings": self.warnings or [],
            "notes": self.notes,
            "closed_at": to_utc_z(self.closed_at),
        }
        if include_payload:
            data["payload"] = self.payload
        return data

class ShiftPaymentBreakdown(db.Model):
    """One payment method line of a shift's financial summary."""
    __tablename__ = "shift_payment_breakdowns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shift_records.id"), nullable=False, index=True)
    method_code = db.Column(db.String(64), nullable=False, index=True)
    bucket = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    percentage = db.Column(db.Float, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    shift = db.relationship("ShiftRecord", backref=db.backref("payment_breakdowns", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "method_code": self.method_code,
            "bucket": self.bucket,
            "amount": self.amount,
            "percentage": self.percentage,
            "note": self.note,
        }

class ProductSaleHistory(db.Model):
    """
    Store product sale attributed to a shift and a payment method.

    One row per (sale line, payment allocation). Dispenser fuel sales are
    recorded in meter_history instead, unless the location declares
    payments per product.
    """
    __tablename__ = "product_sale_history"
    __table_args__ = (
        db.Index("ix_product_sale_history_location_sold", "location_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shift_records.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False, index=True)
    operator_id = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(16), nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    total_value = db.Column(db.Float, nullable=False)
    amount = db.Column(db.Float, nullable=False)  # Portion paid with this method
    note = db.Column(db.String(255), nullable=True)

    # Midpoint of the shift window, so the sale never leaks into adjacent shifts
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False)

    product = db.relationship("Product")
    payment_method = db.relationship("PaymentMethod")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "location_id": self.location_id,
            "product_id": self.product_id,
            "payment_method_id": self.payment_method_id,
            "operator_id": self.operator_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price": self.unit_price,
            "total_value": self.total_value,
            "amount": self.amount,
            "note": self.note,
            "sold_at": to_utc_z(self.sold_at),
        }
