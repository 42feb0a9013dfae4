# Overview: Append-only meter-history and product-sale history stores.

"""
History Invariants (authoritative)

- Rows are only appended; the closure transaction owns the commit.
- Meter-history rows written by a closure carry their shift_id from creation.
- relink_to_shift exists for rows appended outside a closure (e.g. manual
  meter corrections) and only ever fills a missing shift_id.
"""

from __future__ import annotations

from datetime import datetime

from forecourt.extensions import db
from forecourt.models import MeterHistoryRecord, ProductSaleHistory


class HistoryError(Exception):
    """Raised when history operations fail."""
    pass


def append_meter_reading(
    *,
    hose_id: int,
    previous_reading: float,
    current_reading: float,
    quantity: float,
    value: float,
    read_at: datetime,
    operator_id: int | None = None,
    shift_id: int | None = None,
    operation_type: str = "SHIFT_CLOSURE",
    note: str | None = None,
) -> int:
    record = MeterHistoryRecord(
        hose_id=hose_id,
        shift_id=shift_id,
        previous_reading=previous_reading,
        current_reading=current_reading,
        quantity=quantity,
        value=value,
        operation_type=operation_type,
        operator_id=operator_id,
        note=note[:255] if note else None,
        read_at=read_at,
    )
    db.session.add(record)
    db.session.flush()
    return record.id


def relink_to_shift(record_ids: list[int], shift_id: int) -> int:
    """
    Attach unlinked meter-history rows to a shift.

    Raises:
        HistoryError: if any row is already linked to a different shift
    """
    if not record_ids:
        return 0

    records = db.session.query(MeterHistoryRecord).filter(
        MeterHistoryRecord.id.in_(record_ids)
    ).all()
    linked = 0
    for record in records:
        if record.shift_id is not None and record.shift_id != shift_id:
            raise HistoryError(
                f"Meter reading {record.id} already belongs to shift {record.shift_id}"
            )
        if record.shift_id is None:
            record.shift_id = shift_id
            linked += 1
    db.session.flush()
    return linked


def append_product_sale(
    *,
    shift_id: int,
    location_id: int,
    product_id: int,
    payment_method_id: int,
    quantity: float,
    unit: str,
    unit_price: float,
    total_value: float,
    amount: float,
    sold_at: datetime,
    operator_id: int | None = None,
    note: str | None = None,
) -> ProductSaleHistory:
    row = ProductSaleHistory(
        shift_id=shift_id,
        location_id=location_id,
        product_id=product_id,
        payment_method_id=payment_method_id,
        operator_id=operator_id,
        quantity=quantity,
        unit=unit,
        unit_price=unit_price,
        total_value=total_value,
        amount=amount,
        note=note[:255] if note else None,
        sold_at=sold_at,
    )
    db.session.add(row)
    db.session.flush()
    return row


def list_meter_history(shift_id: int) -> list[MeterHistoryRecord]:
    return db.session.query(MeterHistoryRecord).filter_by(
        shift_id=shift_id
    ).order_by(MeterHistoryRecord.id.asc()).all()


def list_product_sales(shift_id: int) -> list[ProductSaleHistory]:
    return db.session.query(ProductSaleHistory).filter_by(
        shift_id=shift_id
    ).order_by(ProductSaleHistory.id.asc()).all()
