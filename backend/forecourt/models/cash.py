from __future__ import annotations

from ..extensions import db
from forecourt.time_utils import to_utc_z

class CashLedger(db.Model):
    """
    Running cash balance of a location.

    One per location, created lazily with a zero opening balance the first
    time a closure records a cash movement.
    """
    __tablename__ = "cash_ledgers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, unique=True, index=True)

    opening_balance = db.Column(db.Float, nullable=False, default=0.0)
    balance = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_movement_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    location = db.relationship("Location", backref=db.backref("cash_ledger", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "opening_balance": self.opening_balance,
            "balance": self.balance,
            "is_active": self.is_active,
            "last_movement_at": to_utc_z(self.last_movement_at) if self.last_movement_at else None,
        }

class CashLedgerEntry(db.Model):
    """
    One cash inflow or outflow.

    IMMUTABLE: Entries are never updated; corrections are new entries.
    """
    __tablename__ = "cash_ledger_entries"
    __table_args__ = (
        db.Index("ix_cash_entries_ledger_occurred", "ledger_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey("cash_ledgers.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shift_records.id"), nullable=True, index=True)

    entry_type = db.Column(db.String(16), nullable=False)  # INFLOW, OUTFLOW
    amount = db.Column(db.Float, nullable=False)
    concept = db.Column(db.String(128), nullable=False)
    detail = db.Column(db.String(255), nullable=True)
    note = db.Column(db.String(255), nullable=True)
    is_automatic = db.Column(db.Boolean, nullable=False, default=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ledger = db.relationship("CashLedger", backref=db.backref("entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ledger_id": self.ledger_id,
            "shift_id": self.shift_id,
            "entry_type": self.entry_type,
            "amount": self.amount,
            "concept": self.concept,
            "detail": self.detail,
            "note": self.note,
            "is_automatic": self.is_automatic,
            "occurred_at": to_utc_z(self.occurred_at),
        }
