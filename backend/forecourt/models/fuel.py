from __future__ import annotations

from ..extensions import db
from forecourt.time_utils import to_utc_z

class Tank(db.Model):
    """
    Underground (FIXED) or mobile (TANKER) fuel tank at a location.

    WHY: Fuel inventory is physical. The level is re-measured every shift
    from the fluid height and the calibration table; dispenser meter deltas
    are checked against the level but never deducted from it.
    """
    __tablename__ = "tanks"
    __table_args__ = (
        db.Index("ix_tanks_product_location_active", "product_id", "location_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    tank_type = db.Column(db.String(16), nullable=False, default="FIXED")  # FIXED, TANKER
    unit = db.Column(db.String(16), nullable=False, default="GALLONS")

    # Expressed in the tank unit
    capacity = db.Column(db.Float, nullable=False)
    current_level = db.Column(db.Float, nullable=False, default=0.0)
    min_level = db.Column(db.Float, nullable=False, default=0.0)

    # Fluid height in centimeters (last measured)
    current_height = db.Column(db.Float, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    location = db.relationship("Location", backref=db.backref("tanks", lazy=True))
    product = db.relationship("Product", backref=db.backref("tanks", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "product_id": self.product_id,
            "name": self.name,
            "tank_type": self.tank_type,
            "unit": self.unit,
            "capacity": self.capacity,
            "current_level": self.current_level,
            "min_level": self.min_level,
            "current_height": self.current_height,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }

class TankCalibrationPoint(db.Model):
    """Height (cm) to volume (liters) calibration table entry."""
    __tablename__ = "tank_calibration_points"
    __table_args__ = (
        db.UniqueConstraint("tank_id", "height_cm", name="uq_tank_calibration_tank_height"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tank_id = db.Column(db.Integer, db.ForeignKey("tanks.id"), nullable=False, index=True)
    height_cm = db.Column(db.Float, nullable=False)
    volume_liters = db.Column(db.Float, nullable=False)

    tank = db.relationship("Tank", backref=db.backref("calibration_points", lazy=True))

class Dispenser(db.Model):
    __tablename__ = "dispensers"
    __table_args__ = (
        db.UniqueConstraint("location_id", "number", name="uq_dispensers_location_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    number = db.Column(db.String(32), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    location = db.relationship("Location", backref=db.backref("dispensers", lazy=True))

class Hose(db.Model):
    """
    Single nozzle of a dispenser.

    Meter readings are monotonically increasing; current_reading is the
    last value accepted by a committed shift closure, NULL until the first.
    """
    __tablename__ = "hoses"
    __table_args__ = (
        db.UniqueConstraint("dispenser_id", "number", name="uq_hoses_dispenser_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    dispenser_id = db.Column(db.Integer, db.ForeignKey("dispensers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    number = db.Column(db.String(32), nullable=False)

    previous_reading = db.Column(db.Float, nullable=False, default=0.0)
    current_reading = db.Column(db.Float, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    dispenser = db.relationship("Dispenser", backref=db.backref("hoses", lazy=True))
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

class MeterHistoryRecord(db.Model):
    """
    Immutable log of one hose reading event.

    IMMUTABLE: Written once inside the shift-closure transaction with its
    shift_id already set. Never updated afterwards.
    """
    __tablename__ = "meter_history"
    __table_args__ = (
        db.Index("ix_meter_history_hose_read", "hose_id", "read_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    hose_id = db.Column(db.Integer, db.ForeignKey("hoses.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shift_records.id"), nullable=True, index=True)

    previous_reading = db.Column(db.Float, nullable=False)
    current_reading = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Float, nullable=False)  # In the meter's unit
    value = db.Column(db.Float, nullable=False)

    operation_type = db.Column(db.String(32), nullable=False, default="SHIFT_CLOSURE")
    operator_id = db.Column(db.Integer, nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    read_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    hose = db.relationship("Hose", backref=db.backref("history", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hose_id": self.hose_id,
            "shift_id": self.shift_id,
            "previous_reading": self.previous_reading,
            "current_reading": self.current_reading,
            "quantity": self.quantity,
            "value": self.value,
            "operation_type": self.operation_type,
            "operator_id": self.operator_id,
            "note": self.note,
            "read_at": to_utc_z(self.read_at),
        }
