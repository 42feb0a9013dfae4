# Overview: Tank height readings; calibration lookup, level planning and level updates.

from __future__ import annotations

from dataclasses import dataclass, field

from forecourt.extensions import db
from forecourt.models import Tank, TankCalibrationPoint
from forecourt.services.closure_schemas import TankSummary
from forecourt.services.units import (
    UNIT_GALLONS,
    UNIT_LITERS,
    convert_quantity,
    normalize_unit,
    round2,
    to_both_units,
)


# Level below min_level * LOW_LEVEL_FACTOR is reported as low
LOW_LEVEL_FACTOR = 1.2


class TankError(Exception):
    """Raised when a tank reading cannot be applied."""
    pass


@dataclass
class TankLevelUpdate:
    """Planned result of one height reading. Applied at commit."""
    tank: Tank
    height_cm: float
    previous_level: float
    new_level: float
    unit: str
    volume_liters: float
    volume_gallons: float
    capacity_liters: float
    occupancy_pct: float
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tank_id": self.tank.id,
            "name": self.tank.name,
            "product_id": self.tank.product_id,
            "tank_type": self.tank.tank_type,
            "height_cm": self.height_cm,
            "previous_level": self.previous_level,
            "new_level": self.new_level,
            "unit": self.unit,
            "volume_liters": self.volume_liters,
            "volume_gallons": self.volume_gallons,
            "capacity": self.tank.capacity,
            "capacity_liters": self.capacity_liters,
            "occupancy_pct": self.occupancy_pct,
            "warnings": list(self.warnings),
        }


def find_location_tank(tank_id: int, location_id: int) -> Tank:
    """
    Raises:
        TankError: tank missing, inactive, or owned by another location
    """
    tank = db.session.query(Tank).filter_by(id=tank_id).first()
    if tank is None or not tank.is_active:
        raise TankError(f"Tank {tank_id} not found")
    if tank.location_id != location_id:
        raise TankError(f"Tank {tank_id} does not belong to location {location_id}")
    return tank


def calibration_table(tank: Tank) -> list[tuple[float, float]]:
    points = db.session.query(TankCalibrationPoint).filter_by(
        tank_id=tank.id
    ).order_by(TankCalibrationPoint.height_cm.asc()).all()
    return [(p.height_cm, p.volume_liters) for p in points]


def volume_for_height(points: list[tuple[float, float]], height_cm: float, tank_name: str = "") -> float:
    """
    Volume in liters for a fluid height, from a sorted calibration table.

    Exact matches are returned as-is; anything between two points is
    linearly interpolated and rounded. A height of 0 below the lowest
    point is an empty tank.

    Raises:
        TankError: negative height, empty table, height outside the table
    """
    label = tank_name or "tank"
    if height_cm < 0:
        raise TankError(f"Invalid height {height_cm} for {label}: cannot be negative")
    if not points:
        raise TankError(f"No calibration table for {label}")

    lowest_height, lowest_volume = points[0]
    highest_height = points[-1][0]

    if height_cm < lowest_height:
        if height_cm == 0:
            return 0.0
        raise TankError(
            f"Height {height_cm} cm is below the calibrated range of {label} "
            f"({lowest_height}-{highest_height} cm)"
        )
    if height_cm > highest_height:
        raise TankError(
            f"Height {height_cm} cm is above the calibrated range of {label} "
            f"({lowest_height}-{highest_height} cm)"
        )

    for h, v in points:
        if h == height_cm:
            return round2(v)

    for (h1, v1), (h2, v2) in zip(points, points[1:]):
        if h1 < height_cm < h2:
            return round2(v1 + (height_cm - h1) * (v2 - v1) / (h2 - h1))

    return round2(lowest_volume)


def plan_height_reading(tank: Tank, height_cm: float) -> TankLevelUpdate:
    """
    Compute the level a height reading implies, without touching the tank.

    Raises:
        TankError: see volume_for_height; also when the volume exceeds capacity
    """
    unit = normalize_unit(tank.unit)
    if unit not in (UNIT_GALLONS, UNIT_LITERS):
        raise TankError(f"Tank {tank.name} has non-volume unit {tank.unit}")

    volume_liters = volume_for_height(calibration_table(tank), height_cm, tank.name)
    liters, gallons = to_both_units(volume_liters, UNIT_LITERS)
    new_level = gallons if unit == UNIT_GALLONS else liters

    capacity = tank.capacity or 0.0
    if new_level > capacity:
        raise TankError(
            f"Computed volume {new_level:.2f} {unit} exceeds capacity "
            f"{capacity:.2f} {unit} of tank {tank.name}"
        )

    occupancy = round2(new_level / capacity * 100) if capacity else 0.0

    warnings = []
    min_level = tank.min_level or 0.0
    if min_level > 0:
        if new_level < min_level:
            warnings.append(
                f"CRITICAL: tank {tank.name} is below minimum level "
                f"({new_level:.2f} < {min_level:.2f} {unit})"
            )
        elif new_level < min_level * LOW_LEVEL_FACTOR:
            warnings.append(
                f"Tank {tank.name} is close to minimum level "
                f"({new_level:.2f} {unit}, minimum {min_level:.2f})"
            )

    return TankLevelUpdate(
        tank=tank,
        height_cm=height_cm,
        previous_level=round2(tank.current_level or 0.0),
        new_level=new_level,
        unit=unit,
        volume_liters=liters,
        volume_gallons=gallons,
        capacity_liters=convert_quantity(capacity, unit, UNIT_LITERS),
        occupancy_pct=occupancy,
        warnings=warnings,
    )


def apply_level_update(update: TankLevelUpdate) -> Tank:
    """Write a planned level to its tank. Flushes, never commits."""
    tank = update.tank
    tank.current_level = update.new_level
    tank.current_height = update.height_cm
    db.session.flush()
    return tank


def summarize_tanks(updates: list[TankLevelUpdate]) -> TankSummary:
    total_liters = 0.0
    total_gallons = 0.0
    total_capacity = 0.0
    for update in updates:
        total_liters = round2(total_liters + update.volume_liters)
        total_gallons = round2(total_gallons + update.volume_gallons)
        total_capacity = round2(total_capacity + update.capacity_liters)

    return TankSummary(
        tanks=[u.to_dict() for u in updates],
        tank_count=len(updates),
        total_volume_liters=total_liters,
        total_volume_gallons=total_gallons,
        total_capacity_liters=total_capacity,
        occupancy_pct=round2(total_liters / total_capacity * 100) if total_capacity else 0.0,
    )
