# Overview: Location directory and per-location configuration provider.

from __future__ import annotations

from flask import current_app

from forecourt.extensions import db
from forecourt.models import Location, LocationConfig
from forecourt.services.concurrency import lock_for_update, run_with_retry


CONSOLIDATED_PAYMENT_MODE_KEY = "consolidated_payment_mode"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class LocationError(Exception):
    """Raised when location operations fail."""
    pass


class LocationNotFoundError(LocationError):
    pass


def create_location(name: str, code: str | None = None, timezone: str = "UTC") -> Location:
    def _op():
        if not name:
            raise LocationError("Location name is required")
        if code and db.session.query(Location).filter_by(code=code).first():
            raise LocationError(f"Location code {code} already exists")

        location = Location(name=name, code=code, timezone=timezone or "UTC")
        db.session.add(location)
        db.session.commit()
        return location

    return run_with_retry(_op, label=f"create location {name}")


def find_location(location_id: int) -> Location | None:
    return db.session.query(Location).filter_by(id=location_id).first()


def require_location(location_id: int) -> Location:
    location = find_location(location_id)
    if location is None:
        raise LocationNotFoundError(f"Location {location_id} not found")
    return location


def set_location_config(location_id: int, key: str, value: str | None) -> LocationConfig:
    def _op():
        if not key:
            raise LocationError("Config key is required")

        require_location(location_id)

        config = lock_for_update(
            db.session.query(LocationConfig).filter_by(location_id=location_id, key=key)
        ).first()
        if config:
            config.value = value
        else:
            config = LocationConfig(location_id=location_id, key=key, value=value)
            db.session.add(config)

        db.session.commit()
        return config

    return run_with_retry(_op, label=f"set config {key}")


def get_location_config(location_id: int, key: str) -> LocationConfig | None:
    return db.session.query(LocationConfig).filter_by(location_id=location_id, key=key).first()


def set_consolidated_payment_mode(location_id: int, enabled: bool) -> LocationConfig:
    return set_location_config(location_id, CONSOLIDATED_PAYMENT_MODE_KEY, "true" if enabled else "false")


def is_consolidated_payment_mode(location_id: int) -> bool:
    """
    Whether payments are declared per product (True) or per hose (False).

    Falls back to DEFAULT_CONSOLIDATED_PAYMENT_MODE when the location has
    no explicit config row.
    """
    config = get_location_config(location_id, CONSOLIDATED_PAYMENT_MODE_KEY)
    if config is None or config.value is None:
        return bool(current_app.config.get("DEFAULT_CONSOLIDATED_PAYMENT_MODE", False))
    return config.value.strip().lower() in _TRUE_VALUES
