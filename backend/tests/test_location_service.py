# Overview: Pytest coverage for location creation and per-location configuration.

import pytest

from forecourt.services.location_service import (
    LocationError,
    LocationNotFoundError,
    create_location,
    get_location_config,
    is_consolidated_payment_mode,
    require_location,
    set_consolidated_payment_mode,
    set_location_config,
)


class TestLocations:
    def test_create_and_require(self, db_session):
        location = create_location(name="Station West", code="WEST")

        assert require_location(location.id).code == "WEST"
        assert location.timezone == "UTC"

    def test_duplicate_code_is_rejected(self, db_session, location):
        with pytest.raises(LocationError):
            create_location(name="Another", code="NORTH")

    def test_name_is_required(self, db_session):
        with pytest.raises(LocationError):
            create_location(name="")

    def test_missing_location(self, db_session):
        with pytest.raises(LocationNotFoundError):
            require_location(404)


class TestPaymentModeConfig:
    def test_defaults_to_app_config(self, app, db_session, location):
        assert is_consolidated_payment_mode(location.id) is False

        app.config["DEFAULT_CONSOLIDATED_PAYMENT_MODE"] = True
        try:
            assert is_consolidated_payment_mode(location.id) is True
        finally:
            app.config["DEFAULT_CONSOLIDATED_PAYMENT_MODE"] = False

    def test_explicit_setting_wins(self, app, db_session, location):
        set_consolidated_payment_mode(location.id, True)
        assert is_consolidated_payment_mode(location.id) is True

        set_consolidated_payment_mode(location.id, False)
        assert is_consolidated_payment_mode(location.id) is False

    def test_config_is_per_location(self, db_session, location, other_location):
        set_consolidated_payment_mode(location.id, True)

        assert is_consolidated_payment_mode(location.id) is True
        assert is_consolidated_payment_mode(other_location.id) is False

    def test_upsert_keeps_one_row(self, db_session, location):
        set_location_config(location.id, "shift_length_hours", "8")
        set_location_config(location.id, "shift_length_hours", "12")

        assert get_location_config(location.id, "shift_length_hours").value == "12"

    def test_config_for_unknown_location(self, db_session):
        with pytest.raises(LocationNotFoundError):
            set_location_config(404, "k", "v")
