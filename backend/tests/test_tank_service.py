# Overview: Pytest coverage for tank calibration lookup and level planning.

import pytest

from forecourt.models import Tank
from forecourt.services.tank_service import (
    TankError,
    apply_level_update,
    find_location_tank,
    plan_height_reading,
    summarize_tanks,
    volume_for_height,
)


class TestVolumeForHeight:
    POINTS = [(0, 0.0), (100, 7570.82), (200, 18927.05)]

    def test_exact_calibration_point(self):
        assert volume_for_height(self.POINTS, 100) == 7570.82

    def test_interpolates_between_points(self):
        assert volume_for_height(self.POINTS, 50) == 3785.41

    def test_zero_height_below_table_is_empty(self):
        assert volume_for_height([(10, 50.0), (20, 100.0)], 0) == 0.0

    def test_height_below_table_is_rejected(self):
        with pytest.raises(TankError, match="below the calibrated range"):
            volume_for_height([(10, 50.0), (20, 100.0)], 5)

    def test_height_above_table_is_rejected(self):
        with pytest.raises(TankError, match="above the calibrated range"):
            volume_for_height(self.POINTS, 250)

    def test_negative_height_is_rejected(self):
        with pytest.raises(TankError, match="cannot be negative"):
            volume_for_height(self.POINTS, -1)

    def test_missing_table_is_rejected(self):
        with pytest.raises(TankError, match="No calibration table"):
            volume_for_height([], 10, "Tank X")


class TestPlanHeightReading:
    def test_level_in_tank_unit(self, db_session, diesel_tank):
        """100 cm -> 7570.82 L -> 2000 gal for a gallon tank."""
        update = plan_height_reading(diesel_tank, 100)

        assert update.volume_liters == 7570.82
        assert update.volume_gallons == 2000.0
        assert update.new_level == 2000.0
        assert update.previous_level == 3000.0
        assert update.capacity_liters == 18927.05
        assert update.occupancy_pct == 40.0
        assert update.warnings == []

    def test_planning_does_not_touch_the_tank(self, db_session, diesel_tank):
        plan_height_reading(diesel_tank, 100)
        assert diesel_tank.current_level == 3000

    def test_volume_over_capacity_is_rejected(self, db_session, diesel_tank):
        diesel_tank.capacity = 4000
        db_session.commit()

        with pytest.raises(TankError, match="exceeds capacity"):
            plan_height_reading(diesel_tank, 200)

    def test_critical_warning_below_minimum(self, db_session, diesel_tank):
        """10 cm -> 757.08 L -> 200 gal, minimum is 500 gal."""
        update = plan_height_reading(diesel_tank, 10)

        assert update.new_level == 200.0
        assert len(update.warnings) == 1
        assert update.warnings[0].startswith("CRITICAL")

    def test_low_warning_close_to_minimum(self, db_session, diesel_tank):
        """27 cm -> 2044.12 L -> 540 gal, between min and min * 1.2."""
        update = plan_height_reading(diesel_tank, 27)

        assert 500 < update.new_level < 600
        assert len(update.warnings) == 1
        assert "close to minimum level" in update.warnings[0]

    def test_tank_without_calibration(self, db_session, location, diesel):
        tank = Tank(location_id=location.id, product_id=diesel.id, name="Spare", capacity=100)
        db_session.add(tank)
        db_session.commit()

        with pytest.raises(TankError, match="No calibration table"):
            plan_height_reading(tank, 10)


class TestTankLevelUpdates:
    def test_apply_level_update_writes_level_and_height(self, db_session, diesel_tank):
        update = plan_height_reading(diesel_tank, 100)
        apply_level_update(update)
        db_session.commit()

        tank = db_session.get(Tank, diesel_tank.id)
        assert tank.current_level == 2000.0
        assert tank.current_height == 100

    def test_summarize_tanks(self, db_session, diesel_tank):
        summary = summarize_tanks([plan_height_reading(diesel_tank, 100)])

        assert summary.tank_count == 1
        assert summary.total_volume_liters == 7570.82
        assert summary.total_volume_gallons == 2000.0
        assert summary.total_capacity_liters == 18927.05
        assert summary.occupancy_pct == 40.0

    def test_summarize_no_tanks(self):
        summary = summarize_tanks([])
        assert summary.tank_count == 0
        assert summary.occupancy_pct == 0.0


class TestFindLocationTank:
    def test_tank_of_location(self, db_session, location, diesel_tank):
        assert find_location_tank(diesel_tank.id, location.id).id == diesel_tank.id

    def test_tank_of_another_location_is_rejected(self, db_session, other_location, diesel_tank):
        with pytest.raises(TankError, match="does not belong"):
            find_location_tank(diesel_tank.id, other_location.id)

    def test_inactive_tank_is_not_found(self, db_session, location, diesel_tank):
        diesel_tank.is_active = False
        db_session.commit()

        with pytest.raises(TankError, match="not found"):
            find_location_tank(diesel_tank.id, location.id)
