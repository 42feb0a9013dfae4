# Overview: Pytest coverage for append-only meter and product-sale history.

from datetime import date, datetime, timezone

import pytest

from forecourt.models import MeterHistoryRecord, ShiftRecord
from forecourt.services.history_service import (
    HistoryError,
    append_meter_reading,
    list_meter_history,
    relink_to_shift,
)


READ_AT = datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)


def _shift(db_session, location, start_time):
    shift = ShiftRecord(
        location_id=location.id,
        started_at=datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc),
        ended_at=READ_AT,
        shift_date=date(2026, 3, 1),
        start_time=start_time,
        end_time="14:00",
        status="SUCCESS",
    )
    db_session.add(shift)
    db_session.flush()
    return shift


def _reading(hose, **kwargs):
    return append_meter_reading(
        hose_id=hose.id,
        previous_reading=1000.0,
        current_reading=1050.0,
        quantity=50.0,
        value=757.08,
        read_at=READ_AT,
        **kwargs,
    )


class TestMeterHistory:
    def test_append_with_shift(self, db_session, location, diesel_hose):
        shift = _shift(db_session, location, "06:00")
        record_id = _reading(diesel_hose, shift_id=shift.id)
        db_session.commit()

        rows = list_meter_history(shift.id)
        assert [r.id for r in rows] == [record_id]
        assert rows[0].quantity == 50.0

    def test_relink_fills_missing_shift(self, db_session, location, diesel_hose):
        shift = _shift(db_session, location, "06:00")
        ids = [_reading(diesel_hose), _reading(diesel_hose)]

        assert relink_to_shift(ids, shift.id) == 2
        db_session.commit()
        assert len(list_meter_history(shift.id)) == 2

    def test_relink_is_idempotent_for_same_shift(self, db_session, location, diesel_hose):
        shift = _shift(db_session, location, "06:00")
        record_id = _reading(diesel_hose, shift_id=shift.id)

        assert relink_to_shift([record_id], shift.id) == 0

    def test_relink_refuses_rows_of_another_shift(self, db_session, location, diesel_hose):
        first = _shift(db_session, location, "06:00")
        second = _shift(db_session, location, "07:00")
        record_id = _reading(diesel_hose, shift_id=first.id)

        with pytest.raises(HistoryError):
            relink_to_shift([record_id], second.id)

        assert db_session.get(MeterHistoryRecord, record_id).shift_id == first.id

    def test_relink_nothing(self, db_session):
        assert relink_to_shift([], 1) == 0
