# Overview: Pytest coverage for shift window time helpers.

from datetime import date, datetime

import pytest

from forecourt.time_utils import (
    parse_iso_datetime,
    shift_key_parts,
    shift_midpoint,
    to_utc_z,
)


class TestParseIsoDatetime:
    def test_z_suffix_is_utc(self):
        assert parse_iso_datetime("2026-03-01T06:00:00Z") == datetime(2026, 3, 1, 6, 0)

    def test_offset_is_converted_to_utc(self):
        assert parse_iso_datetime("2026-03-01T01:00:00-05:00") == datetime(2026, 3, 1, 6, 0)

    def test_blank_is_none(self):
        assert parse_iso_datetime("  ") is None
        assert parse_iso_datetime(None) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("yesterday")


class TestShiftWindow:
    def test_key_ignores_seconds(self):
        a = shift_key_parts(datetime(2026, 3, 1, 6, 0, 0), datetime(2026, 3, 1, 14, 0, 0))
        b = shift_key_parts(datetime(2026, 3, 1, 6, 0, 59), datetime(2026, 3, 1, 14, 0, 30))
        assert a == b == (date(2026, 3, 1), "06:00", "14:00")

    def test_night_shift_keys_on_start_date(self):
        parts = shift_key_parts(datetime(2026, 3, 1, 22, 0), datetime(2026, 3, 2, 6, 0))
        assert parts == (date(2026, 3, 1), "22:00", "06:00")

    def test_midpoint_stays_inside_the_window(self):
        started, ended = datetime(2026, 3, 1, 22, 0), datetime(2026, 3, 2, 6, 0)
        assert shift_midpoint(started, ended) == datetime(2026, 3, 2, 2, 0)

    def test_to_utc_z_drops_microseconds(self):
        assert to_utc_z(datetime(2026, 3, 1, 6, 0, 0, 123456)) == "2026-03-01T06:00:00Z"
        assert to_utc_z(None) is None
