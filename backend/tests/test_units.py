# Overview: Pytest coverage for unit conversion and step-wise rounding.

import pytest

from forecourt.services.units import (
    FLOAT_EPSILON,
    ROUND_TRIP_LITERS_BOUND,
    TOLERANCE,
    UnitError,
    convert_quantity,
    gallons_to_liters,
    liters_to_gallons,
    normalize_unit,
    price_per_gallon,
    round2,
    to_both_units,
    within_tolerance,
)


class TestRounding:
    def test_round2_rounds_half_up(self):
        assert round2(0.125) == 0.13
        assert round2(2.5) == 2.5
        assert round2(189.2705) == 189.27

    def test_round2_rounds_negative_half_toward_positive_infinity(self):
        assert round2(-0.125) == -0.12

    def test_within_tolerance_accepts_one_cent(self):
        assert within_tolerance(100.00, 100.01)
        assert within_tolerance(757.08, 757.08)
        assert not within_tolerance(100.00, 100.02)

    def test_within_tolerance_does_not_round_the_gap(self):
        assert not within_tolerance(50.014, 50.0)
        assert not within_tolerance(757.08, 757.0949)


class TestConversion:
    def test_fifty_gallons_is_189_27_liters(self):
        assert gallons_to_liters(50) == 189.27

    @pytest.mark.parametrize("liters", [189.27, 378.54, 75.71])
    def test_whole_gallon_volumes_round_trip_exactly(self, liters):
        assert gallons_to_liters(liters_to_gallons(liters)) == liters

    def test_round_trip_error_is_bounded_for_every_centiliter(self):
        """Liters -> gallons -> liters for 0.01 .. 500.00 L stays within the documented bound."""
        worst = 0.0
        for cents in range(1, 50001):
            liters = cents / 100
            back = gallons_to_liters(liters_to_gallons(liters))
            worst = max(worst, abs(back - liters))
        assert worst <= ROUND_TRIP_LITERS_BOUND + FLOAT_EPSILON
        assert worst > TOLERANCE

    def test_one_liter_loses_two_centiliters(self):
        assert liters_to_gallons(1.0) == 0.26
        assert gallons_to_liters(0.26) == 0.98

    @pytest.mark.parametrize("cents", [1, 100, 1300, 18927, 49999])
    def test_input_unit_side_is_unchanged(self, cents):
        quantity = cents / 100
        assert to_both_units(quantity, "LITERS")[0] == quantity
        assert to_both_units(quantity, "GALLONS")[1] == quantity

    def test_to_both_units_from_gallons(self):
        assert to_both_units(50, "galones") == (189.27, 50.0)

    def test_to_both_units_from_liters(self):
        liters, gallons = to_both_units(189.27, "litros")
        assert liters == 189.27
        assert gallons == 50.0

    def test_to_both_units_rejects_units(self):
        with pytest.raises(UnitError):
            to_both_units(3, "unidades")

    def test_convert_same_unit_only_rounds(self):
        assert convert_quantity(2.125, "UNITS", "und") == 2.13

    def test_convert_volume_to_units_is_incompatible(self):
        with pytest.raises(UnitError):
            convert_quantity(10, "GALLONS", "UNITS")

    def test_price_per_gallon_from_price_per_liter(self):
        assert price_per_gallon(4.0) == 15.14


class TestNormalizeUnit:
    @pytest.mark.parametrize("raw,expected", [
        ("galones", "GALLONS"),
        ("Gallons", "GALLONS"),
        ("gal", "GALLONS"),
        ("LITROS", "LITERS"),
        ("liters", "LITERS"),
        ("litres", "LITERS"),
        ("l", "LITERS"),
        ("unidades", "UNITS"),
        ("units", "UNITS"),
        ("unit", "UNITS"),
        ("und", "UNITS"),
        (" GALLONS ", "GALLONS"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_unit(raw) == expected

    @pytest.mark.parametrize("raw", ["barrels", "", None, "kg"])
    def test_unknown_units_raise(self, raw):
        with pytest.raises(UnitError):
            normalize_unit(raw)
