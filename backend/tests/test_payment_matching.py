# Overview: Pytest coverage for payment allocation matching and consolidation.

"""
Payment Allocation Matcher Tests

The matcher is pure, so these tests build request dataclasses directly and
never touch the database.
"""

from forecourt.services.closure_schemas import (
    ConsolidatedSale,
    ItemizedSale,
    PaymentAllocation,
    ProductSaleEntry,
    SaleLineInput,
)
from forecourt.services.payment_matching import (
    SOURCE_HOSE,
    SOURCE_MATCHED,
    SOURCE_NONE,
    consolidate_by_method,
    match_hose_allocations,
    normalize_allocations,
    resolve_hose_allocations,
    resolve_summary_allocations,
)


def _alloc(method, amount, note=None):
    return PaymentAllocation(method=method, amount=amount, note=note)


def _line(quantity, value, allocations, note=None):
    return SaleLineInput(
        quantity=quantity,
        unit_price=round(value / quantity, 2),
        total_value=value,
        payment_allocations=allocations,
        note=note,
    )


def _itemized(code, lines, note=None):
    return ProductSaleEntry(product_code=code, sale=ItemizedSale(lines=lines), note=note)


def _consolidated(code, allocations, note=None):
    return ProductSaleEntry(
        product_code=code,
        sale=ConsolidatedSale(quantity=10, unit_price=4, total_value=40, payment_allocations=allocations),
        note=note,
    )


class TestNormalizeAllocations:
    def test_percentages_are_of_the_line_total(self):
        normalized, warning = normalize_allocations(
            [_alloc("cash", 60), _alloc("credit card", 40)], 100, "Line A"
        )
        assert warning is None
        assert [(a.method, a.amount, a.percentage) for a in normalized] == [
            ("CASH", 60, 100 * 60 / 100),
            ("CREDIT_CARD", 40, 40.0),
        ]

    def test_mismatch_produces_one_warning_naming_the_line(self):
        normalized, warning = normalize_allocations([_alloc("CASH", 90)], 100, "Dispenser 7 hose 2")
        assert len(normalized) == 1
        assert normalized[0].percentage == 100.0
        assert warning is not None
        assert "Dispenser 7 hose 2" in warning

    def test_difference_within_one_cent_is_accepted(self):
        _, warning = normalize_allocations([_alloc("CASH", 99.99)], 100, "Line A")
        assert warning is None


class TestMatchHoseAllocations:
    def test_matches_line_by_quantity_and_value(self):
        entries = [_itemized("DIESEL", [
            _line(20, 302.83, [_alloc("CARD", 302.83)]),
            _line(50, 757.08, [_alloc("CASH", 757.08)]),
        ])]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match is not None
        assert match.line_index == 1
        assert match.allocations[0].method == "CASH"

    def test_first_match_wins_in_input_order(self):
        entries = [
            _itemized("DIESEL", [_line(50, 757.08, [_alloc("CASH", 757.08)])]),
            _itemized("DIESEL", [_line(50, 757.08, [_alloc("CARD", 757.08)])]),
        ]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match.entry_index == 0
        assert match.allocations[0].method == "CASH"

    def test_quantity_alone_is_not_enough(self):
        entries = [_itemized("DIESEL", [_line(50, 700.00, [_alloc("CASH", 700)])])]
        assert match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries) is None

    def test_quantity_just_over_one_cent_away_does_not_match(self):
        entries = [_itemized("DIESEL", [_line(50.014, 757.08, [_alloc("CASH", 757.08)])])]
        assert match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries) is None

    def test_quantity_within_one_cent_matches(self):
        entries = [_itemized("DIESEL", [_line(50.009, 757.08, [_alloc("CASH", 757.08)])])]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match is not None
        assert match.reason == "quantity_and_value"

    def test_matches_line_note_mentioning_dispenser(self):
        entries = [_itemized("DIESEL", [
            _line(10, 40.0, [_alloc("CARD", 40)], note="pump A"),
            _line(10, 40.0, [_alloc("CASH", 40)], note="pump 7"),
        ])]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match.line_index == 1
        assert match.reason == "line_note"

    def test_matches_parent_entry_note(self):
        entries = [_itemized("DIESEL", [_line(10, 40.0, [_alloc("TRANSFER", 40)])], note="island 7")]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match.reason == "entry_note"
        assert match.allocations[0].method == "TRANSFER"

    def test_other_products_are_ignored(self):
        entries = [_itemized("GASOLINE", [_line(50, 757.08, [_alloc("CASH", 757.08)])])]
        assert match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries) is None

    def test_falls_back_to_consolidated_entry_naming_the_hose(self):
        entries = [
            _consolidated("DIESEL", [_alloc("CARD", 40)], note="north island"),
            _consolidated("DIESEL", [_alloc("CASH", 40)], note="hose 2"),
        ]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match.entry_index == 1

    def test_falls_back_to_first_declared_entry(self):
        entries = [
            _itemized("DIESEL", []),
            _consolidated("DIESEL", [_alloc("CARD", 40)], note="north island"),
        ]
        match = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        assert match.entry_index == 1
        assert match.reason == "first_declared"

    def test_lines_are_not_consumed(self):
        entries = [_itemized("DIESEL", [_line(50, 757.08, [_alloc("CASH", 757.08)])])]
        first = match_hose_allocations("DIESEL", "7", "2", 50.0, 757.08, entries)
        second = match_hose_allocations("DIESEL", "8", "3", 50.0, 757.08, entries)
        assert first.line_index == second.line_index == 0


class TestResolveHoseAllocations:
    def _resolve(self, hose_allocations, entries, consolidated_mode):
        return resolve_hose_allocations(
            label="Dispenser 7 hose 2",
            product_code="DIESEL",
            dispenser_number="7",
            hose_number="2",
            quantity=50.0,
            value=757.08,
            hose_allocations=hose_allocations,
            entries=entries,
            consolidated_mode=consolidated_mode,
        )

    def test_hose_allocations_take_precedence_in_per_hose_mode(self):
        entries = [_itemized("DIESEL", [_line(50, 757.08, [_alloc("CARD", 757.08)])])]
        result = self._resolve([_alloc("CASH", 757.08)], entries, False)
        assert result.source == SOURCE_HOSE
        assert [a.method for a in result.allocations] == ["CASH"]
        assert result.warnings == []

    def test_matched_allocations_used_when_hose_declares_none(self):
        entries = [_itemized("DIESEL", [_line(50, 757.08, [_alloc("CARD", 757.08)])])]
        result = self._resolve([], entries, False)
        assert result.source == SOURCE_MATCHED
        assert result.allocations[0].percentage == 100.0

    def test_consolidated_mode_ignores_hose_allocations_with_warning(self):
        entries = [_itemized("DIESEL", [_line(50, 757.08, [_alloc("CARD", 757.08)])])]
        result = self._resolve([_alloc("CASH", 757.08)], entries, True)
        assert result.source == SOURCE_NONE
        assert result.allocations == []
        assert len(result.warnings) == 1
        assert "Dispenser 7 hose 2" in result.warnings[0]

    def test_mismatched_hose_allocations_warn_once(self):
        result = self._resolve([_alloc("CASH", 700)], [], False)
        assert len(result.warnings) == 1


class TestConsolidation:
    def test_consolidate_by_method_sums_all_entries(self):
        entries = [
            _consolidated("OIL", [_alloc("cash", 25), _alloc("RUMBO", 5)]),
            _itemized("SNACK", [
                _line(1, 3.0, [_alloc("CASH", 3)]),
                _line(2, 6.0, [_alloc("Credit Card", 6)]),
            ]),
        ]
        assert consolidate_by_method(entries) == {"CASH": 28.0, "RUMBO": 5.0, "CREDIT_CARD": 6.0}

    def test_summary_merges_additively_by_default(self):
        resolved = resolve_summary_allocations(
            [_alloc("CASH", 100), _alloc("TRANSFER", 20)], {"CASH": 30.0}, False
        )
        assert resolved == {"CASH": 130.0, "TRANSFER": 20.0}

    def test_sentinel_replaces_summary(self):
        resolved = resolve_summary_allocations(
            [_alloc("SEE_PRODUCT_BREAKDOWN", 0), _alloc("CASH", 999)], {"CARD": 50.0}, False
        )
        assert resolved == {"CARD": 50.0}

    def test_spanish_sentinel_is_recognised(self):
        resolved = resolve_summary_allocations(
            [_alloc("detallado por producto", 0)], {"CASH": 10.0}, False
        )
        assert resolved == {"CASH": 10.0}

    def test_consolidated_mode_replaces_summary_when_products_declare(self):
        resolved = resolve_summary_allocations([_alloc("CASH", 500)], {"CARD": 757.08}, True)
        assert resolved == {"CARD": 757.08}

    def test_consolidated_mode_keeps_summary_when_products_declare_nothing(self):
        resolved = resolve_summary_allocations([_alloc("CASH", 500)], {}, True)
        assert resolved == {"CASH": 500.0}
