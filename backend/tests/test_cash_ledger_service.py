# Overview: Pytest coverage for cash movement planning and ledger balances.

"""
Cash Ledger Tests

The automatic "cash sales" inflow and manually declared inflows must never
both be recorded for the same money.
"""

from datetime import datetime, timezone

import pytest

from forecourt.models import CashLedger, CashLedgerEntry
from forecourt.services.cash_ledger_service import (
    AUTOMATIC_CONCEPT,
    CashLedgerError,
    apply_cash_movements,
    get_or_create_ledger,
    plan_cash_movements,
)
from forecourt.services.closure_schemas import (
    CASH_INFLOW,
    CASH_OUTFLOW,
    CashMovement,
    PlannedCashEntry,
)


AT = datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)


def _inflow(amount, concept="Till count"):
    return CashMovement(movement_type=CASH_INFLOW, amount=amount, concept=concept)


def _outflow(amount, concept="Supplier payment"):
    return CashMovement(movement_type=CASH_OUTFLOW, amount=amount, concept=concept)


class TestPlanCashMovements:
    def test_automatic_inflow_from_cash_sales(self):
        entries, warnings = plan_cash_movements(500.0, [])

        assert warnings == []
        assert len(entries) == 1
        assert entries[0].is_automatic
        assert entries[0].concept == AUTOMATIC_CONCEPT
        assert entries[0].amount == 500.0

    def test_matching_manual_inflow_replaces_automatic(self):
        entries, warnings = plan_cash_movements(500.0, [_inflow(500.0)])

        assert warnings == []
        assert [(e.entry_type, e.amount, e.is_automatic) for e in entries] == [
            (CASH_INFLOW, 500.0, False),
        ]

    def test_mismatched_manual_inflow_drops_all_inflows(self):
        entries, warnings = plan_cash_movements(500.0, [_inflow(400.0)])

        assert entries == []
        assert len(warnings) == 1
        assert "400.00" in warnings[0]
        assert "500.00" in warnings[0]

    def test_outflows_are_always_kept(self):
        entries, warnings = plan_cash_movements(500.0, [_inflow(400.0), _outflow(50.0)])

        assert len(warnings) == 1
        assert [(e.entry_type, e.amount) for e in entries] == [(CASH_OUTFLOW, 50.0)]

    def test_no_cash_sales_keeps_manual_movements(self):
        entries, warnings = plan_cash_movements(0.0, [_inflow(100.0), _outflow(20.0)])

        assert warnings == []
        assert [e.entry_type for e in entries] == [CASH_INFLOW, CASH_OUTFLOW]


class TestApplyCashMovements:
    def test_ledger_is_created_and_balance_moves(self, db_session, location):
        entries, _ = plan_cash_movements(500.0, [_outflow(120.0)])

        effect = apply_cash_movements(location.id, None, entries, AT)
        db_session.commit()

        assert effect.previous_balance == 0.0
        assert effect.new_balance == 380.0
        assert effect.total_inflows == 500.0
        assert effect.total_outflows == 120.0
        assert effect.entry_count == 2

        ledger = db_session.query(CashLedger).filter_by(location_id=location.id).one()
        assert ledger.balance == 380.0
        assert db_session.query(CashLedgerEntry).filter_by(ledger_id=ledger.id).count() == 2

    def test_balance_accumulates_across_closures(self, db_session, location):
        ledger = get_or_create_ledger(location.id)
        ledger.balance = 100.0
        db_session.commit()

        effect = apply_cash_movements(location.id, None, plan_cash_movements(50.0, [])[0], AT)
        db_session.commit()

        assert effect.previous_balance == 100.0
        assert effect.new_balance == 150.0

    def test_no_entries_leaves_ledger_untouched(self, db_session, location):
        effect = apply_cash_movements(location.id, None, [], AT)

        assert effect.entry_count == 0
        assert effect.new_balance is None
        assert db_session.query(CashLedger).count() == 0

    def test_invalid_entry_type_is_rejected(self, db_session, location):
        bogus = PlannedCashEntry(entry_type="SIDEWAYS", amount=1.0, concept="?")

        with pytest.raises(CashLedgerError):
            apply_cash_movements(location.id, None, [bogus], AT)
