# Overview: Cash ledger updates for shift closures; automatic vs manual cash reconciliation.

from __future__ import annotations

from datetime import datetime

from forecourt.extensions import db
from forecourt.models import CashLedger, CashLedgerEntry
from forecourt.services.closure_schemas import (
    CASH_INFLOW,
    CASH_OUTFLOW,
    CashLedgerEffect,
    CashMovement,
    PlannedCashEntry,
)
from forecourt.services.concurrency import lock_for_update
from forecourt.services.units import round2, within_tolerance
from forecourt.time_utils import utcnow


AUTOMATIC_CONCEPT = "Cash sales"
AUTOMATIC_DETAIL = "Cash collected from shift sales"


class CashLedgerError(Exception):
    """Raised when cash ledger operations fail."""
    pass


def plan_cash_movements(
    cash_total: float,
    manual_movements: list[CashMovement],
) -> tuple[list[PlannedCashEntry], list[str]]:
    """
    Decide which cash entries a closure records.

    CONFLICT RULE:
    - An automatic inflow is synthesized from the cash bucket when it is > 0.
    - If a manual inflow equals it (within 0.01), the automatic entry is
      dropped and the manual one kept.
    - If manual inflows exist but none equals it, every inflow is dropped
      (automatic and manual) and a warning asks for manual correction.
    - Outflows are always kept.

    Returns:
        (entries to persist, warnings)
    """
    warnings: list[str] = []
    cash_total = round2(cash_total)

    automatic = None
    if cash_total > 0:
        automatic = PlannedCashEntry(
            entry_type=CASH_INFLOW,
            amount=cash_total,
            concept=AUTOMATIC_CONCEPT,
            detail=AUTOMATIC_DETAIL,
            is_automatic=True,
        )

    inflows = [
        PlannedCashEntry(
            entry_type=CASH_INFLOW,
            amount=round2(m.amount),
            concept=m.concept,
            detail=m.detail,
            note=m.note,
        )
        for m in manual_movements if m.movement_type == CASH_INFLOW
    ]
    outflows = [
        PlannedCashEntry(
            entry_type=CASH_OUTFLOW,
            amount=round2(m.amount),
            concept=m.concept,
            detail=m.detail,
            note=m.note,
        )
        for m in manual_movements if m.movement_type == CASH_OUTFLOW
    ]

    if automatic is not None:
        if not inflows:
            inflows = [automatic]
        elif not any(within_tolerance(e.amount, automatic.amount) for e in inflows):
            declared = round2(sum(e.amount for e in inflows))
            warnings.append(
                f"Declared cash inflows ({declared:.2f}) do not match cash sales "
                f"({automatic.amount:.2f}); no cash inflow was recorded, correct the ledger manually"
            )
            inflows = []

    return inflows + outflows, warnings


def get_or_create_ledger(location_id: int) -> CashLedger:
    """Locked ledger row for the location, created with a zero balance if missing."""
    ledger = lock_for_update(
        db.session.query(CashLedger).filter_by(location_id=location_id)
    ).first()
    if ledger is None:
        ledger = CashLedger(location_id=location_id, opening_balance=0.0, balance=0.0)
        db.session.add(ledger)
        db.session.flush()
    return ledger


def update_balance(ledger: CashLedger, new_balance: float, *, at: datetime | None = None) -> CashLedger:
    ledger.balance = round2(new_balance)
    ledger.last_movement_at = at or utcnow()
    db.session.flush()
    return ledger


def apply_cash_movements(
    location_id: int,
    shift_id: int,
    entries: list[PlannedCashEntry],
    occurred_at: datetime,
) -> CashLedgerEffect:
    """
    Persist planned entries and move the running balance.

    new_balance = old_balance + sum(inflows) - sum(outflows). Flushes, never
    commits. No entries means no ledger change.
    """
    if not entries:
        return CashLedgerEffect()

    ledger = get_or_create_ledger(location_id)
    previous_balance = round2(ledger.balance or 0.0)

    total_in = 0.0
    total_out = 0.0
    for entry in entries:
        if entry.entry_type == CASH_INFLOW:
            total_in = round2(total_in + entry.amount)
        elif entry.entry_type == CASH_OUTFLOW:
            total_out = round2(total_out + entry.amount)
        else:
            raise CashLedgerError(f"Invalid cash entry type: {entry.entry_type}")

        db.session.add(CashLedgerEntry(
            ledger_id=ledger.id,
            shift_id=shift_id,
            entry_type=entry.entry_type,
            amount=entry.amount,
            concept=entry.concept[:128],
            detail=entry.detail[:255] if entry.detail else None,
            note=entry.note[:255] if entry.note else None,
            is_automatic=entry.is_automatic,
            occurred_at=occurred_at,
        ))

    new_balance = round2(previous_balance + total_in - total_out)
    update_balance(ledger, new_balance, at=occurred_at)

    return CashLedgerEffect(
        entries=list(entries),
        previous_balance=previous_balance,
        new_balance=new_balance,
        total_inflows=total_in,
        total_outflows=total_out,
    )
