# Overview: Pure payment-allocation matching and consolidation for shift closures.

"""
Payment Allocation Matching (authoritative)

Everything here is pure: no database access, no clock, no logging.

Matching a hose to product-sale lines:
- Candidates are product-sale entries with the hose's product code, scanned
  in input order; within an itemized entry, lines are scanned in input order.
- A line matches when BOTH its quantity and value are within 0.01 of the
  hose's computed figures, OR its note contains the dispenser or hose
  number, OR its parent entry's note does.
- First match wins. Matched lines are not consumed; two identical hoses may
  match the same line.
- Without a line match: a consolidated entry whose note names the
  dispenser or hose, else the first entry of that product declaring
  allocations directly.

Summary resolution:
- Consolidated mode with a non-empty per-product consolidation replaces
  the declared summary methods.
- A SEE_PRODUCT_BREAKDOWN (or DETALLADO_POR_PRODUCTO) method in the summary
  also replaces them.
- Otherwise the two are merged additively per method.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from forecourt.services.catalog_service import normalize_method_code
from forecourt.services.closure_schemas import (
    ConsolidatedSale,
    ItemizedSale,
    NormalizedAllocation,
    PaymentAllocation,
    ProductSaleEntry,
)
from forecourt.services.units import round2, within_tolerance


SEE_PRODUCT_BREAKDOWN = "SEE_PRODUCT_BREAKDOWN"
SENTINEL_METHODS = {SEE_PRODUCT_BREAKDOWN, "DETALLADO_POR_PRODUCTO"}

SOURCE_HOSE = "HOSE"
SOURCE_MATCHED = "MATCHED"
SOURCE_DECLARED = "DECLARED"
SOURCE_NONE = "NONE"


@dataclass
class AllocationMatch:
    """Allocations found for a hose, and where they came from."""
    allocations: list[PaymentAllocation]
    entry_index: int
    line_index: int | None = None
    reason: str = ""


@dataclass
class HoseAllocationResult:
    allocations: list[NormalizedAllocation] = field(default_factory=list)
    source: str = SOURCE_NONE
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# NORMALIZATION
# =============================================================================

def sum_amounts(allocations) -> float:
    total = 0.0
    for allocation in allocations:
        total = round2(total + allocation.amount)
    return total


def normalize_allocations(
    allocations: list[PaymentAllocation],
    expected_value: float,
    label: str,
) -> tuple[list[NormalizedAllocation], str | None]:
    """
    Normalize declared allocations for one line.

    percentage = amount / sum(amounts) * 100, rounded. Returns at most one
    warning, naming the line, when the sum differs from expected_value by
    more than 0.01.
    """
    total = sum_amounts(allocations)
    normalized = []
    for allocation in allocations:
        percentage = round2(allocation.amount / total * 100) if total else 0.0
        normalized.append(NormalizedAllocation(
            method=normalize_method_code(allocation.method),
            amount=round2(allocation.amount),
            percentage=percentage,
            note=allocation.note,
        ))

    warning = None
    if allocations and not within_tolerance(total, expected_value):
        warning = (
            f"{label}: payment allocations total {total:.2f} "
            f"does not match computed value {expected_value:.2f}"
        )
    return normalized, warning


# =============================================================================
# MATCHING
# =============================================================================

def _mentions(note: str | None, dispenser_number: str, hose_number: str) -> bool:
    if not note:
        return False
    return str(dispenser_number) in note or str(hose_number) in note


def match_hose_allocations(
    product_code: str,
    dispenser_number: str,
    hose_number: str,
    quantity: float,
    value: float,
    entries: list[ProductSaleEntry],
) -> AllocationMatch | None:
    """
    Find the declared allocations that correspond to one hose's sale.

    Args:
        quantity: hose quantity in the hose's meter unit
        value: hose sale value

    Returns:
        The first match by input order, or None.
    """
    candidates = [
        (idx, entry) for idx, entry in enumerate(entries)
        if entry.product_code == product_code
    ]

    for idx, entry in candidates:
        if not isinstance(entry.sale, ItemizedSale):
            continue
        entry_mentions = _mentions(entry.note, dispenser_number, hose_number)
        for line_idx, line in enumerate(entry.sale.lines):
            if within_tolerance(line.quantity, quantity) and within_tolerance(line.total_value, value):
                return AllocationMatch(line.payment_allocations, idx, line_idx, "quantity_and_value")
            if _mentions(line.note, dispenser_number, hose_number):
                return AllocationMatch(line.payment_allocations, idx, line_idx, "line_note")
            if entry_mentions:
                return AllocationMatch(line.payment_allocations, idx, line_idx, "entry_note")

    for idx, entry in candidates:
        if isinstance(entry.sale, ConsolidatedSale) and entry.direct_allocations \
                and _mentions(entry.note, dispenser_number, hose_number):
            return AllocationMatch(entry.direct_allocations, idx, None, "entry_note")

    for idx, entry in candidates:
        if entry.direct_allocations:
            return AllocationMatch(entry.direct_allocations, idx, None, "first_declared")

    return None


def resolve_hose_allocations(
    *,
    label: str,
    product_code: str,
    dispenser_number: str,
    hose_number: str,
    quantity: float,
    value: float,
    hose_allocations: list[PaymentAllocation],
    entries: list[ProductSaleEntry],
    consolidated_mode: bool,
) -> HoseAllocationResult:
    """
    Decide which allocations apply to a hose under the location's mode.

    Per-hose mode: allocations declared on the hose win; otherwise matched
    from the product-sale entries.
    Consolidated mode: hose allocations are ignored (one warning) and no
    per-hose matching is attempted.
    """
    result = HoseAllocationResult()

    if consolidated_mode:
        if hose_allocations:
            result.warnings.append(
                f"{label}: payments are declared per product at this location; "
                f"hose payment allocations were ignored"
            )
        return result

    if hose_allocations:
        allocations, source = hose_allocations, SOURCE_HOSE
    else:
        match = match_hose_allocations(
            product_code, dispenser_number, hose_number, quantity, value, entries
        )
        if match is None:
            return result
        allocations, source = match.allocations, SOURCE_MATCHED

    normalized, warning = normalize_allocations(allocations, value, label)
    result.allocations = normalized
    result.source = source
    if warning:
        result.warnings.append(warning)
    return result


# =============================================================================
# CONSOLIDATION
# =============================================================================

def merge_by_method(allocations, totals: dict[str, float] | None = None) -> dict[str, float]:
    """Sum amounts per normalized method code, preserving first-seen order."""
    totals = dict(totals or {})
    for allocation in allocations:
        method = normalize_method_code(allocation.method)
        totals[method] = round2(totals.get(method, 0.0) + allocation.amount)
    return totals


def consolidate_by_method(entries: list[ProductSaleEntry]) -> dict[str, float]:
    """Merge every product-sale allocation (consolidated and itemized) by method."""
    totals: dict[str, float] = {}
    for entry in entries:
        totals = merge_by_method(entry.all_allocations, totals)
    return totals


def has_sentinel(summary_methods: list[PaymentAllocation]) -> bool:
    return any(normalize_method_code(m.method) in SENTINEL_METHODS for m in summary_methods)


def resolve_summary_allocations(
    summary_methods: list[PaymentAllocation],
    consolidated: dict[str, float],
    consolidated_mode: bool,
) -> dict[str, float]:
    """Final per-method totals used for the financial summary."""
    if consolidated_mode and consolidated:
        return dict(consolidated)
    if has_sentinel(summary_methods):
        return dict(consolidated)
    return merge_by_method(summary_methods, consolidated)
