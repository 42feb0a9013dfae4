# Overview: Financial reconciliation of declared payments against computed sales.

from __future__ import annotations

from forecourt.services.catalog_service import normalize_method_code
from forecourt.services.closure_schemas import (
    BUCKETS,
    FinancialSummary,
    MethodTotal,
    SalesStatistics,
    SalesSummaryInput,
)
from forecourt.services.units import round2, within_tolerance


METHOD_BUCKETS = {
    "CASH": "cash",
    "EFECTIVO": "cash",
    "CREDIT_CARD": "card",
    "DEBIT_CARD": "card",
    "TARJETA_CREDITO": "card",
    "TARJETA_DEBITO": "card",
    "TRANSFER": "transfer",
    "TRANSFERENCIA": "transfer",
    "RUMBO": "loyalty",
    "BONOS_VIVE_TERPEL": "vouchers",
}


def bucket_for(method: str) -> str:
    return METHOD_BUCKETS.get(normalize_method_code(method), "other")


def empty_financial_summary() -> FinancialSummary:
    return FinancialSummary()


def build_financial_summary(
    summary: SalesSummaryInput | None,
    resolved_methods: dict[str, float],
    computed_total: float,
) -> tuple[FinancialSummary, list[str], list[str]]:
    """
    Reconcile declared payments against computed sales.

    Args:
        summary: the declared shift summary (None when missing)
        resolved_methods: per-method totals after consolidation
        computed_total: sum of hose and product-sale line values

    Returns:
        (summary, errors, warnings). A payment total that does not add up to
        the declared total is an error of this step only.
    """
    errors: list[str] = []
    warnings: list[str] = []
    computed_total = round2(computed_total)

    if summary is None:
        errors.append("Sales summary is missing; payment breakdown was not recorded")
        result = empty_financial_summary()
        result.computed_total = computed_total
        result.variance = round2(0.0 - computed_total)
        return result, errors, warnings

    declared_total = round2(summary.total_declared)
    result = FinancialSummary(
        declared_total=declared_total,
        computed_total=computed_total,
        variance=round2(declared_total - computed_total),
        buckets={b: 0.0 for b in BUCKETS},
    )

    if not resolved_methods:
        warnings.append("Sales summary declares no payment methods")
        return result, errors, warnings

    allocated = 0.0
    for method, amount in resolved_methods.items():
        bucket = bucket_for(method)
        amount = round2(amount)
        allocated = round2(allocated + amount)
        result.methods.append(MethodTotal(
            method=method,
            bucket=bucket,
            amount=amount,
            percentage=round2(amount / declared_total * 100) if declared_total else 0.0,
        ))
        result.buckets[bucket] = round2(result.buckets[bucket] + amount)

    if not within_tolerance(allocated, declared_total):
        errors.append(
            f"Payment methods total {allocated:.2f} does not match "
            f"declared total {declared_total:.2f}"
        )

    return result, errors, warnings


def build_statistics(
    declared_count: int | None,
    computed_count: int,
    computed_total: float,
) -> tuple[SalesStatistics, list[str]]:
    warnings = []
    if declared_count and declared_count != computed_count:
        warnings.append(
            f"Declared transaction count {declared_count} differs from "
            f"computed count {computed_count}"
        )

    divisor = declared_count or computed_count
    return SalesStatistics(
        declared_transactions=declared_count,
        computed_transactions=computed_count,
        average_ticket=round2(computed_total / divisor) if divisor else 0.0,
    ), warnings
