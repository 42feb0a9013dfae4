# Overview: Pytest coverage for payment reconciliation and sales statistics.

from forecourt.services.closure_schemas import PaymentAllocation, SalesSummaryInput
from forecourt.services.financial_service import (
    bucket_for,
    build_financial_summary,
    build_statistics,
)


def _summary(total, *methods):
    return SalesSummaryInput(
        total_declared=total,
        payment_methods=[PaymentAllocation(method=m, amount=a) for m, a in methods],
    )


class TestBuckets:
    def test_known_methods(self):
        assert bucket_for("cash") == "cash"
        assert bucket_for("Debit Card") == "card"
        assert bucket_for("TRANSFERENCIA") == "transfer"
        assert bucket_for("RUMBO") == "loyalty"
        assert bucket_for("BONOS_VIVE_TERPEL") == "vouchers"

    def test_unknown_method_is_other(self):
        assert bucket_for("CRYPTO") == "other"


class TestBuildFinancialSummary:
    def test_balanced_summary(self):
        summary, errors, warnings = build_financial_summary(
            _summary(1000, ("CASH", 600), ("CREDIT_CARD", 400)),
            {"CASH": 600.0, "CREDIT_CARD": 400.0},
            1000.0,
        )

        assert errors == []
        assert warnings == []
        assert summary.variance == 0.0
        assert summary.buckets["cash"] == 600.0
        assert summary.buckets["card"] == 400.0
        assert [m.percentage for m in summary.methods] == [60.0, 40.0]

    def test_variance_is_declared_minus_computed(self):
        summary, _, _ = build_financial_summary(
            _summary(990, ("CASH", 990)), {"CASH": 990.0}, 1000.0
        )
        assert summary.variance == -10.0

    def test_methods_not_adding_up_is_an_error(self):
        summary, errors, _ = build_financial_summary(
            _summary(1000, ("CASH", 900)), {"CASH": 900.0}, 1000.0
        )

        assert len(errors) == 1
        assert "does not match declared total" in errors[0]
        assert summary.buckets["cash"] == 900.0

    def test_one_cent_difference_is_tolerated(self):
        _, errors, _ = build_financial_summary(
            _summary(1000, ("CASH", 999.99)), {"CASH": 999.99}, 1000.0
        )
        assert errors == []

    def test_missing_summary(self):
        summary, errors, _ = build_financial_summary(None, {}, 250.0)

        assert len(errors) == 1
        assert "missing" in errors[0]
        assert summary.declared_total == 0.0
        assert summary.computed_total == 250.0
        assert summary.variance == -250.0

    def test_summary_without_methods_warns(self):
        summary, errors, warnings = build_financial_summary(_summary(100), {}, 100.0)

        assert errors == []
        assert len(warnings) == 1
        assert summary.methods == []


class TestBuildStatistics:
    def test_counts_agree(self):
        stats, warnings = build_statistics(4, 4, 100.0)
        assert warnings == []
        assert stats.average_ticket == 25.0

    def test_count_mismatch_warns(self):
        stats, warnings = build_statistics(5, 4, 100.0)
        assert len(warnings) == 1
        assert stats.average_ticket == 20.0

    def test_no_declared_count_uses_computed(self):
        stats, warnings = build_statistics(None, 3, 90.0)
        assert warnings == []
        assert stats.declared_transactions is None
        assert stats.average_ticket == 30.0

    def test_nothing_sold(self):
        stats, _ = build_statistics(None, 0, 0.0)
        assert stats.average_ticket == 0.0
