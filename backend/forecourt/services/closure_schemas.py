# Overview: Request parsing and result value objects for shift closures.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from forecourt.services.units import round2
from forecourt.time_utils import parse_iso_datetime, to_utc_z
from forecourt.validation import (
    ValidationError,
    coerce_int,
    coerce_list,
    coerce_number,
    coerce_text,
    require_mapping,
)


STATUS_SUCCESS = "SUCCESS"
STATUS_SUCCESS_WITH_ERRORS = "SUCCESS_WITH_ERRORS"
STATUS_FAILED = "FAILED"

SALE_TYPE_CONSOLIDATED = "CONSOLIDATED"
SALE_TYPE_ITEMIZED = "ITEMIZED"

CASH_INFLOW = "INFLOW"
CASH_OUTFLOW = "OUTFLOW"

_CASH_TYPE_ALIASES = {
    "INFLOW": CASH_INFLOW,
    "INGRESO": CASH_INFLOW,
    "OUTFLOW": CASH_OUTFLOW,
    "EGRESO": CASH_OUTFLOW,
}


# =============================================================================
# REQUEST
# =============================================================================

@dataclass(frozen=True)
class PaymentAllocation:
    method: str
    amount: float
    note: str | None = None


@dataclass(frozen=True)
class HoseReading:
    number: str
    product_code: str
    previous_reading: float
    current_reading: float
    unit: str | None = None
    payment_allocations: list[PaymentAllocation] = field(default_factory=list)
    note: str | None = None


@dataclass(frozen=True)
class DispenserReading:
    number: str
    hoses: list[HoseReading] = field(default_factory=list)
    note: str | None = None


@dataclass(frozen=True)
class TankReading:
    tank_id: int
    height_cm: float
    tank_type: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class SaleLineInput:
    quantity: float
    unit_price: float
    total_value: float
    payment_allocations: list[PaymentAllocation] = field(default_factory=list)
    note: str | None = None


@dataclass(frozen=True)
class ConsolidatedSale:
    """
    One quantity / price / value for the whole shift.

    Fields are optional at parse time; a consolidated sale missing any of
    them is rejected as a line error, not as a malformed request.
    """
    quantity: float | None
    unit_price: float | None
    total_value: float | None
    payment_allocations: list[PaymentAllocation] = field(default_factory=list)
    kind: str = SALE_TYPE_CONSOLIDATED


@dataclass(frozen=True)
class ItemizedSale:
    lines: list[SaleLineInput] = field(default_factory=list)
    kind: str = SALE_TYPE_ITEMIZED


ProductSale = Union[ConsolidatedSale, ItemizedSale]


@dataclass(frozen=True)
class ProductSaleEntry:
    product_code: str
    sale: ProductSale
    unit: str | None = None
    note: str | None = None

    @property
    def direct_allocations(self) -> list[PaymentAllocation]:
        if isinstance(self.sale, ConsolidatedSale):
            return list(self.sale.payment_allocations)
        return []

    @property
    def all_allocations(self) -> list[PaymentAllocation]:
        if isinstance(self.sale, ConsolidatedSale):
            return list(self.sale.payment_allocations)
        allocations: list[PaymentAllocation] = []
        for line in self.sale.lines:
            allocations.extend(line.payment_allocations)
        return allocations


@dataclass(frozen=True)
class CashMovement:
    movement_type: str  # INFLOW, OUTFLOW
    amount: float
    concept: str
    detail: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class SalesSummaryInput:
    total_declared: float
    payment_methods: list[PaymentAllocation] = field(default_factory=list)
    note: str | None = None


@dataclass(frozen=True)
class ShiftClosureRequest:
    location_id: int
    started_at: datetime
    ended_at: datetime
    dispensers: list[DispenserReading] = field(default_factory=list)
    tanks: list[TankReading] = field(default_factory=list)
    product_sales: list[ProductSaleEntry] = field(default_factory=list)
    summary: SalesSummaryInput | None = None
    cash_movements: list[CashMovement] = field(default_factory=list)
    declared_transaction_count: int | None = None
    notes: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


# =============================================================================
# PARSING
# =============================================================================

def _parse_allocations(value: Any, field_name: str) -> list[PaymentAllocation]:
    allocations = []
    for idx, raw in enumerate(coerce_list(value, field_name)):
        where = f"{field_name}[{idx}]"
        raw = require_mapping(raw, where)
        allocations.append(PaymentAllocation(
            method=coerce_text(raw.get("method"), f"{where}.method"),
            amount=coerce_number(raw.get("amount"), f"{where}.amount"),
            note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
        ))
    return allocations


def _parse_hose(raw: Any, where: str) -> HoseReading:
    raw = require_mapping(raw, where)
    return HoseReading(
        number=coerce_text(raw.get("number"), f"{where}.number"),
        product_code=coerce_text(raw.get("product_code"), f"{where}.product_code"),
        previous_reading=coerce_number(raw.get("previous_reading"), f"{where}.previous_reading"),
        current_reading=coerce_number(raw.get("current_reading"), f"{where}.current_reading"),
        unit=coerce_text(raw.get("unit"), f"{where}.unit", allow_none=True),
        payment_allocations=_parse_allocations(raw.get("payment_allocations"), f"{where}.payment_allocations"),
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_dispenser(raw: Any, where: str) -> DispenserReading:
    raw = require_mapping(raw, where)
    hoses = [
        _parse_hose(h, f"{where}.hoses[{i}]")
        for i, h in enumerate(coerce_list(raw.get("hoses"), f"{where}.hoses"))
    ]
    return DispenserReading(
        number=coerce_text(raw.get("number"), f"{where}.number"),
        hoses=hoses,
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_tank(raw: Any, where: str) -> TankReading:
    raw = require_mapping(raw, where)
    return TankReading(
        tank_id=coerce_int(raw.get("tank_id"), f"{where}.tank_id"),
        height_cm=coerce_number(raw.get("height_cm"), f"{where}.height_cm"),
        tank_type=coerce_text(raw.get("tank_type"), f"{where}.tank_type", allow_none=True),
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_sale_line(raw: Any, where: str) -> SaleLineInput:
    raw = require_mapping(raw, where)
    quantity = coerce_number(raw.get("quantity"), f"{where}.quantity")
    unit_price = coerce_number(raw.get("unit_price"), f"{where}.unit_price")
    total_value = coerce_number(raw.get("total_value"), f"{where}.total_value", allow_none=True)
    if total_value is None:
        total_value = round2(quantity * unit_price)
    return SaleLineInput(
        quantity=quantity,
        unit_price=unit_price,
        total_value=total_value,
        payment_allocations=_parse_allocations(raw.get("payment_allocations"), f"{where}.payment_allocations"),
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_product_sale(raw: Any, where: str) -> ProductSaleEntry:
    """
    Tagged by "type" (CONSOLIDATED / ITEMIZED). Without a tag, an entry
    carrying "lines" is itemized and anything else is consolidated.
    """
    raw = require_mapping(raw, where)
    kind = coerce_text(raw.get("type"), f"{where}.type", allow_none=True)
    kind = kind.upper() if kind else (SALE_TYPE_ITEMIZED if "lines" in raw else SALE_TYPE_CONSOLIDATED)

    if kind == SALE_TYPE_ITEMIZED:
        sale: ProductSale = ItemizedSale(lines=[
            _parse_sale_line(line, f"{where}.lines[{i}]")
            for i, line in enumerate(coerce_list(raw.get("lines"), f"{where}.lines"))
        ])
    elif kind == SALE_TYPE_CONSOLIDATED:
        sale = ConsolidatedSale(
            quantity=coerce_number(raw.get("quantity"), f"{where}.quantity", allow_none=True),
            unit_price=coerce_number(raw.get("unit_price"), f"{where}.unit_price", allow_none=True),
            total_value=coerce_number(raw.get("total_value"), f"{where}.total_value", allow_none=True),
            payment_allocations=_parse_allocations(raw.get("payment_allocations"), f"{where}.payment_allocations"),
        )
    else:
        raise ValidationError(f"{where}.type must be CONSOLIDATED or ITEMIZED")

    return ProductSaleEntry(
        product_code=coerce_text(raw.get("product_code"), f"{where}.product_code"),
        sale=sale,
        unit=coerce_text(raw.get("unit"), f"{where}.unit", allow_none=True),
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_cash_movement(raw: Any, where: str) -> CashMovement:
    raw = require_mapping(raw, where)
    movement_type = coerce_text(raw.get("type"), f"{where}.type").upper()
    if movement_type not in _CASH_TYPE_ALIASES:
        raise ValidationError(f"{where}.type must be INFLOW or OUTFLOW")
    amount = coerce_number(raw.get("amount"), f"{where}.amount")
    if amount < 0:
        raise ValidationError(f"{where}.amount cannot be negative")
    return CashMovement(
        movement_type=_CASH_TYPE_ALIASES[movement_type],
        amount=amount,
        concept=coerce_text(raw.get("concept"), f"{where}.concept", allow_none=True) or "Manual movement",
        detail=coerce_text(raw.get("detail"), f"{where}.detail", allow_none=True),
        note=coerce_text(raw.get("note"), f"{where}.note", allow_none=True),
    )


def _parse_summary(raw: Any) -> SalesSummaryInput | None:
    if raw is None:
        return None
    raw = require_mapping(raw, "summary")
    return SalesSummaryInput(
        total_declared=coerce_number(raw.get("total_declared"), "summary.total_declared"),
        payment_methods=_parse_allocations(raw.get("payment_methods"), "summary.payment_methods"),
        note=coerce_text(raw.get("note"), "summary.note", allow_none=True),
    )


def _parse_timestamp(value: Any, field_name: str) -> datetime:
    text = coerce_text(value, field_name)
    try:
        parsed = parse_iso_datetime(text)
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO-8601 datetime")
    if parsed is None:
        raise ValidationError(f"{field_name} is required")
    return parsed


def parse_closure_request(payload: Any) -> ShiftClosureRequest:
    """
    Build a ShiftClosureRequest from decoded JSON.

    Only structural problems are rejected here (missing fields, wrong types,
    non-numeric readings). Business problems such as unknown products or
    negative meter deltas are line errors reported by the engine.

    Raises:
        ValidationError: if the payload is malformed
    """
    payload = require_mapping(payload, "request")

    started_at = _parse_timestamp(payload.get("started_at"), "started_at")
    ended_at = _parse_timestamp(payload.get("ended_at"), "ended_at")
    if ended_at <= started_at:
        raise ValidationError("ended_at must be after started_at")

    transaction_count = coerce_int(
        payload.get("declared_transaction_count"), "declared_transaction_count", allow_none=True
    )
    if transaction_count is not None and transaction_count < 0:
        raise ValidationError("declared_transaction_count cannot be negative")

    return ShiftClosureRequest(
        location_id=coerce_int(payload.get("location_id"), "location_id"),
        started_at=started_at,
        ended_at=ended_at,
        dispensers=[
            _parse_dispenser(d, f"dispensers[{i}]")
            for i, d in enumerate(coerce_list(payload.get("dispensers"), "dispensers"))
        ],
        tanks=[
            _parse_tank(t, f"tanks[{i}]")
            for i, t in enumerate(coerce_list(payload.get("tanks"), "tanks"))
        ],
        product_sales=[
            _parse_product_sale(p, f"product_sales[{i}]")
            for i, p in enumerate(coerce_list(payload.get("product_sales"), "product_sales"))
        ],
        summary=_parse_summary(payload.get("summary")),
        cash_movements=[
            _parse_cash_movement(c, f"cash_movements[{i}]")
            for i, c in enumerate(coerce_list(payload.get("cash_movements"), "cash_movements"))
        ],
        declared_transaction_count=transaction_count,
        notes=coerce_text(payload.get("notes"), "notes", allow_none=True),
        raw=payload,
    )


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class NormalizedAllocation:
    method: str
    amount: float
    percentage: float
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "amount": self.amount,
            "percentage": self.percentage,
            "note": self.note,
        }


@dataclass
class ComputedSaleLine:
    """
    One reconciled hose or product-sale line.

    quantity is expressed in `unit`; for volume units both liter and gallon
    figures are filled.
    """
    product_id: int
    product_code: str
    product_name: str
    quantity: float
    unit: str
    unit_price: float
    total_value: float
    quantity_liters: float | None = None
    quantity_gallons: float | None = None
    price_per_gallon: float | None = None
    allocations: list[NormalizedAllocation] = field(default_factory=list)
    allocation_source: str = "NONE"  # HOSE, MATCHED, DECLARED, NONE
    is_fuel: bool = False
    label: str = ""
    note: str | None = None

    # Hose lines only
    dispenser_number: str | None = None
    hose_number: str | None = None
    hose_id: int | None = None
    previous_reading: float | None = None
    current_reading: float | None = None

    def to_dict(self) -> dict:
        data = {
            "label": self.label,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "is_fuel": self.is_fuel,
            "quantity": self.quantity,
            "unit": self.unit,
            "quantity_liters": self.quantity_liters,
            "quantity_gallons": self.quantity_gallons,
            "unit_price": self.unit_price,
            "price_per_gallon": self.price_per_gallon,
            "total_value": self.total_value,
            "allocation_source": self.allocation_source,
            "allocations": [a.to_dict() for a in self.allocations],
            "note": self.note,
        }
        if self.hose_number is not None:
            data.update({
                "dispenser_number": self.dispenser_number,
                "hose_number": self.hose_number,
                "hose_id": self.hose_id,
                "previous_reading": self.previous_reading,
                "current_reading": self.current_reading,
            })
        return data


@dataclass
class DispenserSummary:
    number: str
    hoses: list[ComputedSaleLine] = field(default_factory=list)
    total_liters: float = 0.0
    total_gallons: float = 0.0
    total_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "hoses": [h.to_dict() for h in self.hoses],
            "total_liters": self.total_liters,
            "total_gallons": self.total_gallons,
            "total_value": self.total_value,
        }


@dataclass
class TankSummary:
    tanks: list[dict] = field(default_factory=list)
    tank_count: int = 0
    total_volume_liters: float = 0.0
    total_volume_gallons: float = 0.0
    total_capacity_liters: float = 0.0
    occupancy_pct: float = 0.0

    def to_dict(self) -> dict:
        return {
            "tanks": list(self.tanks),
            "tank_count": self.tank_count,
            "total_volume_liters": self.total_volume_liters,
            "total_volume_gallons": self.total_volume_gallons,
            "total_capacity_liters": self.total_capacity_liters,
            "occupancy_pct": self.occupancy_pct,
        }


@dataclass
class ProductSaleSummary:
    lines: list[ComputedSaleLine] = field(default_factory=list)
    total_value: float = 0.0
    products_updated: int = 0
    fuel_declared_total: float = 0.0
    payment_methods: list[NormalizedAllocation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "total_value": self.total_value,
            "products_updated": self.products_updated,
            "fuel_declared_total": self.fuel_declared_total,
            "payment_methods": [m.to_dict() for m in self.payment_methods],
        }


@dataclass
class MethodTotal:
    method: str
    bucket: str
    amount: float
    percentage: float

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "bucket": self.bucket,
            "amount": self.amount,
            "percentage": self.percentage,
        }


BUCKETS = ("cash", "card", "transfer", "loyalty", "vouchers", "other")


@dataclass
class FinancialSummary:
    declared_total: float = 0.0
    computed_total: float = 0.0
    variance: float = 0.0
    methods: list[MethodTotal] = field(default_factory=list)
    buckets: dict[str, float] = field(default_factory=lambda: {b: 0.0 for b in BUCKETS})

    def to_dict(self) -> dict:
        return {
            "declared_total": self.declared_total,
            "computed_total": self.computed_total,
            "variance": self.variance,
            "methods": [m.to_dict() for m in self.methods],
            "buckets": dict(self.buckets),
        }


@dataclass
class PlannedCashEntry:
    entry_type: str
    amount: float
    concept: str
    detail: str | None = None
    note: str | None = None
    is_automatic: bool = False

    def to_dict(self) -> dict:
        return {
            "entry_type": self.entry_type,
            "amount": self.amount,
            "concept": self.concept,
            "detail": self.detail,
            "note": self.note,
            "is_automatic": self.is_automatic,
        }


@dataclass
class CashLedgerEffect:
    entries: list[PlannedCashEntry] = field(default_factory=list)
    previous_balance: float | None = None
    new_balance: float | None = None
    total_inflows: float = 0.0
    total_outflows: float = 0.0

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "entry_count": self.entry_count,
            "previous_balance": self.previous_balance,
            "new_balance": self.new_balance,
            "total_inflows": self.total_inflows,
            "total_outflows": self.total_outflows,
        }


@dataclass
class SalesStatistics:
    declared_transactions: int | None = None
    computed_transactions: int = 0
    average_ticket: float = 0.0

    def to_dict(self) -> dict:
        return {
            "declared_transactions": self.declared_transactions,
            "computed_transactions": self.computed_transactions,
            "average_ticket": self.average_ticket,
        }


@dataclass
class ShiftClosureResult:
    status: str
    location_id: int | None
    shift_id: int | None = None
    consolidated_payment_mode: bool = False
    dispensers: list[DispenserSummary] = field(default_factory=list)
    tanks: TankSummary = field(default_factory=TankSummary)
    product_sales: ProductSaleSummary = field(default_factory=ProductSaleSummary)
    financial: FinancialSummary = field(default_factory=FinancialSummary)
    cash_ledger: CashLedgerEffect = field(default_factory=CashLedgerEffect)
    statistics: SalesStatistics = field(default_factory=SalesStatistics)
    total_liters: float = 0.0
    total_gallons: float = 0.0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_code: str | None = None
    closed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status != STATUS_FAILED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "error_code": self.error_code,
            "shift_id": self.shift_id,
            "location_id": self.location_id,
            "consolidated_payment_mode": self.consolidated_payment_mode,
            "dispensers": [d.to_dict() for d in self.dispensers],
            "tanks": self.tanks.to_dict(),
            "product_sales": self.product_sales.to_dict(),
            "financial_summary": self.financial.to_dict(),
            "cash_ledger": self.cash_ledger.to_dict(),
            "statistics": self.statistics.to_dict(),
            "total_liters": self.total_liters,
            "total_gallons": self.total_gallons,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "closed_at": to_utc_z(self.closed_at),
        }
