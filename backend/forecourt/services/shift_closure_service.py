# Overview: Shift-closure reconciliation engine; computes a closure in memory and commits it atomically.

"""
Shift Closure Service

WHY: The end of a shift is the only moment where meter readings, physical
tank measurements, store sales, declared payments and cash are seen
together. A closure turns them into one consistent state change.

STATE MACHINE:
    Validate -> Compute -> Duplicate check -> Commit -> Result

- Validate: the location must exist, otherwise FAILED and nothing is written.
- Compute: in memory plus read-only lookups. Per-line problems are
  collected into errors/warnings and never abort the closure.
- Duplicate check: (location, start date, start HH:MM, end HH:MM) must be
  new. The uq_shift_records_location_key constraint is authoritative; the
  pre-check only produces the same conflict earlier.
- Commit: ONE transaction and ONE commit. Shift record, meter history
  (shift_id set at creation), hose readings, stock deductions, tank levels,
  product-sale history, payment breakdown, cash ledger and audit events.
- Result: SUCCESS when no errors, SUCCESS_WITH_ERRORS when some lines were
  rejected, FAILED on any whole-operation failure. Callers always get a
  result object.

FUEL vs TANKS:
Dispenser sales are checked against the tank level but never deducted from
it. Tank levels only change through the height readings of the same
closure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import IntegrityError

from forecourt.extensions import db
from forecourt.models import Location, Product, ShiftPaymentBreakdown, ShiftRecord
from forecourt.time_utils import shift_key_parts, shift_midpoint, utcnow
from forecourt.validation import ConflictError
from forecourt.services.audit_service import append_audit_event
from forecourt.services.cash_ledger_service import apply_cash_movements, plan_cash_movements
from forecourt.services.catalog_service import find_method_by_code, find_product_by_code
from forecourt.services.closure_schemas import (
    STATUS_FAILED,
    STATUS_SUCCESS,
    STATUS_SUCCESS_WITH_ERRORS,
    ComputedSaleLine,
    ConsolidatedSale,
    DispenserSummary,
    FinancialSummary,
    NormalizedAllocation,
    PaymentAllocation,
    PlannedCashEntry,
    ProductSaleEntry,
    ProductSaleSummary,
    SalesStatistics,
    ShiftClosureRequest,
    ShiftClosureResult,
    TankSummary,
)
from forecourt.services.dispenser_service import HoseDelta, compute_hose_delta
from forecourt.services.financial_service import (
    build_financial_summary,
    build_statistics,
    empty_financial_summary,
)
from forecourt.services.history_service import append_meter_reading, append_product_sale
from forecourt.services.inventory_service import (
    DIRECTION_OUT,
    StockReservations,
    adjust_stock,
    check_tank_capacity,
    find_active_tank,
    quantity_in_product_unit,
    stock_level_warning,
)
from forecourt.services.location_service import find_location, is_consolidated_payment_mode
from forecourt.services.payment_matching import (
    SOURCE_DECLARED,
    consolidate_by_method,
    has_sentinel,
    normalize_allocations,
    resolve_hose_allocations,
    resolve_summary_allocations,
)
from forecourt.services.tank_service import (
    TankError,
    TankLevelUpdate,
    apply_level_update,
    find_location_tank,
    plan_height_reading,
    summarize_tanks,
)
from forecourt.services.units import (
    UnitError,
    VOLUME_UNITS,
    convert_quantity,
    normalize_unit,
    round2,
    to_both_units,
    within_tolerance,
)


ERROR_LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
ERROR_DUPLICATE_SHIFT = "DUPLICATE_SHIFT"
ERROR_UNEXPECTED = "UNEXPECTED"

Observer = Callable[..., None]


class ShiftClosureError(Exception):
    """Raised for whole-operation shift-closure failures."""
    pass


class DuplicateShiftError(ConflictError):
    """A closure already exists for this location and shift window."""
    pass


def _noop_observer(event: str, **fields) -> None:
    return None


# =============================================================================
# COMPUTE-PHASE STATE
# =============================================================================

@dataclass
class _PlannedProductLine:
    product: Product
    line: ComputedSaleLine
    # (payment_method_id, amount) pairs resolved during compute
    payments: list[tuple[int, float]] = field(default_factory=list)


@dataclass
class _ClosurePlan:
    request: ShiftClosureRequest
    location: Location
    consolidated_mode: bool
    reservations: StockReservations = field(default_factory=StockReservations)
    hoses: list[tuple[HoseDelta, ComputedSaleLine]] = field(default_factory=list)
    dispensers: list[DispenserSummary] = field(default_factory=list)
    tank_updates: list[TankLevelUpdate] = field(default_factory=list)
    tank_summary: TankSummary = field(default_factory=TankSummary)
    product_lines: list[_PlannedProductLine] = field(default_factory=list)
    product_summary: ProductSaleSummary = field(default_factory=ProductSaleSummary)
    financial: FinancialSummary = field(default_factory=FinancialSummary)
    statistics: SalesStatistics = field(default_factory=SalesStatistics)
    cash_entries: list[PlannedCashEntry] = field(default_factory=list)
    total_liters: float = 0.0
    total_gallons: float = 0.0
    fuel_total: float = 0.0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return STATUS_SUCCESS_WITH_ERRORS if self.errors else STATUS_SUCCESS


# =============================================================================
# PUBLIC API
# =============================================================================

def close_shift(
    request: ShiftClosureRequest,
    operator_id: int | None = None,
    observer: Observer | None = None,
) -> ShiftClosureResult:
    """
    Reconcile and persist one shift closure.

    Args:
        request: parsed closure request (see closure_schemas.parse_closure_request)
        operator_id: user closing the shift, stored on every written row
        observer: callable(event, **fields) receiving progress events

    Returns:
        ShiftClosureResult. Never raises for business or database failures;
        those become a FAILED result with a single error.
    """
    observer = observer or _noop_observer
    observer("closure.started", location_id=request.location_id,
             started_at=request.started_at, ended_at=request.ended_at)

    try:
        location = find_location(request.location_id)
        if location is None:
            observer("closure.failed", location_id=request.location_id, error_code=ERROR_LOCATION_NOT_FOUND)
            return _failed_result(
                request, f"Location {request.location_id} not found", ERROR_LOCATION_NOT_FOUND
            )

        plan = _compute(request, location, observer)

        existing = find_existing_shift(request)
        if existing is not None:
            raise DuplicateShiftError(_duplicate_message(request, existing.id))

        result = _commit(plan, operator_id)
        observer("closure.committed", location_id=location.id, shift_id=result.shift_id,
                 status=result.status, errors=len(result.errors), warnings=len(result.warnings))
        return result

    except DuplicateShiftError as exc:
        db.session.rollback()
        observer("closure.duplicate", location_id=request.location_id, error=str(exc))
        return _failed_result(request, str(exc), ERROR_DUPLICATE_SHIFT)

    except Exception as exc:
        db.session.rollback()
        observer("closure.failed", location_id=request.location_id,
                 error_code=ERROR_UNEXPECTED, error=str(exc))
        return _failed_result(request, f"Shift closure failed: {exc}", ERROR_UNEXPECTED)


def find_existing_shift(request: ShiftClosureRequest) -> ShiftRecord | None:
    shift_date, start_time, end_time = shift_key_parts(request.started_at, request.ended_at)
    return db.session.query(ShiftRecord).filter_by(
        location_id=request.location_id,
        shift_date=shift_date,
        start_time=start_time,
        end_time=end_time,
    ).first()


def get_shift_record(shift_id: int) -> ShiftRecord | None:
    return db.session.query(ShiftRecord).filter_by(id=shift_id).first()


def _duplicate_message(request: ShiftClosureRequest, shift_id: int | None = None) -> str:
    shift_date, start_time, end_time = shift_key_parts(request.started_at, request.ended_at)
    message = (
        f"A shift closure already exists for location {request.location_id} "
        f"on {shift_date.isoformat()} from {start_time} to {end_time}"
    )
    if shift_id is not None:
        message += f" (shift {shift_id})"
    return message


def _failed_result(request: ShiftClosureRequest, message: str, error_code: str) -> ShiftClosureResult:
    return ShiftClosureResult(
        status=STATUS_FAILED,
        location_id=request.location_id,
        financial=empty_financial_summary(),
        errors=[message],
        error_code=error_code,
        closed_at=utcnow(),
    )


# =============================================================================
# COMPUTE
# =============================================================================

def _compute(request: ShiftClosureRequest, location: Location, observer: Observer) -> _ClosurePlan:
    plan = _ClosurePlan(
        request=request,
        location=location,
        consolidated_mode=is_consolidated_payment_mode(location.id),
    )

    _compute_dispensers(plan, observer)
    _compute_tanks(plan, observer)
    _compute_product_sales(plan, observer)
    _compute_payments(plan)

    plan.cash_entries, cash_warnings = plan_cash_movements(
        plan.financial.buckets.get("cash", 0.0), request.cash_movements
    )
    plan.warnings.extend(cash_warnings)
    return plan


def _compute_dispensers(plan: _ClosurePlan, observer: Observer) -> None:
    request = plan.request
    for dispenser in request.dispensers:
        summary = DispenserSummary(number=dispenser.number)

        for reading in dispenser.hoses:
            delta, errors, warnings = compute_hose_delta(plan.location.id, dispenser.number, reading)
            plan.errors.extend(errors)
            plan.warnings.extend(warnings)
            if delta is None:
                observer("hose.skipped", dispenser=dispenser.number, hose=reading.number,
                         reason=errors[0] if errors else "zero delta")
                continue

            error = _check_hose_inventory(plan, delta)
            if error:
                plan.errors.append(error)
                observer("hose.skipped", dispenser=dispenser.number, hose=reading.number, reason=error)
                continue

            payments = resolve_hose_allocations(
                label=delta.label,
                product_code=delta.product.code,
                dispenser_number=dispenser.number,
                hose_number=reading.number,
                quantity=delta.quantity,
                value=delta.value,
                hose_allocations=reading.payment_allocations,
                entries=request.product_sales,
                consolidated_mode=plan.consolidated_mode,
            )
            plan.warnings.extend(payments.warnings)

            line = ComputedSaleLine(
                label=delta.label,
                product_id=delta.product.id,
                product_code=delta.product.code,
                product_name=delta.product.name,
                is_fuel=bool(delta.product.is_fuel),
                quantity=delta.quantity,
                unit=delta.unit,
                quantity_liters=delta.quantity_liters,
                quantity_gallons=delta.quantity_gallons,
                unit_price=delta.unit_price,
                price_per_gallon=delta.price_per_gallon,
                total_value=delta.value,
                allocations=payments.allocations,
                allocation_source=payments.source,
                note=reading.note,
                dispenser_number=dispenser.number,
                hose_number=reading.number,
                hose_id=delta.hose.id if delta.hose else None,
                previous_reading=reading.previous_reading,
                current_reading=reading.current_reading,
            )
            plan.hoses.append((delta, line))

            summary.hoses.append(line)
            summary.total_liters = round2(summary.total_liters + delta.quantity_liters)
            summary.total_gallons = round2(summary.total_gallons + delta.quantity_gallons)
            summary.total_value = round2(summary.total_value + delta.value)

            plan.total_liters = round2(plan.total_liters + delta.quantity_liters)
            plan.total_gallons = round2(plan.total_gallons + delta.quantity_gallons)
            plan.fuel_total = round2(plan.fuel_total + delta.value)

            observer("hose.processed", dispenser=dispenser.number, hose=reading.number,
                     product=delta.product.code, quantity=delta.quantity, unit=delta.unit,
                     value=delta.value, allocation_source=payments.source)

        plan.dispensers.append(summary)


def _check_hose_inventory(plan: _ClosurePlan, delta: HoseDelta) -> str | None:
    """Tank check for fuel, stock reservation for anything else. Returns an error or None."""
    product = delta.product
    if product.is_fuel:
        tank = find_active_tank(product.id, plan.location.id)
        if tank is None:
            return f"{delta.label}: no active tank for product {product.code} at this location"
        error = check_tank_capacity(tank, delta.quantity_liters, delta.quantity_gallons)
        return f"{delta.label}: {error}" if error else None

    try:
        quantity = quantity_in_product_unit(product, delta.quantity, delta.unit)
    except UnitError as exc:
        return f"{delta.label}: {exc}"
    if not plan.reservations.reserve(product, quantity):
        available = plan.reservations.available(product)
        return (
            f"{delta.label}: insufficient stock for product {product.code}: "
            f"available {available:.2f}, requested {quantity:.2f}"
        )
    return None


def _compute_tanks(plan: _ClosurePlan, observer: Observer) -> None:
    seen: set[int] = set()
    for reading in plan.request.tanks:
        label = f"Tank {reading.tank_id}"
        if reading.tank_id in seen:
            plan.errors.append(f"{label}: duplicate reading in the same closure was ignored")
            continue
        seen.add(reading.tank_id)

        try:
            tank = find_location_tank(reading.tank_id, plan.location.id)
            update = plan_height_reading(tank, reading.height_cm)
        except (TankError, UnitError) as exc:
            plan.errors.append(f"{label}: {exc}")
            continue

        plan.warnings.extend(update.warnings)
        plan.tank_updates.append(update)
        observer("tank.processed", tank_id=tank.id, height_cm=reading.height_cm,
                 new_level=update.new_level, occupancy_pct=update.occupancy_pct)

    plan.tank_summary = summarize_tanks(plan.tank_updates)


def _sale_lines(entry: ProductSaleEntry) -> list[tuple[str, float, float, float, list[PaymentAllocation], str | None]]:
    label = f"Product sale {entry.product_code}"
    if isinstance(entry.sale, ConsolidatedSale):
        sale = entry.sale
        return [(label, sale.quantity, sale.unit_price, sale.total_value, sale.payment_allocations, entry.note)]
    return [
        (f"{label} line {idx + 1}", line.quantity, line.unit_price, line.total_value,
         line.payment_allocations, line.note or entry.note)
        for idx, line in enumerate(entry.sale.lines)
    ]


def _resolve_payments(plan: _ClosurePlan, label: str, allocations: list[NormalizedAllocation]) -> list[tuple[int, float]]:
    payments = []
    for allocation in allocations:
        method = find_method_by_code(allocation.method)
        if method is None:
            plan.warnings.append(
                f"{label}: payment method {allocation.method} is not registered; sale history was not recorded for it"
            )
            continue
        payments.append((method.id, allocation.amount))
    return payments


def _compute_product_sales(plan: _ClosurePlan, observer: Observer) -> None:
    summary = ProductSaleSummary()
    known_entries: list[ProductSaleEntry] = []

    for entry in plan.request.product_sales:
        product = find_product_by_code(entry.product_code)
        if product is None:
            plan.errors.append(f"Product sale {entry.product_code}: product {entry.product_code} not found")
            continue
        known_entries.append(entry)

        if isinstance(entry.sale, ConsolidatedSale):
            sale = entry.sale
            if not (sale.quantity and sale.unit_price and sale.total_value):
                plan.errors.append(
                    f"Product sale {entry.product_code}: consolidated sale requires "
                    f"quantity, unit_price and total_value"
                )
                continue
        elif not entry.sale.lines:
            plan.errors.append(
                f"Product sale {entry.product_code}: itemized sale requires at least one line, "
                f"or a consolidated quantity, unit_price and total_value"
            )
            continue

        try:
            unit = normalize_unit(entry.unit or product.unit)
        except UnitError as exc:
            plan.errors.append(f"Product sale {entry.product_code}: {exc}")
            continue

        for label, quantity, unit_price, total_value, allocations, note in _sale_lines(entry):
            if quantity <= 0:
                plan.errors.append(f"{label}: quantity must be positive")
                continue

            expected = round2(quantity * unit_price)
            if not within_tolerance(expected, total_value):
                plan.warnings.append(
                    f"{label}: quantity x unit price is {expected:.2f} but total value is {total_value:.2f}"
                )

            if product.is_fuel:
                # Fuel sold through dispensers is counted by the meters; these
                # entries only declare how it was paid.
                normalized, warning = normalize_allocations(allocations, total_value, label)
                if warning:
                    plan.warnings.append(warning)
                summary.fuel_declared_total = round2(summary.fuel_declared_total + total_value)
                if plan.consolidated_mode:
                    line = _product_line(product, label, quantity, unit, unit_price, total_value, normalized, note)
                    summary.lines.append(line)
                    plan.product_lines.append(_PlannedProductLine(
                        product=product, line=line, payments=_resolve_payments(plan, label, normalized),
                    ))
                continue

            try:
                stock_quantity = convert_quantity(quantity, unit, product.unit)
            except UnitError as exc:
                plan.errors.append(f"{label}: {exc}")
                continue

            if not plan.reservations.reserve(product, stock_quantity):
                available = plan.reservations.available(product)
                plan.errors.append(
                    f"{label}: insufficient stock for product {product.code}: "
                    f"available {available:.2f}, requested {stock_quantity:.2f}"
                )
                continue

            normalized, warning = normalize_allocations(allocations, total_value, label)
            if warning:
                plan.warnings.append(warning)

            line = _product_line(product, label, quantity, unit, unit_price, total_value, normalized, note)
            summary.lines.append(line)
            summary.total_value = round2(summary.total_value + total_value)
            plan.product_lines.append(_PlannedProductLine(
                product=product, line=line, payments=_resolve_payments(plan, label, normalized),
            ))
            observer("product_sale.processed", product=product.code, quantity=quantity,
                     unit=unit, value=total_value)

    for product, _ in plan.reservations.reserved_items():
        warning = stock_level_warning(product, plan.reservations.projected_stock(product))
        if warning:
            plan.warnings.append(warning)
    summary.products_updated = len(plan.reservations.reserved_items())

    consolidated = consolidate_by_method(known_entries)
    total_consolidated = round2(sum(consolidated.values()))
    summary.payment_methods = [
        NormalizedAllocation(
            method=method,
            amount=amount,
            percentage=round2(amount / total_consolidated * 100) if total_consolidated else 0.0,
        )
        for method, amount in consolidated.items()
    ]
    plan.product_summary = summary


def _product_line(
    product: Product,
    label: str,
    quantity: float,
    unit: str,
    unit_price: float,
    total_value: float,
    allocations: list[NormalizedAllocation],
    note: str | None,
) -> ComputedSaleLine:
    liters = gallons = None
    if unit in VOLUME_UNITS:
        liters, gallons = to_both_units(quantity, unit)
    return ComputedSaleLine(
        label=label,
        product_id=product.id,
        product_code=product.code,
        product_name=product.name,
        is_fuel=bool(product.is_fuel),
        quantity=round2(quantity),
        unit=unit,
        quantity_liters=liters,
        quantity_gallons=gallons,
        unit_price=unit_price,
        total_value=round2(total_value),
        allocations=allocations,
        allocation_source=SOURCE_DECLARED if allocations else "NONE",
        note=note,
    )


def _compute_payments(plan: _ClosurePlan) -> None:
    request = plan.request
    summary_methods = request.summary.payment_methods if request.summary else []
    consolidated = {m.method: m.amount for m in plan.product_summary.payment_methods}

    if plan.consolidated_mode:
        declared_in_summary = [m for m in summary_methods if not has_sentinel([m])]
        if not consolidated and not declared_in_summary:
            plan.warnings.append(
                "Payments are declared per product at this location, but no product "
                "or summary payment declarations were provided"
            )
        fuel_declared = plan.product_summary.fuel_declared_total
        if fuel_declared and not within_tolerance(fuel_declared, plan.fuel_total):
            plan.warnings.append(
                f"Declared fuel sales {fuel_declared:.2f} do not match "
                f"dispenser sales {plan.fuel_total:.2f}"
            )

    resolved = resolve_summary_allocations(summary_methods, consolidated, plan.consolidated_mode)

    computed_total = round2(plan.fuel_total + plan.product_summary.total_value)
    plan.financial, errors, warnings = build_financial_summary(request.summary, resolved, computed_total)
    plan.errors.extend(errors)
    plan.warnings.extend(warnings)

    non_fuel_lines = sum(1 for line in plan.product_summary.lines if not line.is_fuel)
    plan.statistics, warnings = build_statistics(
        request.declared_transaction_count,
        len(plan.hoses) + non_fuel_lines,
        computed_total,
    )
    plan.warnings.extend(warnings)


# =============================================================================
# COMMIT
# =============================================================================

def _commit(plan: _ClosurePlan, operator_id: int | None) -> ShiftClosureResult:
    request = plan.request
    location = plan.location
    shift_date, start_time, end_time = shift_key_parts(request.started_at, request.ended_at)
    closed_at = utcnow()
    buckets = plan.financial.buckets

    shift = ShiftRecord(
        location_id=location.id,
        operator_id=operator_id,
        started_at=request.started_at,
        ended_at=request.ended_at,
        shift_date=shift_date,
        start_time=start_time,
        end_time=end_time,
        status=plan.status,
        total_liters=plan.total_liters,
        total_gallons=plan.total_gallons,
        computed_total=plan.financial.computed_total,
        declared_total=plan.financial.declared_total,
        variance=plan.financial.variance,
        total_cash=buckets.get("cash", 0.0),
        total_card=buckets.get("card", 0.0),
        total_transfer=buckets.get("transfer", 0.0),
        total_loyalty=buckets.get("loyalty", 0.0),
        total_vouchers=buckets.get("vouchers", 0.0),
        total_other=buckets.get("other", 0.0),
        products_updated=plan.product_summary.products_updated,
        tanks_updated=len(plan.tank_updates),
        errors=list(plan.errors),
        warnings=list(plan.warnings),
        notes=request.notes,
        closed_at=closed_at,
    )
    db.session.add(shift)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateShiftError(_duplicate_message(request))

    # Meter history and hose readings
    for delta, line in plan.hoses:
        if delta.hose is None:
            continue
        append_meter_reading(
            hose_id=delta.hose.id,
            shift_id=shift.id,
            previous_reading=delta.reading.previous_reading,
            current_reading=delta.reading.current_reading,
            quantity=delta.quantity,
            value=delta.value,
            operator_id=operator_id,
            read_at=request.ended_at,
            note=delta.reading.note,
        )
        delta.hose.previous_reading = delta.reading.previous_reading
        delta.hose.current_reading = delta.reading.current_reading

    # Stock deductions
    for product, quantity in plan.reservations.reserved_items():
        adjusted = adjust_stock(product.id, quantity, DIRECTION_OUT)
        append_audit_event(
            location_id=location.id,
            event_type="inventory.stock_deducted",
            event_category="inventory",
            entity_type="product",
            entity_id=adjusted.id,
            actor_id=operator_id,
            shift_id=shift.id,
            occurred_at=request.ended_at,
            payload={"quantity": quantity, "unit": adjusted.unit, "remaining": adjusted.current_stock},
        )

    # Tank levels
    for update in plan.tank_updates:
        tank = apply_level_update(update)
        append_audit_event(
            location_id=location.id,
            event_type="tank.level_updated",
            event_category="tank",
            entity_type="tank",
            entity_id=tank.id,
            actor_id=operator_id,
            shift_id=shift.id,
            occurred_at=request.ended_at,
            payload={
                "height_cm": update.height_cm,
                "previous_level": update.previous_level,
                "new_level": update.new_level,
                "unit": update.unit,
            },
        )

    # Product-sale history, one row per allocation
    sold_at = shift_midpoint(request.started_at, request.ended_at)
    for planned in plan.product_lines:
        for method_id, amount in planned.payments:
            append_product_sale(
                shift_id=shift.id,
                location_id=location.id,
                product_id=planned.product.id,
                payment_method_id=method_id,
                operator_id=operator_id,
                quantity=planned.line.quantity,
                unit=planned.line.unit,
                unit_price=planned.line.unit_price,
                total_value=planned.line.total_value,
                amount=amount,
                note=planned.line.label,
                sold_at=sold_at,
            )

    # Payment breakdown
    for method in plan.financial.methods:
        db.session.add(ShiftPaymentBreakdown(
            shift_id=shift.id,
            method_code=method.method,
            bucket=method.bucket,
            amount=method.amount,
            percentage=method.percentage,
        ))

    # Cash ledger
    cash_effect = apply_cash_movements(location.id, shift.id, plan.cash_entries, request.ended_at)
    if cash_effect.entries:
        append_audit_event(
            location_id=location.id,
            event_type="cash.ledger_updated",
            event_category="cash",
            entity_type="cash_ledger",
            entity_id=location.id,
            actor_id=operator_id,
            shift_id=shift.id,
            occurred_at=request.ended_at,
            payload={
                "previous_balance": cash_effect.previous_balance,
                "new_balance": cash_effect.new_balance,
                "inflows": cash_effect.total_inflows,
                "outflows": cash_effect.total_outflows,
            },
        )

    result = ShiftClosureResult(
        status=plan.status,
        location_id=location.id,
        shift_id=shift.id,
        consolidated_payment_mode=plan.consolidated_mode,
        dispensers=plan.dispensers,
        tanks=plan.tank_summary,
        product_sales=plan.product_summary,
        financial=plan.financial,
        cash_ledger=cash_effect,
        statistics=plan.statistics,
        total_liters=plan.total_liters,
        total_gallons=plan.total_gallons,
        errors=list(plan.errors),
        warnings=list(plan.warnings),
        closed_at=closed_at,
    )

    shift.payload = {
        "input": request.raw,
        "computed": result.to_dict(),
        "processing": {
            "consolidated_payment_mode": plan.consolidated_mode,
            "hoses_processed": len(plan.hoses),
            "tanks_processed": len(plan.tank_updates),
            "product_lines_processed": len(plan.product_lines),
            "operator_id": operator_id,
        },
    }

    append_audit_event(
        location_id=location.id,
        event_type="shift.closed",
        event_category="shift",
        entity_type="shift_record",
        entity_id=shift.id,
        actor_id=operator_id,
        shift_id=shift.id,
        occurred_at=request.ended_at,
        note=request.notes,
        payload={
            "status": plan.status,
            "declared_total": plan.financial.declared_total,
            "computed_total": plan.financial.computed_total,
            "variance": plan.financial.variance,
            "errors": len(plan.errors),
            "warnings": len(plan.warnings),
        },
    )

    db.session.commit()
    return result


def require_shift_record(shift_id: int) -> ShiftRecord:
    shift = get_shift_record(shift_id)
    if shift is None:
        raise ShiftClosureError(f"Shift {shift_id} not found")
    return shift


_WARNING_EVENTS = {"hose.skipped", "closure.duplicate", "closure.failed"}


def logger_observer(logger) -> Observer:
    """Observer writing closure events to a standard logger (e.g. current_app.logger)."""
    def _observe(event: str, **fields) -> None:
        level = logging.WARNING if event in _WARNING_EVENTS else logging.INFO
        details = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        logger.log(level, "%s %s", event, details)
    return _observe
