"""
Period aggregation

Builds the monthly compensation summary of every active employee of a club:
loads club-level inputs once, then evaluates employees concurrently (bounded
by ``summary_max_concurrency``) under a single request deadline. Either every
employee is evaluated or the request fails; partial summaries are never
returned.
"""

from __future__ import annotations

import calendar
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

import anyio

from clubpay.core.observability import summary_duration_seconds
from clubpay.core.settings import Settings, settings as default_settings
from clubpay.models.enums import SalaryLineType, ShiftStatus
from clubpay.schemas.compensation import (
    BonusStatus,
    EmployeeRecord,
    EmployeeSummary,
    EvaluationScore,
    MetricTotal,
    PaymentHistoryItem,
    PaymentRecord,
    ShiftLine,
    ShiftPayResult,
    ShiftRecord,
    SummaryBreakdown,
    SummaryMetrics,
)
from clubpay.schemas.scheme import CompensationScheme
from clubpay.services.bonus_resolver import effective_standard_shifts, resolve_bonuses
from clubpay.services.data_sources import CompensationStore
from clubpay.services.errors import DataSourceError, SchemeConfigurationError
from clubpay.services.metric_classifier import ClassificationContext, classify_metrics
from clubpay.services.money import money, parse_money
from clubpay.services.scheme_loader import load_scheme, scheme_from_snapshot
from clubpay.services.shift_evaluator import evaluate_shift
from clubpay.services.shift_metrics import ShiftMetrics, aggregate_shift_metrics, sum_shift_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

KPI_LINE_TYPE = "PERIOD_BONUS_CONTRIBUTION"


def month_window(month: int, year: int) -> Tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


@dataclass
class PeriodInputs:
    context: ClassificationContext
    employees: List[EmployeeRecord]
    shifts: Dict[int, List[ShiftRecord]]
    planned: Dict[int, int]
    payments: Dict[int, List[PaymentRecord]]
    warnings: List[str] = field(default_factory=list)


@dataclass
class EmployeePeriod:
    """Everything computed for one employee and month."""

    employee: EmployeeRecord
    summary: EmployeeSummary
    scheme: CompensationScheme
    resolution_scheme: CompensationScheme
    standard_shifts: int
    bonus_states: List[BonusStatus]
    shifts: List[ShiftRecord]
    pay_results: Dict[int, ShiftPayResult]

    @property
    def is_empty(self) -> bool:
        return (
            self.summary.shifts_count == 0
            and self.summary.total_accrued == 0
            and self.summary.total_paid == 0
        )

    def snapshot_payload(self) -> Dict[str, Any]:
        """Scheme state frozen into a shift when it is paid."""
        return {
            "scheme_id": self.employee.scheme_id,
            "scheme_version_id": self.employee.scheme_version_id,
            "scheme_version": self.employee.scheme_version,
            "period_bonuses": [
                bonus.model_dump(mode="json", by_alias=True)
                for bonus in self.resolution_scheme.period_bonuses
            ],
            "standard_monthly_shifts": self.standard_shifts,
            "bonuses_status": [
                state.model_dump(mode="json", by_alias=True) for state in self.bonus_states
            ],
        }


# ============ PER EMPLOYEE ============

def _snapshot_scheme(shifts: Iterable[ShiftRecord]) -> Optional[CompensationScheme]:
    paid = [s for s in shifts if s.is_paid and (s.salary_snapshot or {}).get("period_bonuses")]
    if not paid:
        return None
    latest = max(paid, key=lambda s: (str(s.salary_snapshot.get("paid_at")), s.id))
    return scheme_from_snapshot(latest.salary_snapshot)


def _bonus_amounts(breakdown: Mapping[str, Any]) -> Tuple[List[Dict[str, Any]], float, float]:
    bonuses = [b for b in breakdown.get("bonuses") or [] if isinstance(b, Mapping)]
    total = sum(parse_money(b.get("amount")).amount for b in bonuses)
    kpi = sum(parse_money(b.get("amount")).amount for b in bonuses if b.get("type") == KPI_LINE_TYPE)
    return [dict(b) for b in bonuses], total, kpi


def _shift_line(shift: ShiftRecord, result: ShiftPayResult, metrics: Optional[ShiftMetrics]) -> ShiftLine:
    bonuses, bonus_total, kpi = _bonus_amounts(result.breakdown)
    line_type = SalaryLineType.REGULAR
    if shift.is_period_bonus_accrual:
        line_type = SalaryLineType.PERIOD_BONUS
        bonus_total = kpi = result.calculated_salary
    return ShiftLine(
        id=shift.id,
        date=shift.check_in,
        total_hours=metrics.total_hours if metrics else 0.0,
        total_revenue=metrics.total_revenue if metrics else 0.0,
        calculated_salary=result.calculated_salary,
        kpi_bonus=money(kpi),
        bonus_total=money(bonus_total),
        status=shift.status.value,
        is_paid=shift.is_paid or shift.status == ShiftStatus.PAID,
        type=line_type,
        metrics=metrics.report if metrics else {},
        bonuses=bonuses,
    )


def _in_progress_line(shift: ShiftRecord) -> ShiftLine:
    """Open shift listed for visibility; it earns nothing until it is closed."""
    return ShiftLine(id=shift.id, date=shift.check_in, status=shift.status.value)


def _maintenance_line(employee_id: int, month: int, year: int, amount: float, date: datetime) -> ShiftLine:
    amount = money(amount)
    return ShiftLine(
        id=f"maintenance-{employee_id}-{year}-{month:02d}",
        date=date,
        calculated_salary=amount,
        bonus_total=amount,
        status="ACCRUED",
        type=SalaryLineType.MAINTENANCE_BONUS,
        bonuses=[{
            "name": "Equipment maintenance",
            "type": "EQUIPMENT_MAINTENANCE",
            "amount": amount,
            "source_key": "maintenance_bonus",
        }],
    )


def _summary_breakdown(lines: List[ShiftLine], total_accrued: float) -> SummaryBreakdown:
    shift_bonuses = kpi_bonuses = accrued = maintenance = 0.0
    for line in lines:
        if line.type == SalaryLineType.REGULAR:
            shift_bonuses += line.bonus_total - line.kpi_bonus
            kpi_bonuses += line.kpi_bonus
        elif line.type == SalaryLineType.PERIOD_BONUS:
            accrued += line.calculated_salary
        else:
            maintenance += line.calculated_salary
    shift_bonuses, kpi_bonuses = money(shift_bonuses), money(kpi_bonuses)
    accrued, maintenance = money(accrued), money(maintenance)
    # base absorbs per-line rounding so the components add up to the total
    base = money(total_accrued - shift_bonuses - kpi_bonuses - accrued - maintenance)
    return SummaryBreakdown(
        base_salary=base,
        shift_bonuses=shift_bonuses,
        kpi_bonuses=kpi_bonuses,
        accrued_period_bonuses=accrued,
        maintenance_bonus=maintenance,
    )


def _per_shift(total: float, shifts_count: int) -> float:
    return total / shifts_count if shifts_count else 0.0


def compute_employee_period(
    employee: EmployeeRecord,
    shifts: List[ShiftRecord],
    payments: List[PaymentRecord],
    context: ClassificationContext,
    *,
    month: int,
    year: int,
    planned_shifts: Optional[int] = None,
    evaluation: Optional[EvaluationScore] = None,
    maintenance_bonus: float = 0.0,
    warnings: Iterable[str] = (),
    config: Settings = default_settings,
) -> EmployeePeriod:
    """Evaluate one employee's month. Pure: all inputs are already loaded."""
    evaluation = evaluation or EvaluationScore()
    data_warnings = list(warnings)

    if employee.formula is None:
        logger.warning("employee has no salary scheme", extra={"employee_id": employee.id})
        data_warnings.append("no salary scheme assigned")
    scheme, scheme_warnings = load_scheme(
        employee.formula,
        scheme_id=employee.scheme_id,
        version_id=employee.scheme_version_id,
        version=employee.scheme_version,
    )
    data_warnings.extend(scheme_warnings)

    working = [s for s in shifts if not s.is_period_bonus_accrual]
    accruals = [s for s in shifts if s.is_period_bonus_accrual]
    finished = [s for s in working if s.status != ShiftStatus.ACTIVE]
    shifts_count = len(finished)

    injected = {"evaluation_score": evaluation.average, "evaluation_count": float(evaluation.count)}
    metrics = {s.id: aggregate_shift_metrics(s, context, injected) for s in finished}
    for item in metrics.values():
        data_warnings.extend(item.warnings)

    monthly = sum_shift_metrics(list(metrics.values()))
    monthly.update(injected)
    monthly["maintenance_bonus"] = maintenance_bonus

    frozen_scheme = _snapshot_scheme(finished)
    resolution_scheme = frozen_scheme or scheme
    standard = effective_standard_shifts(
        employee.standard_monthly_shifts,
        resolution_scheme.standard_monthly_shifts,
        config.default_standard_monthly_shifts,
        frozen=frozen_scheme.standard_monthly_shifts if frozen_scheme else None,
    )
    planned = planned_shifts if planned_shifts is not None else config.default_planned_shifts
    accrued_keys = {(s.salary_snapshot or {}).get("metric_key") for s in accruals} - {None}

    bonus_states = resolve_bonuses(
        resolution_scheme.period_bonuses,
        monthly,
        shifts_count=shifts_count,
        standard_shifts=standard,
        planned_shifts=planned,
        accrued_metric_keys=accrued_keys,
    )

    pay_results: Dict[int, ShiftPayResult] = {}
    lines: List[ShiftLine] = []
    for shift in finished + accruals:
        result = evaluate_shift(
            shift,
            scheme,
            context,
            bonus_states=bonus_states,
            metrics=metrics.get(shift.id),
            default_full_shift_hours=config.default_full_shift_hours,
        )
        pay_results[shift.id] = result
        lines.append(_shift_line(shift, result, metrics.get(shift.id)))
    lines.extend(_in_progress_line(s) for s in working if s.status == ShiftStatus.ACTIVE)

    if maintenance_bonus > 0:
        lines.append(
            _maintenance_line(employee.id, month, year, maintenance_bonus, month_window(month, year)[1])
        )
    lines.sort(key=lambda line: (line.date, str(line.id)), reverse=True)

    total_accrued = money(sum(line.calculated_salary for line in lines))
    total_paid = money(sum(parse_money(p.amount).amount for p in payments))
    breakdown = _summary_breakdown(lines, total_accrued)

    total_revenue = monthly.get("total_revenue", 0.0)
    total_hours = monthly.get("total_hours", 0.0)
    revenue_by_metric = {
        key: MetricTotal(total=monthly.get(key, 0.0), avg_per_shift=_per_shift(monthly.get(key, 0.0), shifts_count))
        for key in dict.fromkeys(b.metric_key for b in resolution_scheme.period_bonuses)
    }

    history = sorted(payments, key=lambda p: (p.created_at, p.id), reverse=True)
    history = history[: config.payment_history_limit]

    summary = EmployeeSummary(
        id=employee.id,
        full_name=employee.full_name,
        role=employee.role,
        scheme_version_id=employee.scheme_version_id,
        shifts_count=shifts_count,
        planned_shifts=planned,
        total_accrued=total_accrued,
        total_paid=total_paid,
        balance=money(total_accrued - total_paid),
        period_bonuses=bonus_states,
        kpi_bonus_amount=breakdown.kpi_bonuses,
        maintenance_bonus=money(maintenance_bonus),
        breakdown=breakdown,
        metrics=SummaryMetrics(
            total_revenue=total_revenue,
            avg_revenue_per_shift=_per_shift(total_revenue, shifts_count),
            total_hours=total_hours,
            avg_hours_per_shift=_per_shift(total_hours, shifts_count),
            evaluation_score=evaluation.average,
            evaluation_count=evaluation.count,
            revenue_by_metric=revenue_by_metric,
        ),
        payment_history=[
            PaymentHistoryItem(
                id=p.id,
                date=p.created_at,
                amount=parse_money(p.amount).amount,
                method=p.payment_method,
                payment_type=p.payment_type or "salary",
            )
            for p in history
        ],
        shifts=lines,
        metric_categories=context.categories,
        metric_metadata=dict(context.metadata),
        data_warnings=data_warnings,
    )

    return EmployeePeriod(
        employee=employee,
        summary=summary,
        scheme=scheme,
        resolution_scheme=resolution_scheme,
        standard_shifts=standard,
        bonus_states=bonus_states,
        shifts=shifts,
        pay_results=pay_results,
    )


# ============ CLUB LEVEL ============

def _first_error(group: BaseExceptionGroup) -> BaseException:
    exc: BaseException = group
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return exc


async def _degraded(call: Awaitable[T], default: T, source: str, employee_id: int,
                    warnings: List[str]) -> T:
    try:
        return await call
    except DataSourceError:
        logger.warning(
            "%s unavailable, using default", source, extra={"employee_id": employee_id}
        )
        warnings.append(f"{source} unavailable")
        return default


async def load_period_inputs(
    store: CompensationStore,
    club_id: int,
    month: int,
    year: int,
    employee_ids: Optional[Iterable[int]] = None,
) -> PeriodInputs:
    start, end = month_window(month, year)
    ids = list(employee_ids) if employee_ids is not None else None
    loaded: Dict[str, Any] = {}

    async def fetch(name: str, query: Callable[..., Awaitable[Any]], *args: Any) -> None:
        loaded[name] = await query(*args)

    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(fetch, "schema", store.get_report_schema, club_id)
            tg.start_soon(fetch, "registry", store.get_metric_registry)
            tg.start_soon(fetch, "employees", store.list_employees, club_id, ids)
            tg.start_soon(fetch, "shifts", store.list_shifts, club_id, start, end, ids)
            tg.start_soon(fetch, "planned", store.get_planned_shifts, club_id, month, year)
            tg.start_soon(fetch, "payments", store.list_payments, club_id, month, year)
    except BaseExceptionGroup as group:
        raise _first_error(group) from None

    warnings: List[str] = []
    if loaded["schema"] is None:
        logger.warning("club has no active report template", extra={"club_id": club_id})
        warnings.append("no active report template, metric categories guessed from keys")

    shifts: Dict[int, List[ShiftRecord]] = {}
    for shift in loaded["shifts"]:
        shifts.setdefault(shift.employee_id, []).append(shift)
    payments: Dict[int, List[PaymentRecord]] = {}
    for payment in loaded["payments"]:
        payments.setdefault(payment.employee_id, []).append(payment)

    return PeriodInputs(
        context=classify_metrics(loaded["schema"], loaded["registry"]),
        employees=loaded["employees"],
        shifts=shifts,
        planned=loaded["planned"],
        payments=payments,
        warnings=warnings,
    )


async def build_employee_periods(
    store: CompensationStore,
    club_id: int,
    month: int,
    year: int,
    *,
    employee_ids: Optional[Iterable[int]] = None,
    config: Settings = default_settings,
) -> List[EmployeePeriod]:
    """Evaluate every active employee of the club for one month.

    Raises DataSourceError when a required source fails, TimeoutError when
    the request deadline passes and SchemeConfigurationError when none of the
    employees has a scheme.
    """
    start, end = month_window(month, year)

    with anyio.fail_after(config.summary_timeout_seconds):
        inputs = await load_period_inputs(store, club_id, month, year, employee_ids)

        if inputs.employees and all(e.formula is None for e in inputs.employees):
            raise SchemeConfigurationError(f"no salary scheme assigned in club {club_id}")

        limiter = anyio.CapacityLimiter(config.summary_max_concurrency)
        periods: Dict[int, EmployeePeriod] = {}

        async def evaluate(employee: EmployeeRecord) -> None:
            warnings = list(inputs.warnings)
            async with limiter:
                evaluation = await _degraded(
                    store.get_evaluation_score(club_id, employee.id, start, end),
                    EvaluationScore(), "evaluation score", employee.id, warnings,
                )
                maintenance = await _degraded(
                    store.get_maintenance_bonus(club_id, employee.id, month, year, start, end),
                    0.0, "maintenance bonus", employee.id, warnings,
                )
            periods[employee.id] = compute_employee_period(
                employee,
                inputs.shifts.get(employee.id, []),
                inputs.payments.get(employee.id, []),
                inputs.context,
                month=month,
                year=year,
                planned_shifts=inputs.planned.get(employee.id),
                evaluation=evaluation,
                maintenance_bonus=maintenance,
                warnings=warnings,
                config=config,
            )

        try:
            async with anyio.create_task_group() as tg:
                for employee in inputs.employees:
                    tg.start_soon(evaluate, employee)
        except BaseExceptionGroup as group:
            raise _first_error(group) from None

    return [periods[e.id] for e in inputs.employees]


async def build_period_summary(
    store: CompensationStore,
    club_id: int,
    month: int,
    year: int,
    *,
    config: Settings = default_settings,
) -> List[EmployeeSummary]:
    started = time.perf_counter()
    try:
        periods = await build_employee_periods(store, club_id, month, year, config=config)
    finally:
        summary_duration_seconds.observe(time.perf_counter() - started)

    summaries = [p.summary for p in periods if not p.is_empty]
    logger.info(
        "period summary built",
        extra={"club_id": club_id, "month": month, "year": year, "employee_count": len(summaries)},
    )
    return summaries
