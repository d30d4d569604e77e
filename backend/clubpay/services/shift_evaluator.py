from __future__ import annotations

from typing import Iterable, Mapping, Optional

from clubpay.core.observability import snapshot_short_circuits_total
from clubpay.schemas.compensation import BonusStatus, ShiftPayResult, ShiftRecord
from clubpay.schemas.scheme import CompensationScheme
from clubpay.services.metric_classifier import ClassificationContext
from clubpay.services.money import parse_money
from clubpay.services.salary_calculator import calculate_salary
from clubpay.services.shift_metrics import ShiftMetrics, aggregate_shift_metrics


def evaluate_shift(
    shift: ShiftRecord,
    scheme: Optional[CompensationScheme],
    context: ClassificationContext,
    *,
    bonus_states: Iterable[BonusStatus] = (),
    extra_metrics: Optional[Mapping[str, float]] = None,
    metrics: Optional[ShiftMetrics] = None,
    default_full_shift_hours: Optional[float] = None,
) -> ShiftPayResult:
    """Salary of one shift.

    Paid shifts and period bonus accruals are frozen: their stored salary and
    breakdown are returned as they are, whatever the current scheme says.
    """
    if shift.is_frozen:
        snapshot_short_circuits_total.inc()
        return ShiftPayResult(
            shift_id=shift.id,
            calculated_salary=parse_money(shift.calculated_salary).amount,
            breakdown=shift.salary_breakdown or {},
            from_snapshot=True,
        )

    if metrics is None:
        metrics = aggregate_shift_metrics(shift, context, extra_metrics)

    calculation = calculate_salary(
        scheme or CompensationScheme(),
        metrics.values,
        bonus_states=bonus_states,
        evaluations=shift.evaluations,
        default_full_shift_hours=default_full_shift_hours,
    )
    return ShiftPayResult(
        shift_id=shift.id,
        calculated_salary=calculation.total,
        breakdown=calculation.breakdown,
        data_warnings=metrics.warnings,
    )
