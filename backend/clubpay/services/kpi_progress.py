"""
Employee KPI progress

Month-to-date view of each period bonus for one employee: where they stand
on the tier ladder, what is needed per remaining shift to reach or keep each
tier, and where the month ends if they keep their current average.

Unlike the salary summary, the employee's running ACTIVE shift counts here.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from clubpay.core.settings import Settings, settings as default_settings
from clubpay.models.enums import BonusMode, RewardType, ShiftStatus
from clubpay.schemas.kpi import KpiBonusProgress, KpiProgressResponse, KpiThreshold
from clubpay.schemas.scheme import PeriodBonus, ProgressiveBonus
from clubpay.services.bonus_resolver import effective_standard_shifts, scale_target
from clubpay.services.data_sources import CompensationStore
from clubpay.services.errors import RecordNotFoundError
from clubpay.services.money import money
from clubpay.services.period_aggregator import load_period_inputs
from clubpay.services.scheme_loader import load_scheme
from clubpay.services.shift_metrics import aggregate_shift_metrics, sum_shift_metrics


@dataclass(frozen=True)
class _Step:
    from_: float
    label: Optional[str]
    reward_type: RewardType
    reward_value: float


def _ladder(bonus: PeriodBonus) -> List[_Step]:
    if isinstance(bonus, ProgressiveBonus):
        return [_Step(t.from_, t.label, RewardType.PERCENT, t.percent) for t in bonus.thresholds]
    return [_Step(bonus.target_per_shift, bonus.name, bonus.reward_type, bonus.reward_value)]


def _reward(step: _Step, value: float) -> float:
    if step.reward_type == RewardType.PERCENT:
        return value * step.reward_value / 100
    return step.reward_value


def _calendar_position(month: int, year: int, today: date) -> tuple[int, int]:
    days_in_month = calendar.monthrange(year, month)[1]
    if (year, month) == (today.year, today.month):
        return days_in_month, today.day
    if (year, month) < (today.year, today.month):
        return days_in_month, days_in_month
    return days_in_month, 0


def bonus_progress(
    bonus: PeriodBonus,
    *,
    current_value: float,
    closed_value: float,
    active_value: float,
    completed_shifts: int,
    total_shifts: int,
    planned_shifts: int,
    standard_shifts: int,
    remaining_shifts: int,
    opportunities: int,
) -> KpiBonusProgress:
    mode = bonus.bonus_mode
    avg_per_shift = closed_value / completed_shifts if completed_shifts else 0.0

    thresholds: List[KpiThreshold] = []
    for level, step in enumerate(_ladder(bonus), start=1):
        scaled = scale_target(step.from_, mode, total_shifts, standard_shifts)
        planned_target = scale_target(step.from_, mode, planned_shifts, standard_shifts)
        remaining_total = max(0.0, planned_target - current_value)
        thresholds.append(
            KpiThreshold(
                level=level,
                label=step.label,
                monthly_threshold=step.from_,
                planned_month_threshold=planned_target,
                scaled_threshold=scaled,
                percent=step.reward_value if step.reward_type == RewardType.PERCENT else 0.0,
                reward_type=step.reward_type,
                reward_value=step.reward_value,
                is_met=total_shifts > 0 and current_value >= scaled,
                remaining_total=remaining_total,
                per_shift_to_reach=remaining_total / opportunities if opportunities else 0.0,
                per_shift_to_stay=planned_target / planned_shifts if planned_shifts else 0.0,
                potential_bonus=money(_reward(step, planned_target)),
            )
        )

    ladder = _ladder(bonus)
    current_level = 0
    for index in range(len(thresholds) - 1, -1, -1):
        if thresholds[index].is_met:
            current_level = index + 1
            break

    bonus_amount = 0.0
    current_reward = 0.0
    if current_level:
        step = ladder[current_level - 1]
        current_reward = step.reward_value
        bonus_amount = _reward(step, current_value)

    projected_total = current_value + avg_per_shift * remaining_shifts
    projected_level = 0
    projected_bonus = 0.0
    for index in range(len(ladder) - 1, -1, -1):
        step = ladder[index]
        month_target = step.from_ * planned_shifts if mode == BonusMode.SHIFT else step.from_
        if projected_total >= month_target:
            projected_level = index + 1
            projected_bonus = _reward(step, projected_total)
            break

    return KpiBonusProgress(
        id=bonus.id,
        name=bonus.name,
        metric_key=bonus.metric_key,
        type=bonus.type,
        bonus_mode=mode.value,
        current_value=current_value,
        current_shift_value=active_value,
        avg_per_shift=avg_per_shift,
        current_level=current_level,
        current_reward=current_reward,
        is_met=current_level > 0,
        bonus_amount=money(bonus_amount),
        all_thresholds=thresholds,
        projected_total=projected_total,
        projected_level=projected_level,
        projected_bonus=money(projected_bonus),
        remaining_shifts=remaining_shifts,
    )


async def build_kpi_progress(
    store: CompensationStore,
    club_id: int,
    employee_id: int,
    month: int,
    year: int,
    *,
    today: Optional[date] = None,
    config: Settings = default_settings,
) -> KpiProgressResponse:
    today = today or date.today()
    inputs = await load_period_inputs(store, club_id, month, year, employee_ids=[employee_id])
    employee = next((e for e in inputs.employees if e.id == employee_id), None)
    if employee is None:
        raise RecordNotFoundError(f"employee {employee_id} is not an active member of club {club_id}")

    days_in_month, current_day = _calendar_position(month, year, today)
    response = KpiProgressResponse(
        employee_id=employee_id,
        month=month,
        year=year,
        days_in_month=days_in_month,
        current_day=current_day,
        days_remaining=days_in_month - current_day,
    )
    if employee.formula is None:
        response.message = "no salary scheme assigned"
        return response

    scheme, _ = load_scheme(
        employee.formula,
        scheme_id=employee.scheme_id,
        version_id=employee.scheme_version_id,
        version=employee.scheme_version,
    )
    standard = effective_standard_shifts(
        employee.standard_monthly_shifts,
        scheme.standard_monthly_shifts,
        config.default_standard_monthly_shifts,
    )
    planned = inputs.planned.get(employee_id)
    if planned is None:
        planned = config.default_planned_shifts

    shifts = [s for s in inputs.shifts.get(employee_id, []) if not s.is_period_bonus_accrual]
    closed = [s for s in shifts if s.status != ShiftStatus.ACTIVE]
    running = sorted(
        (s for s in shifts if s.status == ShiftStatus.ACTIVE),
        key=lambda s: s.check_in,
        reverse=True,
    )
    active = running[0] if running else None

    closed_metrics = sum_shift_metrics([aggregate_shift_metrics(s, inputs.context) for s in closed])
    active_metrics = aggregate_shift_metrics(active, inputs.context).values if active else {}

    completed = len(closed)
    total = completed + (1 if active else 0)
    remaining = max(0, planned - total)
    opportunities = remaining + (1 if active else 0)

    kpi = []
    for bonus in scheme.period_bonuses:
        closed_value = closed_metrics.get(bonus.metric_key, 0.0)
        active_value = active_metrics.get(bonus.metric_key, 0.0)
        kpi.append(
            bonus_progress(
                bonus,
                current_value=closed_value + active_value,
                closed_value=closed_value,
                active_value=active_value,
                completed_shifts=completed,
                total_shifts=total,
                planned_shifts=planned,
                standard_shifts=standard,
                remaining_shifts=remaining,
                opportunities=opportunities,
            )
        )

    response.kpi = kpi
    response.total_kpi_bonus = money(sum(item.bonus_amount for item in kpi))
    response.total_projected_bonus = money(sum(item.projected_bonus for item in kpi))
    response.shifts_count = total
    response.planned_shifts = planned
    response.remaining_shifts = remaining
    return response
