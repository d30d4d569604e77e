"""
Period bonus resolution

Thresholds are configured either per shift (SHIFT mode) or for a standard
month (MONTH mode) and are scaled to the shifts the employee actually
finished before being compared with the month-to-date metric value.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from clubpay.models.enums import BonusMode, RewardType
from clubpay.schemas.compensation import BonusStatus, ScaledThreshold
from clubpay.schemas.scheme import FlatBonus, PeriodBonus, ProgressiveBonus


def effective_standard_shifts(
    employee_override: Optional[int],
    scheme_value: Optional[int],
    default: int,
    *,
    frozen: Optional[int] = None,
) -> int:
    """Standard month length used to scale MONTH-mode targets.

    A value frozen by a payout wins over the employee's current override.
    """
    for value in (frozen, employee_override, scheme_value):
        if value and value > 0:
            return int(value)
    return default


def scale_target(value: float, mode: BonusMode, shifts: float, standard_shifts: int) -> float:
    if mode == BonusMode.SHIFT:
        return value * shifts
    return value / standard_shifts * shifts


def progress_percent(current: float, target: float, shifts_count: int) -> float:
    if target > 0:
        return current / target * 100
    return 100.0 if shifts_count > 0 else 0.0


def _display_shifts(shifts_count: int, planned_shifts: Optional[int], standard_shifts: int) -> int:
    """Attendance used to scale targets. Before the first finished shift the
    plan for the month is shown instead of an all-zero ladder."""
    if shifts_count > 0:
        return shifts_count
    return planned_shifts if planned_shifts and planned_shifts > 0 else standard_shifts


def _resolve_flat(bonus: FlatBonus, shifts_count: int, current: float, scale_shifts: int,
                  standard_shifts: int) -> dict:
    target = scale_target(bonus.target_per_shift, bonus.bonus_mode, scale_shifts, standard_shifts)
    return {
        "target_value": target,
        "is_met": shifts_count > 0 and current >= target,
        "reward_value": bonus.reward_value,
        "reward_type": bonus.reward_type,
        "thresholds": [],
    }


def _resolve_progressive(bonus: ProgressiveBonus, shifts_count: int, current: float,
                         scale_shifts: int, standard_shifts: int) -> dict:
    scaled = [
        ScaledThreshold(
            from_=scale_target(t.from_, bonus.bonus_mode, scale_shifts, standard_shifts),
            original_from=t.from_,
            percent=t.percent,
            label=t.label,
        )
        for t in bonus.thresholds
    ]

    matched = -1
    if shifts_count > 0:
        for index, threshold in enumerate(scaled):
            if current >= threshold.from_:
                matched = index

    if matched < 0:
        return {
            "target_value": scaled[0].from_,
            "is_met": False,
            "reward_value": 0.0,
            "reward_type": RewardType.PERCENT,
            "thresholds": scaled,
        }

    following = scaled[matched + 1] if matched + 1 < len(scaled) else scaled[matched]
    return {
        "target_value": following.from_,
        "is_met": True,
        "reward_value": scaled[matched].percent,
        "reward_type": RewardType.PERCENT,
        "thresholds": scaled,
    }


def resolve_bonus(
    bonus: PeriodBonus,
    *,
    shifts_count: int,
    current_value: float,
    standard_shifts: int,
    planned_shifts: Optional[int] = None,
    is_accrued: bool = False,
) -> BonusStatus:
    """Resolve one period bonus for one employee and month."""
    current = current_value if shifts_count > 0 else 0.0
    scale_shifts = _display_shifts(shifts_count, planned_shifts, standard_shifts)

    if isinstance(bonus, ProgressiveBonus):
        state = _resolve_progressive(bonus, shifts_count, current, scale_shifts, standard_shifts)
    else:
        state = _resolve_flat(bonus, shifts_count, current, scale_shifts, standard_shifts)

    return BonusStatus(
        id=bonus.id,
        name=bonus.name,
        metric_key=bonus.metric_key,
        type=bonus.type,
        bonus_mode=bonus.bonus_mode.value,
        target_per_shift=getattr(bonus, "target_per_shift", None),
        current_value=current,
        progress_percent=progress_percent(current, state["target_value"], shifts_count),
        is_accrued=is_accrued,
        **state,
    )


def resolve_bonuses(
    bonuses: Iterable[PeriodBonus],
    monthly_metrics: Mapping[str, float],
    *,
    shifts_count: int,
    standard_shifts: int,
    planned_shifts: Optional[int] = None,
    accrued_metric_keys: Iterable[str] = (),
) -> List[BonusStatus]:
    accrued = set(accrued_metric_keys)
    return [
        resolve_bonus(
            bonus,
            shifts_count=shifts_count,
            current_value=monthly_metrics.get(bonus.metric_key, 0.0),
            standard_shifts=standard_shifts,
            planned_shifts=planned_shifts,
            is_accrued=bonus.metric_key in accrued,
        )
        for bonus in bonuses
    ]
