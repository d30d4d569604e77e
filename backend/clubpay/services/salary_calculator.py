from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from clubpay.core.settings import settings
from clubpay.models.enums import BaseRateType, BonusMode, RewardType, ShiftBonusType
from clubpay.schemas.compensation import BonusStatus, SalaryCalculation, ShiftEvaluationRecord
from clubpay.schemas.scheme import CompensationScheme, ShiftBonus
from clubpay.services.money import money, parse_money

SOURCE_METRICS = {
    "total": "total_revenue",
    "cash": "revenue_cash",
    "card": "revenue_card",
}


def source_metric(source: str) -> str:
    return SOURCE_METRICS.get(source, source)


def base_amount(scheme: CompensationScheme, metrics: Mapping[str, float],
                default_full_shift_hours: float) -> float:
    base = scheme.base
    hours = metrics.get("total_hours", 0.0)
    if base.type == BaseRateType.HOURLY:
        return base.amount * hours
    if base.type in (BaseRateType.FIXED, BaseRateType.PER_SHIFT):
        full_shift = base.full_shift_hours or default_full_shift_hours
        if hours >= full_shift:
            return base.amount
        return base.amount / full_shift * hours
    if base.type == BaseRateType.PERCENT_REVENUE:
        return metrics.get("total_revenue", 0.0) * base.percent / 100
    return 0.0


def _shift_bonus_amount(bonus: ShiftBonus, value: float) -> float:
    if bonus.type == ShiftBonusType.FIXED:
        return bonus.amount
    if bonus.type == ShiftBonusType.PERCENT_REVENUE:
        return value * bonus.percent / 100
    if bonus.type == ShiftBonusType.TIERED:
        for tier in bonus.tiers:
            if tier.from_ <= value <= tier.to:
                return tier.reward
        return 0.0
    if bonus.type == ShiftBonusType.PROGRESSIVE_PERCENT:
        for threshold in sorted(bonus.thresholds, key=lambda t: t.from_, reverse=True):
            if value >= threshold.from_:
                return value * threshold.percent / 100
        return 0.0
    if bonus.type == ShiftBonusType.PENALTY:
        return -bonus.amount
    return 0.0


def _checklist_line(bonus: ShiftBonus, evaluations: Iterable[ShiftEvaluationRecord]) -> Optional[Dict[str, Any]]:
    if bonus.mode == BonusMode.MONTH or bonus.checklist_template_id is None:
        return None
    for evaluation in evaluations:
        if evaluation.template_id != bonus.checklist_template_id:
            continue
        score = parse_money(evaluation.score_percent).amount
        if score < bonus.min_score:
            return None
        return {
            "name": bonus.name or "Checklist bonus",
            "type": "CHECKLIST_BONUS",
            "amount": money(bonus.amount),
            "source_key": "checklist_score",
            "source_value": score,
            "template_id": bonus.checklist_template_id,
        }
    return None


def calculate_salary(
    scheme: CompensationScheme,
    metrics: Mapping[str, float],
    *,
    bonus_states: Iterable[BonusStatus] = (),
    evaluations: Iterable[ShiftEvaluationRecord] = (),
    default_full_shift_hours: Optional[float] = None,
) -> SalaryCalculation:
    """Pay for one unpaid shift.

    ``metrics`` is the parsed metric map of the shift. ``bonus_states`` are
    the period bonuses already resolved for the employee's month; met
    PERCENT bonuses contribute their share of this shift's metric value.
    FIXED period rewards are never split across shifts.
    """
    full_shift = default_full_shift_hours or settings.default_full_shift_hours
    evaluations = list(evaluations)

    base = money(base_amount(scheme, metrics, full_shift))
    lines: List[Dict[str, Any]] = []

    for bonus in scheme.bonuses:
        if bonus.type == ShiftBonusType.CHECKLIST:
            line = _checklist_line(bonus, evaluations)
            if line is not None:
                lines.append(line)
            continue
        key = source_metric(bonus.source)
        value = metrics.get(key, 0.0)
        amount = _shift_bonus_amount(bonus, value)
        lines.append({
            "name": bonus.name or bonus.type.value,
            "type": "SHIFT_PENALTY" if bonus.type == ShiftBonusType.PENALTY else "SHIFT_BONUS",
            "amount": money(amount),
            "source_key": bonus.source,
            "source_value": value,
        })

    for state in bonus_states:
        if not state.is_met or state.reward_type != RewardType.PERCENT:
            continue
        value = metrics.get(state.metric_key, 0.0)
        amount = value * state.reward_value / 100
        if amount <= 0:
            continue
        lines.append({
            "name": state.name or "KPI",
            "type": "PERIOD_BONUS_CONTRIBUTION",
            "amount": money(amount),
            "source_key": state.metric_key,
            "source_value": value,
            "reward_value": state.reward_value,
            "reward_type": state.reward_type.value,
        })

    total = money(base + sum(line["amount"] for line in lines))
    return SalaryCalculation(
        total=total,
        breakdown={"base": base, "bonuses": lines, "total": total},
    )
