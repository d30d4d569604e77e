import pytest

from clubpay.models.enums import BonusMode, RewardType
from clubpay.schemas.scheme import FlatBonus, ProgressiveBonus, Threshold
from clubpay.services.bonus_resolver import (
    effective_standard_shifts,
    progress_percent,
    resolve_bonus,
    resolve_bonuses,
    scale_target,
)

LADDER = ProgressiveBonus(
    metric_key="total_revenue",
    thresholds=[
        Threshold(from_=30, percent=15),
        Threshold(from_=10, percent=5),
        Threshold(from_=20, percent=10),
    ],
)


def test_thresholds_are_sorted_on_load():
    assert [t.from_ for t in LADDER.thresholds] == [10, 20, 30]


def test_highest_met_tier_pays_and_next_tier_is_the_target():
    state = resolve_bonus(LADDER, shifts_count=15, current_value=25, standard_shifts=15)

    assert state.is_met is True
    assert state.reward_value == 10
    assert state.reward_type == RewardType.PERCENT
    assert state.target_value == pytest.approx(30)
    assert state.progress_percent == pytest.approx(25 / 30 * 100)


def test_thresholds_are_prorated_by_attendance():
    state = resolve_bonus(LADDER, shifts_count=5, current_value=0, standard_shifts=15)

    assert [t.from_ for t in state.thresholds] == pytest.approx([10 / 3, 20 / 3, 10])
    assert [t.original_from for t in state.thresholds] == [10, 20, 30]
    assert state.is_met is False
    assert state.reward_value == 0
    assert state.target_value == pytest.approx(10 / 3)


def test_top_tier_keeps_its_own_target():
    state = resolve_bonus(LADDER, shifts_count=15, current_value=40, standard_shifts=15)
    assert state.reward_value == 15
    assert state.target_value == pytest.approx(30)


def test_single_threshold_ladder():
    bonus = ProgressiveBonus(thresholds=[Threshold(from_=1000, percent=3)])

    met = resolve_bonus(bonus, shifts_count=10, current_value=1200, standard_shifts=10)
    unmet = resolve_bonus(bonus, shifts_count=10, current_value=900, standard_shifts=10)

    assert met.is_met and met.target_value == pytest.approx(1000)
    assert not unmet.is_met and unmet.target_value == pytest.approx(1000)


@pytest.mark.parametrize("bonus", [LADDER, FlatBonus(target_per_shift=0, reward_value=500)])
def test_zero_attendance_is_never_met(bonus):
    state = resolve_bonus(bonus, shifts_count=0, current_value=99999, standard_shifts=15, planned_shifts=20)

    assert state.is_met is False
    assert state.current_value == 0
    assert state.progress_percent == 0


def test_zero_attendance_shows_the_planned_month():
    state = resolve_bonus(LADDER, shifts_count=0, current_value=0, standard_shifts=15, planned_shifts=30)
    assert [t.from_ for t in state.thresholds] == pytest.approx([20, 40, 60])

    state = resolve_bonus(LADDER, shifts_count=0, current_value=0, standard_shifts=15, planned_shifts=0)
    assert [t.from_ for t in state.thresholds] == pytest.approx([10, 20, 30])


def test_flat_bonus_in_shift_mode():
    bonus = FlatBonus(
        name="Bar",
        metric_key="bar_revenue",
        bonus_mode=BonusMode.SHIFT,
        target_per_shift=1000,
        reward_type=RewardType.FIXED,
        reward_value=2000,
    )

    state = resolve_bonus(bonus, shifts_count=4, current_value=4000, standard_shifts=15, is_accrued=True)

    assert state.target_value == pytest.approx(4000)
    assert state.is_met is True
    assert state.reward_type == RewardType.FIXED
    assert state.reward_value == 2000
    assert state.target_per_shift == 1000
    assert state.is_accrued is True
    assert state.thresholds == []


def test_resolve_bonuses_reads_metric_and_accrual_flags():
    flat = FlatBonus(metric_key="bar_revenue", target_per_shift=150, reward_value=100)
    states = resolve_bonuses(
        [flat, LADDER],
        {"bar_revenue": 200, "total_revenue": 5},
        shifts_count=15,
        standard_shifts=15,
        accrued_metric_keys=["bar_revenue"],
    )

    assert [s.metric_key for s in states] == ["bar_revenue", "total_revenue"]
    assert states[0].is_met and states[0].is_accrued
    assert not states[1].is_met and not states[1].is_accrued


def test_scale_target_and_progress():
    assert scale_target(300, BonusMode.MONTH, 5, 15) == pytest.approx(100)
    assert scale_target(300, BonusMode.SHIFT, 5, 15) == pytest.approx(1500)
    assert progress_percent(50, 200, 3) == pytest.approx(25)
    assert progress_percent(50, 0, 3) == 100
    assert progress_percent(0, 0, 0) == 0


def test_effective_standard_shifts():
    assert effective_standard_shifts(12, 20, 15) == 12
    assert effective_standard_shifts(None, 20, 15) == 20
    assert effective_standard_shifts(0, None, 15) == 15
    assert effective_standard_shifts(30, None, 15, frozen=10) == 10
    assert effective_standard_shifts(30, 20, 15, frozen=None) == 30
