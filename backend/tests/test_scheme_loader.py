import pytest
from pydantic import ValidationError

from clubpay.models.enums import BaseRateType, BonusMode, RewardType, ShiftBonusType
from clubpay.schemas.scheme import FlatBonus, ProgressiveBonus
from clubpay.services.scheme_loader import (
    load_scheme,
    normalize_period_bonus,
    scheme_from_snapshot,
    validate_formula,
)


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "TARGET", "target_per_shift": 1000},
        {"target_per_shift": 1000},
        {"type": "progressive", "target_per_shift": 1000, "thresholds": []},
    ],
)
def test_legacy_period_bonus_shapes_become_flat(raw):
    assert normalize_period_bonus(raw)["type"] == "FLAT"


def test_load_scheme_normalises_legacy_formula():
    scheme, warnings = load_scheme(
        {
            "type": "PER_SHIFT",
            "amount": "2500",
            "bonuses": [{"type": "FIXED", "amount": 300}],
            "period_bonuses": [
                {"type": "target", "metric_key": "", "target_per_shift": 4000,
                 "reward_type": "percent", "reward_value": 3, "bonus_mode": "shift"},
                {"type": "progressive", "thresholds": [{"from": 20000, "percent": 5}, {"from": 10000, "percent": 2}]},
            ],
            "standard_monthly_shifts": "12",
        },
        scheme_id=1,
        version_id=11,
        version=2,
    )

    assert warnings == []
    assert scheme.base.type == BaseRateType.PER_SHIFT
    assert scheme.base.amount == 2500
    assert scheme.bonuses[0].type == ShiftBonusType.FIXED
    flat, progressive = scheme.period_bonuses
    assert isinstance(flat, FlatBonus)
    assert flat.metric_key == "total_revenue"
    assert flat.bonus_mode == BonusMode.SHIFT
    assert flat.reward_type == RewardType.PERCENT
    assert isinstance(progressive, ProgressiveBonus)
    assert [t.from_ for t in progressive.thresholds] == [10000, 20000]
    assert scheme.standard_monthly_shifts == 12
    assert scheme.version == 2


def test_invalid_parts_are_dropped_with_warnings():
    scheme, warnings = load_scheme(
        {
            "base": {"type": "monthly"},
            "bonuses": [{"type": "mystery"}, {"type": "penalty", "amount": 100}],
            "period_bonuses": [
                {"name": "Broken", "type": "PROGRESSIVE", "thresholds": [{"from": "a lot", "percent": 2}]},
                {"name": "Ok", "type": "FLAT", "target_per_shift": 1000, "reward_value": 500},
            ],
            "standard_monthly_shifts": -3,
        },
        version_id=5,
    )

    assert scheme.base.type == BaseRateType.HOURLY
    assert scheme.base.amount == 0
    assert [b.type for b in scheme.bonuses] == [ShiftBonusType.PENALTY]
    assert [b.name for b in scheme.period_bonuses] == ["Ok"]
    assert scheme.standard_monthly_shifts is None
    assert len(warnings) == 3
    assert "period bonus 'Broken' skipped" in warnings[2]


def test_empty_formula_loads_defaults():
    scheme, warnings = load_scheme(None)
    assert scheme.base.type == BaseRateType.HOURLY
    assert scheme.bonuses == []
    assert scheme.period_bonuses == []
    assert warnings == []


def test_validate_formula_is_strict():
    with pytest.raises(ValidationError):
        validate_formula({"period_bonuses": [{"type": "PROGRESSIVE", "thresholds": [{"from": "x"}]}]})
    with pytest.raises(ValidationError):
        validate_formula({"base": {"type": "hourly", "amount": "ten"}})

    scheme = validate_formula({"base": {"type": "hourly", "amount": 150}})
    assert scheme.base.amount == 150


def test_scheme_from_snapshot():
    snapshot = {
        "paid_at": "2026-03-31T20:00:00+00:00",
        "scheme_version_id": 7,
        "period_bonuses": [{"type": "FLAT", "target_per_shift": 1000, "reward_value": 100}],
        "standard_monthly_shifts": 10,
    }

    scheme = scheme_from_snapshot(snapshot)

    assert scheme.version_id == 7
    assert scheme.standard_monthly_shifts == 10
    assert scheme.period_bonuses[0].target_per_shift == 1000
    assert scheme_from_snapshot({"paid_at": "2026-03-31T20:00:00+00:00"}) is None
