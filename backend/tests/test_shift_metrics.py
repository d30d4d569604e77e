import pytest
from prometheus_client import REGISTRY

from clubpay.services.metric_classifier import classify_metrics
from clubpay.services.shift_metrics import (
    aggregate_shift_metrics,
    decode_report_data,
    merge_shift_columns,
    sum_shift_metrics,
)

from fakes import make_shift

FIELDS = [
    {"key": "bar_revenue", "field_type": "INCOME"},
    {"key": "expenses", "field_type": "EXPENSE"},
    {"key": "guests"},
    {"key": "shift_comment"},
]


def _parse_failures() -> float:
    return REGISTRY.get_sample_value("clubpay_metric_parse_failures_total", {"source": "shift"}) or 0.0


def test_total_revenue_sums_income_only():
    context = classify_metrics(FIELDS, {})
    shift = make_shift(
        1,
        cash_income=1000,
        card_income="2 000",
        report_data={"bar_revenue": 500, "expenses": 300, "guests": 12, "shift_comment": "all good"},
    )

    metrics = aggregate_shift_metrics(shift, context)

    assert metrics.total_revenue == pytest.approx(3500)
    assert metrics.values["revenue_cash"] == 1000
    assert metrics.values["revenue_card"] == 2000
    assert metrics.values["guests"] == 12
    assert metrics.total_hours == 12
    assert "shift_comment" not in metrics.values
    assert metrics.invalid_keys == []


def test_recategorised_income_column_is_not_revenue():
    context = classify_metrics([{"key": "cash_income", "field_type": "EXPENSE"}], {})
    metrics = aggregate_shift_metrics(make_shift(1, cash_income=1000, card_income=400), context)

    assert metrics.total_revenue == pytest.approx(400)


def test_fixed_column_wins_over_report_key():
    context = classify_metrics(FIELDS, {})
    shift = make_shift(1, cash_income=100, report_data={"cash_income": 999, "card_income": 50})

    metrics = aggregate_shift_metrics(shift, context)

    assert metrics.values["cash_income"] == 100
    # the card column is empty so the report value stays
    assert metrics.values["card_income"] == 50
    assert metrics.total_revenue == pytest.approx(150)


def test_merge_shift_columns_keeps_report_value_for_missing_column():
    merged = merge_shift_columns({"cash_income": 5, "bar": 1}, {"cash_income": None, "total_hours": 8})
    assert merged == {"cash_income": 5, "bar": 1, "total_hours": 8}


def test_unparseable_value_counts_as_zero_and_is_flagged():
    context = classify_metrics(FIELDS, {})
    before = _parse_failures()

    metrics = aggregate_shift_metrics(make_shift(7, report_data={"bar_revenue": "lots"}, cash_income=10), context)

    assert metrics.values["bar_revenue"] == 0
    assert metrics.invalid_keys == ["bar_revenue"]
    assert metrics.warnings == ["shift 7: unreadable value for 'bar_revenue'"]
    assert metrics.total_revenue == pytest.approx(10)
    assert _parse_failures() == before + 1


def test_report_blob_stored_as_text():
    context = classify_metrics(FIELDS, {})

    metrics = aggregate_shift_metrics(make_shift(1, report_data='{"bar_revenue": "250"}'), context)
    assert metrics.values["bar_revenue"] == 250

    broken = aggregate_shift_metrics(make_shift(2, report_data="{oops", cash_income=30), context)
    assert broken.invalid_keys == ["report_data"]
    assert broken.total_revenue == pytest.approx(30)


@pytest.mark.parametrize(
    "raw, expected",
    [(None, ({}, True)), ("", ({}, True)), ("null", ({}, True)), ("[1, 2]", ({}, False)), (42, ({}, False))],
)
def test_decode_report_data(raw, expected):
    assert decode_report_data(raw) == expected


def test_extra_values_override_report_keys():
    context = classify_metrics(FIELDS, {})
    shift = make_shift(1, report_data={"evaluation_score": 10})

    metrics = aggregate_shift_metrics(shift, context, {"evaluation_score": 87.5})

    assert metrics.values["evaluation_score"] == 87.5


def test_sum_shift_metrics():
    context = classify_metrics(FIELDS, {})
    items = [
        aggregate_shift_metrics(make_shift(1, cash_income=100, report_data={"guests": 3}), context),
        aggregate_shift_metrics(make_shift(2, cash_income=50), context),
    ]

    totals = sum_shift_metrics(items)

    assert totals["total_revenue"] == pytest.approx(150)
    assert totals["guests"] == 3
    assert totals["total_hours"] == 24
