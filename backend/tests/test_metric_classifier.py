import pytest

from clubpay.models.enums import MetricCategory
from clubpay.schemas.compensation import MetricRegistryEntry
from clubpay.services.metric_classifier import (
    classify_metrics,
    extract_schema_fields,
    heuristic_category,
)


@pytest.mark.parametrize(
    "key, category",
    [
        ("bar_revenue", MetricCategory.INCOME),
        ("cash_income", MetricCategory.INCOME),
        ("cash", MetricCategory.INCOME),
        ("card", MetricCategory.INCOME),
        ("expenses_total", MetricCategory.EXPENSE),
        ("guests", MetricCategory.OTHER),
    ],
)
def test_heuristic_category(key, category):
    assert heuristic_category(key) == category


def test_explicit_field_type_beats_heuristics():
    context = classify_metrics(
        [
            {"key": "bar_sales", "field_type": "income"},
            {"metric_key": "cash_income", "field_type": "EXPENSE"},
            {"key": "kitchen", "calculation_category": "INCOME"},
            {"key": "lamp_revenue", "field_type": "bogus"},
        ],
        {},
    )

    assert context.category("bar_sales") == MetricCategory.INCOME
    assert context.category("cash_income") == MetricCategory.EXPENSE
    assert context.category("kitchen") == MetricCategory.INCOME
    assert context.category("lamp_revenue") == MetricCategory.INCOME
    assert not context.counts_column_as_income("cash_income")
    assert context.counts_column_as_income("card_income")


def test_fields_without_key_are_skipped_and_labels_resolved():
    registry = {"bar_revenue": MetricRegistryEntry(key="bar_revenue", label="Bar (registry)")}
    context = classify_metrics(
        [
            {"label": "No key"},
            "not a field",
            {"key": "bar_revenue"},
            {"key": "hookah", "custom_label": "Hookah", "label": "ignored"},
        ],
        registry,
    )

    assert set(context.metadata) == {"bar_revenue", "hookah"}
    assert context.metadata["bar_revenue"].label == "Bar (registry)"
    assert context.metadata["hookah"].label == "Hookah"


def test_template_limits_classification_to_its_fields():
    registry = {"extra_income": MetricRegistryEntry(key="extra_income", category="INCOME")}
    context = classify_metrics([{"key": "bar_revenue"}], registry)

    assert context.category("extra_income") is None
    assert not context.is_income("extra_income")


def test_without_template_registry_is_classified():
    registry = {
        "extra": MetricRegistryEntry(key="extra", category="INCOME", label="Extra"),
        "repairs_expense": MetricRegistryEntry(key="repairs_expense"),
        "shift_comment": MetricRegistryEntry(key="shift_comment", type="TEXT"),
    }
    context = classify_metrics(None, registry)

    assert context.category("extra") == MetricCategory.INCOME
    assert context.category("repairs_expense") == MetricCategory.EXPENSE
    assert context.is_numeric("shift_comment") is False
    assert context.categories == {
        "extra": MetricCategory.INCOME,
        "repairs_expense": MetricCategory.EXPENSE,
        "shift_comment": MetricCategory.OTHER,
    }


def test_context_is_read_only():
    context = classify_metrics([{"key": "bar_revenue"}], {})
    with pytest.raises(TypeError):
        context.metadata["other"] = None


def test_extract_schema_fields_shapes():
    fields = [{"key": "a"}]
    assert extract_schema_fields(fields) is fields
    assert extract_schema_fields({"fields": fields}) == fields
    assert extract_schema_fields({"version": 2}) == []
    assert extract_schema_fields(None) is None
