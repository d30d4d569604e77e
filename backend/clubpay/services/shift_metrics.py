"""
Shift metric aggregation

Turns one shift (fixed columns plus the free-form report blob) into a flat
map of numeric metrics, including the derived total_revenue, revenue_cash,
revenue_card and total_hours keys.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from clubpay.core.observability import metric_parse_failures_total
from clubpay.schemas.compensation import ShiftRecord
from clubpay.services.metric_classifier import STANDARD_INCOME_COLUMNS, ClassificationContext
from clubpay.services.money import parse_money

logger = logging.getLogger(__name__)

DERIVED_KEYS = ("total_revenue", "revenue_cash", "revenue_card")


@dataclass
class ShiftMetrics:
    shift_id: int
    values: Dict[str, float] = field(default_factory=dict)
    report: Dict[str, Any] = field(default_factory=dict)
    invalid_keys: List[str] = field(default_factory=list)

    @property
    def total_revenue(self) -> float:
        return self.values.get("total_revenue", 0.0)

    @property
    def total_hours(self) -> float:
        return self.values.get("total_hours", 0.0)

    @property
    def warnings(self) -> List[str]:
        return [f"shift {self.shift_id}: unreadable value for '{key}'" for key in self.invalid_keys]


def decode_report_data(raw: Any) -> Tuple[Dict[str, Any], bool]:
    """Return the report blob as a dict and whether it was readable."""
    if raw is None or raw == "":
        return {}, True
    if isinstance(raw, Mapping):
        return dict(raw), True
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except ValueError:
            return {}, False
        if decoded is None:
            return {}, True
        if isinstance(decoded, dict):
            return decoded, True
    return {}, False


def merge_shift_columns(report: Mapping[str, Any], columns: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge fixed shift columns over the custom report keys.

    A fixed column wins over a custom key of the same name. A column that is
    missing (None) leaves the report value in place.
    """
    merged = dict(report)
    for key, value in columns.items():
        if value is not None:
            merged[key] = value
    return merged


def _record_invalid(shift_id: int, key: str, raw: Any) -> None:
    metric_parse_failures_total.labels(source="shift").inc()
    logger.warning(
        "unparseable shift metric",
        extra={"shift_id": shift_id, "metric_key": key, "raw_value": repr(raw)[:100]},
    )


def aggregate_shift_metrics(
    shift: ShiftRecord,
    context: ClassificationContext,
    extra: Optional[Mapping[str, float]] = None,
) -> ShiftMetrics:
    """Build the numeric metric map of one shift.

    ``extra`` holds request-level values (evaluation score and count) that
    are injected after aggregation and take precedence.
    """
    report, readable = decode_report_data(shift.report_data)
    result = ShiftMetrics(shift_id=shift.id, report=report)
    if not readable:
        result.invalid_keys.append("report_data")
        _record_invalid(shift.id, "report_data", shift.report_data)

    merged = merge_shift_columns(
        report,
        {
            "cash_income": shift.cash_income,
            "card_income": shift.card_income,
            "total_hours": shift.total_hours,
        },
    )

    for key, raw in merged.items():
        if key in DERIVED_KEYS or not context.is_numeric(key):
            continue
        parsed = parse_money(raw)
        if not parsed.was_valid:
            result.invalid_keys.append(key)
            _record_invalid(shift.id, key, raw)
        result.values[key] = parsed.amount

    revenue = 0.0
    for column in STANDARD_INCOME_COLUMNS:
        if context.counts_column_as_income(column):
            revenue += result.values.get(column, 0.0)
    for key, value in result.values.items():
        if key not in STANDARD_INCOME_COLUMNS and context.is_income(key):
            revenue += value

    result.values["total_revenue"] = revenue
    result.values["revenue_cash"] = result.values.get("cash_income", 0.0)
    result.values["revenue_card"] = result.values.get("card_income", 0.0)
    result.values.setdefault("total_hours", 0.0)

    if extra:
        result.values.update(extra)
    return result


def sum_shift_metrics(items: List[ShiftMetrics]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for item in items:
        for key, value in item.values.items():
            totals[key] = totals.get(key, 0.0) + value
    return totals
