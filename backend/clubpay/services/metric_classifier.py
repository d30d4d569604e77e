"""
Metric classification

Maps metric keys to INCOME / EXPENSE / OTHER plus a display label. The result
is an immutable ClassificationContext built once per request and passed to
every component that needs it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from clubpay.models.enums import MetricCategory
from clubpay.schemas.compensation import MetricMeta, MetricRegistryEntry

logger = logging.getLogger(__name__)

STANDARD_INCOME_COLUMNS = ("cash_income", "card_income")


def heuristic_category(key: str) -> MetricCategory:
    if "income" in key or "revenue" in key or key in ("cash", "card"):
        return MetricCategory.INCOME
    if "expense" in key:
        return MetricCategory.EXPENSE
    return MetricCategory.OTHER


def _explicit_category(value: Any) -> Optional[MetricCategory]:
    if not value:
        return None
    try:
        return MetricCategory(str(value).strip().upper())
    except ValueError:
        return None


def _is_numeric(key: str, registry_entry: Optional[MetricRegistryEntry]) -> bool:
    if registry_entry is not None and (registry_entry.type or "").upper() == "TEXT":
        return False
    return "comment" not in key


@dataclass(frozen=True)
class ClassificationContext:
    metadata: Mapping[str, MetricMeta] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def category(self, key: str) -> Optional[MetricCategory]:
        meta = self.metadata.get(key)
        return meta.category if meta else None

    def is_income(self, key: str) -> bool:
        return self.category(key) == MetricCategory.INCOME

    def counts_column_as_income(self, key: str) -> bool:
        """Standard income columns count unless the schema re-categorised them."""
        category = self.category(key)
        return category is None or category == MetricCategory.INCOME

    def is_numeric(self, key: str) -> bool:
        meta = self.metadata.get(key)
        if meta is not None:
            return meta.is_numeric
        return "comment" not in key

    @property
    def categories(self) -> dict[str, MetricCategory]:
        return {key: meta.category for key, meta in self.metadata.items()}


def _field_label(field_def: Mapping[str, Any], key: str, registry_entry: Optional[MetricRegistryEntry]) -> str:
    for attr in ("custom_label", "employee_label", "label", "name"):
        value = field_def.get(attr)
        if value:
            return str(value)
    if registry_entry is not None and registry_entry.label:
        return registry_entry.label
    return key


def classify_metrics(
    fields: Optional[Iterable[Any]],
    registry: Mapping[str, MetricRegistryEntry],
) -> ClassificationContext:
    """Classify the club's report fields.

    ``fields=None`` means the club has no active template; the registry keys
    are then classified with their registry category or the key heuristics.
    """
    metadata: dict[str, MetricMeta] = {}

    if fields is None:
        for key, entry in registry.items():
            category = _explicit_category(entry.category) or heuristic_category(key)
            metadata[key] = MetricMeta(
                label=entry.label or key,
                category=category,
                is_numeric=_is_numeric(key, entry),
            )
        return ClassificationContext(metadata)

    for field_def in fields:
        if not isinstance(field_def, Mapping):
            continue
        key = field_def.get("metric_key") or field_def.get("key")
        if not key:
            logger.debug("report field without metric key skipped", extra={"metric_key": None})
            continue
        key = str(key)
        entry = registry.get(key)
        category = (
            _explicit_category(field_def.get("field_type"))
            or _explicit_category(field_def.get("calculation_category"))
            or heuristic_category(key)
        )
        metadata[key] = MetricMeta(
            label=_field_label(field_def, key, entry),
            category=category,
            is_numeric=_is_numeric(key, entry),
        )

    return ClassificationContext(metadata)


def extract_schema_fields(schema: Any) -> Optional[list]:
    """Templates store either a bare list of fields or ``{"fields": [...]}``."""
    if schema is None:
        return None
    if isinstance(schema, list):
        return schema
    if isinstance(schema, Mapping):
        fields = schema.get("fields")
        return fields if isinstance(fields, list) else []
    return None
