"""
Scheme loading

Formulas are stored as JSON on scheme versions and were written by several
generations of the admin UI. Everything is normalised and validated here,
once, so the rest of the engine only sees CompensationScheme models.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from clubpay.schemas.scheme import BaseRule, CompensationScheme, PeriodBonus, ShiftBonus

logger = logging.getLogger(__name__)

_period_bonus_adapter: TypeAdapter = TypeAdapter(PeriodBonus)

_BASE_KEYS = ("type", "amount", "percent", "full_shift_hours")


def _upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def normalize_base(formula: Mapping[str, Any]) -> Dict[str, Any]:
    """Base rule from ``formula["base"]`` or the older flat top-level keys."""
    base = formula.get("base")
    if not isinstance(base, Mapping):
        base = {key: formula[key] for key in _BASE_KEYS if key in formula}
    data = dict(base)
    data["type"] = _lower(data.get("type")) or "hourly"
    return data


def normalize_shift_bonus(raw: Mapping[str, Any]) -> Dict[str, Any]:
    data = dict(raw)
    data["type"] = _lower(data.get("type"))
    if data.get("mode"):
        data["mode"] = _upper(data["mode"])
    return data


def normalize_period_bonus(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Map legacy period bonus shapes onto FLAT / PROGRESSIVE.

    ``TARGET`` and a missing type are the old names for FLAT. A PROGRESSIVE
    bonus without thresholds has nothing to climb and is treated as FLAT.
    """
    data = dict(raw)
    kind = _upper(data.get("type")) or "FLAT"
    if kind == "TARGET":
        kind = "FLAT"
    if kind == "PROGRESSIVE" and not data.get("thresholds"):
        kind = "FLAT"
    data["type"] = kind
    if kind == "FLAT":
        data.pop("thresholds", None)
    for key in ("bonus_mode", "reward_type"):
        if data.get(key):
            data[key] = _upper(data[key])
        else:
            data.pop(key, None)
    return data


def _normalized(formula: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    formula = formula or {}
    return {
        "base": normalize_base(formula),
        "bonuses": [
            normalize_shift_bonus(b) for b in formula.get("bonuses") or [] if isinstance(b, Mapping)
        ],
        "period_bonuses": [
            normalize_period_bonus(b)
            for b in formula.get("period_bonuses") or []
            if isinstance(b, Mapping)
        ],
        "standard_monthly_shifts": formula.get("standard_monthly_shifts") or None,
    }


def validate_formula(formula: Optional[Mapping[str, Any]]) -> CompensationScheme:
    """Strict validation used when a formula is written. Raises ValidationError."""
    return CompensationScheme.model_validate(_normalized(formula))


def load_scheme(
    formula: Optional[Mapping[str, Any]],
    *,
    scheme_id: Optional[int] = None,
    version_id: Optional[int] = None,
    version: Optional[int] = None,
) -> Tuple[CompensationScheme, List[str]]:
    """Lenient load of a stored formula.

    Each part is validated on its own; a part that fails is dropped with a
    warning instead of failing the whole scheme.
    """
    data = _normalized(formula)
    warnings: List[str] = []
    extra = {"scheme_version_id": version_id}

    try:
        base = BaseRule.model_validate(data["base"])
    except ValidationError as exc:
        logger.warning("invalid base rule, using hourly 0", extra=extra)
        warnings.append(f"scheme {version_id}: invalid base rule ({exc.error_count()} errors)")
        base = BaseRule()

    bonuses: List[ShiftBonus] = []
    for index, raw in enumerate(data["bonuses"]):
        try:
            bonuses.append(ShiftBonus.model_validate(raw))
        except ValidationError:
            logger.warning("invalid shift bonus skipped", extra=extra)
            warnings.append(f"scheme {version_id}: shift bonus #{index + 1} skipped")

    period_bonuses = []
    for index, raw in enumerate(data["period_bonuses"]):
        try:
            period_bonuses.append(_period_bonus_adapter.validate_python(raw))
        except ValidationError:
            logger.warning("invalid period bonus skipped", extra=extra)
            warnings.append(
                f"scheme {version_id}: period bonus '{raw.get('name') or index + 1}' skipped"
            )

    standard = data["standard_monthly_shifts"]
    try:
        standard = int(standard) if standard is not None else None
    except (TypeError, ValueError):
        standard = None
    if standard is not None and standard <= 0:
        standard = None

    scheme = CompensationScheme(
        scheme_id=scheme_id,
        version_id=version_id,
        version=version,
        base=base,
        bonuses=bonuses,
        period_bonuses=period_bonuses,
        standard_monthly_shifts=standard,
    )
    return scheme, warnings


def scheme_from_snapshot(snapshot: Mapping[str, Any]) -> Optional[CompensationScheme]:
    """Period bonus configuration frozen into a paid shift, if it carries one."""
    if not snapshot.get("period_bonuses"):
        return None
    scheme, _ = load_scheme(
        {
            "period_bonuses": snapshot.get("period_bonuses"),
            "standard_monthly_shifts": snapshot.get("standard_monthly_shifts"),
        },
        scheme_id=snapshot.get("scheme_id"),
        version_id=snapshot.get("scheme_version_id"),
        version=snapshot.get("scheme_version"),
    )
    return scheme
