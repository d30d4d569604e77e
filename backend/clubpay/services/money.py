from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, NamedTuple


TWOPLACES = Decimal("0.01")

_SPACES = re.compile(r"[\s\u00a0\u202f]")


class ParsedAmount(NamedTuple):
    amount: float
    was_valid: bool


_ZERO = ParsedAmount(0.0, True)
_INVALID = ParsedAmount(0.0, False)


def parse_money(value: Any) -> ParsedAmount:
    """Parse a numeric value coming from a column, a JSON blob or a form.

    Missing values (None, blank strings) are a valid zero. Anything present that
    cannot be read as a finite number is reported with ``was_valid=False`` so the
    caller can flag it instead of silently zeroing it.
    """
    if value is None:
        return _ZERO
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (InvalidOperation, ValueError):
            return _INVALID
        return ParsedAmount(number, True) if math.isfinite(number) else _INVALID
    if isinstance(value, str):
        text = _SPACES.sub("", value)
        if not text:
            return _ZERO
        # "1 500,50" as typed on a Russian keyboard
        if "," in text and "." not in text and text.count(",") == 1:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return _INVALID
        return ParsedAmount(number, True) if math.isfinite(number) else _INVALID
    return _INVALID


def money(value: float | Decimal) -> float:
    """Round half-up to cents."""
    return float(Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP))
