"""
Compensation scheme schemas

A scheme formula is stored as JSON on an immutable scheme version. It is
parsed into these models once, when loaded, so the engine never inspects raw
dictionaries:

  base            -> BaseRule
  bonuses         -> ShiftBonus (paid per shift)
  period_bonuses  -> FlatBonus | ProgressiveBonus (resolved per billing month)
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from clubpay.models.enums import BaseRateType, BonusMode, RewardType, ShiftBonusType
from clubpay.schemas.base import ORMModel


def _none_to_zero(value: Any) -> Any:
    if value is None or value == "":
        return 0.0
    return value


# Legacy formulas store blanks as null or "".
NumberOrZero = Annotated[float, BeforeValidator(_none_to_zero)]


# ============ FORMULA SCHEMAS ============

class BaseRule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: BaseRateType = BaseRateType.HOURLY
    amount: NumberOrZero = 0.0
    percent: NumberOrZero = 0.0
    full_shift_hours: Optional[float] = Field(default=None, gt=0)


class Threshold(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    from_: NumberOrZero = Field(default=0.0, alias="from")
    percent: NumberOrZero = 0.0
    label: Optional[str] = None


class Tier(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    from_: NumberOrZero = Field(default=0.0, alias="from")
    to: float = math.inf
    bonus: NumberOrZero = 0.0
    amount: NumberOrZero = 0.0

    @field_validator("to", mode="before")
    @classmethod
    def _open_upper_bound(cls, value: Any) -> Any:
        if value in (None, "", "∞"):
            return math.inf
        return value

    @property
    def reward(self) -> float:
        return self.bonus or self.amount


class ShiftBonus(BaseModel):
    """Bonus or penalty evaluated against a single shift's metrics."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Optional[str] = None
    type: ShiftBonusType
    source: str = "total"
    amount: NumberOrZero = 0.0
    percent: NumberOrZero = 0.0
    tiers: List[Tier] = Field(default_factory=list)
    thresholds: List[Threshold] = Field(default_factory=list)
    mode: BonusMode = BonusMode.SHIFT
    checklist_template_id: Optional[int] = None
    min_score: NumberOrZero = 0.0

    @field_validator("source", mode="before")
    @classmethod
    def _default_source(cls, value: Any) -> Any:
        return value or "total"


class _PeriodBonusBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    metric_key: str = "total_revenue"
    bonus_mode: BonusMode = BonusMode.MONTH
    reward_type: RewardType = RewardType.FIXED
    reward_value: NumberOrZero = 0.0

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("metric_key", mode="before")
    @classmethod
    def _default_metric(cls, value: Any) -> Any:
        return value or "total_revenue"


class FlatBonus(_PeriodBonusBase):
    """Single target per shift, prorated by attendance."""

    type: Literal["FLAT"] = "FLAT"
    target_per_shift: NumberOrZero = 0.0


class ProgressiveBonus(_PeriodBonusBase):
    """Tier ladder; a met tier pays its percent of the metric."""

    type: Literal["PROGRESSIVE"] = "PROGRESSIVE"
    reward_type: RewardType = RewardType.PERCENT
    thresholds: List[Threshold] = Field(min_length=1)

    @field_validator("thresholds")
    @classmethod
    def _sort_ascending(cls, value: List[Threshold]) -> List[Threshold]:
        return sorted(value, key=lambda t: t.from_)


PeriodBonus = Annotated[Union[FlatBonus, ProgressiveBonus], Field(discriminator="type")]


class CompensationScheme(BaseModel):
    """Validated formula of one scheme version."""

    model_config = ConfigDict(frozen=True)

    scheme_id: Optional[int] = None
    version_id: Optional[int] = None
    version: Optional[int] = None
    base: BaseRule = Field(default_factory=BaseRule)
    bonuses: List[ShiftBonus] = Field(default_factory=list)
    period_bonuses: List[PeriodBonus] = Field(default_factory=list)
    standard_monthly_shifts: Optional[int] = Field(default=None, gt=0)


# ============ SCHEME CRUD SCHEMAS ============

class SalarySchemeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    formula: dict = Field(default_factory=dict)


class SalarySchemeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    formula: Optional[dict] = None


class SalarySchemeVersionRead(ORMModel):
    id: int
    version: int
    formula: dict
    created_at: datetime


class SalarySchemeRead(ORMModel):
    id: int
    club_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    version: Optional[int] = None
    formula: Optional[dict] = None
    versions: List[SalarySchemeVersionRead] = Field(default_factory=list)
    created_at: datetime


class SchemeAssignmentUpdate(BaseModel):
    scheme_id: Optional[int] = None


class SchemeAssignmentRead(BaseModel):
    employee_id: int
    scheme_id: Optional[int] = None
    removed: bool = False
