"""
Compensation engine records and summary payloads

Input records are what the stores hand to the engine (raw values are kept as
received; numeric parsing happens in the engine through parse_money). Output
models are ephemeral and recomputed on every request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from clubpay.models.enums import MetricCategory, RewardType, SalaryLineType, ShiftStatus
from clubpay.schemas.base import ORMModel

PERIOD_BONUS_SNAPSHOT = "PERIOD_BONUS"


def as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# ============ INPUT RECORDS ============

class MetricRegistryEntry(BaseModel):
    key: str
    label: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    is_required: bool = False


class MetricMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    category: MetricCategory
    is_numeric: bool = True


class EmployeeRecord(BaseModel):
    id: int
    full_name: str
    role: Optional[str] = None
    scheme_id: Optional[int] = None
    scheme_version_id: Optional[int] = None
    scheme_version: Optional[int] = None
    formula: Optional[Dict[str, Any]] = None
    standard_monthly_shifts: Optional[int] = None


class ShiftEvaluationRecord(ORMModel):
    template_id: int
    score_percent: Any = 0


class ShiftRecord(BaseModel):
    id: int
    employee_id: int
    check_in: UtcDatetime
    status: ShiftStatus
    total_hours: Any = None
    cash_income: Any = None
    card_income: Any = None
    report_data: Any = None
    calculated_salary: Any = None
    salary_breakdown: Optional[Dict[str, Any]] = None
    salary_snapshot: Optional[Dict[str, Any]] = None
    updated_at: Optional[UtcDatetime] = None
    evaluations: List[ShiftEvaluationRecord] = Field(default_factory=list)

    @property
    def is_paid(self) -> bool:
        return bool((self.salary_snapshot or {}).get("paid_at"))

    @property
    def is_period_bonus_accrual(self) -> bool:
        return (self.salary_snapshot or {}).get("type") == PERIOD_BONUS_SNAPSHOT

    @property
    def is_frozen(self) -> bool:
        return self.is_paid or self.status == ShiftStatus.PAID or self.is_period_bonus_accrual


class PaymentRecord(BaseModel):
    id: int
    employee_id: int
    amount: Any
    month: int
    year: int
    payment_method: Optional[str] = None
    payment_type: Optional[str] = None
    created_at: UtcDatetime


class EvaluationScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    average: float = 0.0
    count: int = 0


# ============ ENGINE RESULTS ============

class ScaledThreshold(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: float = Field(alias="from")
    original_from: float
    percent: float
    label: Optional[str] = None


class BonusStatus(BaseModel):
    """Resolved state of one period bonus for one employee and month."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    metric_key: str
    type: str
    bonus_mode: str
    target_per_shift: Optional[float] = None
    thresholds: List[ScaledThreshold] = Field(default_factory=list)
    current_value: float = 0.0
    target_value: float = 0.0
    progress_percent: float = 0.0
    is_met: bool = False
    is_accrued: bool = False
    reward_value: float = 0.0
    reward_type: RewardType = RewardType.PERCENT


class SalaryCalculation(BaseModel):
    total: float
    breakdown: Dict[str, Any]


class ShiftPayResult(BaseModel):
    shift_id: int
    calculated_salary: float
    breakdown: Dict[str, Any]
    from_snapshot: bool = False
    data_warnings: List[str] = Field(default_factory=list)


# ============ SUMMARY PAYLOAD ============

class ShiftLine(BaseModel):
    id: Union[int, str]
    date: datetime
    total_hours: float = 0.0
    total_revenue: float = 0.0
    calculated_salary: float = 0.0
    kpi_bonus: float = 0.0
    bonus_total: float = 0.0
    status: str
    is_paid: bool = False
    type: SalaryLineType = SalaryLineType.REGULAR
    metrics: Dict[str, Any] = Field(default_factory=dict)
    bonuses: List[Dict[str, Any]] = Field(default_factory=list)


class PaymentHistoryItem(BaseModel):
    id: int
    date: datetime
    amount: float
    method: Optional[str] = None
    payment_type: str = "salary"


class SummaryBreakdown(BaseModel):
    base_salary: float = 0.0
    shift_bonuses: float = 0.0
    kpi_bonuses: float = 0.0
    accrued_period_bonuses: float = 0.0
    maintenance_bonus: float = 0.0


class MetricTotal(BaseModel):
    total: float = 0.0
    avg_per_shift: float = 0.0


class SummaryMetrics(BaseModel):
    total_revenue: float = 0.0
    avg_revenue_per_shift: float = 0.0
    total_hours: float = 0.0
    avg_hours_per_shift: float = 0.0
    evaluation_score: float = 0.0
    evaluation_count: int = 0
    revenue_by_metric: Dict[str, MetricTotal] = Field(default_factory=dict)


class EmployeeSummary(BaseModel):
    id: int
    full_name: str
    role: Optional[str] = None
    scheme_version_id: Optional[int] = None
    shifts_count: int = 0
    planned_shifts: int = 0
    total_accrued: float = 0.0
    total_paid: float = 0.0
    balance: float = 0.0
    period_bonuses: List[BonusStatus] = Field(default_factory=list)
    kpi_bonus_amount: float = 0.0
    maintenance_bonus: float = 0.0
    breakdown: SummaryBreakdown = Field(default_factory=SummaryBreakdown)
    metrics: SummaryMetrics = Field(default_factory=SummaryMetrics)
    payment_history: List[PaymentHistoryItem] = Field(default_factory=list)
    shifts: List[ShiftLine] = Field(default_factory=list)
    metric_categories: Dict[str, MetricCategory] = Field(default_factory=dict)
    metric_metadata: Dict[str, MetricMeta] = Field(default_factory=dict)
    data_warnings: List[str] = Field(default_factory=list)


class CompensationSummaryResponse(BaseModel):
    month: int
    year: int
    summary: List[EmployeeSummary]


# ============ PAYOUT / ACCRUAL ============

class PayoutRequest(BaseModel):
    employee_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    shift_ids: Optional[List[int]] = None


class PayoutResponse(BaseModel):
    employee_id: int
    frozen_shift_ids: List[int]
    skipped_shift_ids: List[int]
    total_frozen: float
    paid_at: datetime


class PeriodBonusAccrualCreate(BaseModel):
    employee_id: int
    amount: float = Field(..., gt=0)
    date: datetime
    bonus_name: Optional[str] = None
    metric_key: Optional[str] = None


class PeriodBonusAccrualRead(BaseModel):
    id: int
    employee_id: int
    amount: float
    metric_key: Optional[str] = None
