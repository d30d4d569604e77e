from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from clubpay.models.enums import RewardType


class KpiThreshold(BaseModel):
    level: int
    label: Optional[str] = None
    monthly_threshold: float
    planned_month_threshold: float
    scaled_threshold: float
    percent: float = 0.0
    reward_type: RewardType = RewardType.PERCENT
    reward_value: float = 0.0
    is_met: bool = False
    remaining_total: float = 0.0
    per_shift_to_reach: float = 0.0
    per_shift_to_stay: float = 0.0
    potential_bonus: float = 0.0


class KpiBonusProgress(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    metric_key: str
    type: str
    bonus_mode: str
    current_value: float = 0.0
    current_shift_value: float = 0.0
    avg_per_shift: float = 0.0
    current_level: int = 0
    current_reward: float = 0.0
    is_met: bool = False
    bonus_amount: float = 0.0
    all_thresholds: List[KpiThreshold] = Field(default_factory=list)
    projected_total: float = 0.0
    projected_level: int = 0
    projected_bonus: float = 0.0
    remaining_shifts: int = 0


class KpiProgressResponse(BaseModel):
    employee_id: int
    month: int
    year: int
    kpi: List[KpiBonusProgress] = Field(default_factory=list)
    total_kpi_bonus: float = 0.0
    total_projected_bonus: float = 0.0
    shifts_count: int = 0
    planned_shifts: int = 0
    remaining_shifts: int = 0
    days_in_month: int = 0
    current_day: int = 0
    days_remaining: int = 0
    message: Optional[str] = None
