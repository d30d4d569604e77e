from __future__ import annotations

import enum


class ShiftStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    VERIFIED = "VERIFIED"
    PAID = "PAID"


class MetricCategory(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    OTHER = "OTHER"


class BonusMode(str, enum.Enum):
    MONTH = "MONTH"
    SHIFT = "SHIFT"


class PeriodBonusType(str, enum.Enum):
    FLAT = "FLAT"
    PROGRESSIVE = "PROGRESSIVE"


class RewardType(str, enum.Enum):
    FIXED = "FIXED"
    PERCENT = "PERCENT"


class BaseRateType(str, enum.Enum):
    HOURLY = "hourly"
    FIXED = "fixed"
    PER_SHIFT = "per_shift"
    PERCENT_REVENUE = "percent_revenue"
    NONE = "none"


class ShiftBonusType(str, enum.Enum):
    FIXED = "fixed"
    PERCENT_REVENUE = "percent_revenue"
    TIERED = "tiered"
    PROGRESSIVE_PERCENT = "progressive_percent"
    PENALTY = "penalty"
    CHECKLIST = "checklist"


class SalaryLineType(str, enum.Enum):
    REGULAR = "REGULAR"
    PERIOD_BONUS = "PERIOD_BONUS"
    MAINTENANCE_BONUS = "MAINTENANCE_BONUS"


class MaintenanceTaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
