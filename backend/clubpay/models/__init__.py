"""Import all models so SQLAlchemy metadata is fully registered."""

from clubpay.db.base import Base

from clubpay.models.club import Club, ClubEmployee, Employee
from clubpay.models.enums import (
    BaseRateType,
    BonusMode,
    MaintenanceTaskStatus,
    MetricCategory,
    PeriodBonusType,
    RewardType,
    SalaryLineType,
    ShiftBonusType,
    ShiftStatus,
)
from clubpay.models.maintenance import MaintenanceMonthlyBonus, MaintenanceTask
from clubpay.models.payment import Payment
from clubpay.models.report_template import ClubReportTemplate, SystemMetric
from clubpay.models.salary_scheme import EmployeeSalaryAssignment, SalaryScheme, SalarySchemeVersion
from clubpay.models.schedule import EmployeeShiftSchedule
from clubpay.models.shift import Shift, ShiftEvaluation

__all__ = [
    "Base",
    "BaseRateType",
    "BonusMode",
    "Club",
    "ClubEmployee",
    "ClubReportTemplate",
    "Employee",
    "EmployeeSalaryAssignment",
    "EmployeeShiftSchedule",
    "MaintenanceMonthlyBonus",
    "MaintenanceTask",
    "MaintenanceTaskStatus",
    "MetricCategory",
    "Payment",
    "PeriodBonusType",
    "RewardType",
    "SalaryLineType",
    "SalaryScheme",
    "SalarySchemeVersion",
    "Shift",
    "ShiftBonusType",
    "ShiftEvaluation",
    "ShiftStatus",
    "SystemMetric",
]
