from __future__ import annotations

from sqlalchemy import Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin


class EmployeeShiftSchedule(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """Planned shift count for an employee in a billing month."""
    __tablename__ = "employee_shift_schedules"
    __table_args__ = (
        UniqueConstraint("club_id", "employee_id", "year", "month", name="uq_employee_shift_schedules_period"),
    )

    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    planned_shifts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
