from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin
from clubpay.models.enums import MaintenanceTaskStatus


class MaintenanceTask(IDMixin, ClubScopedMixin, TimestampMixin, Base):
    """Equipment maintenance task. Only completed tasks' bonuses are consumed here."""
    __tablename__ = "maintenance_tasks"

    assigned_employee_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[MaintenanceTaskStatus] = mapped_column(
        Enum(MaintenanceTaskStatus, name="maintenance_task_status"),
        nullable=False,
        default=MaintenanceTaskStatus.PENDING,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    bonus_earned: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False, default=0.0)


class MaintenanceMonthlyBonus(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """Manually recorded monthly maintenance bonus."""
    __tablename__ = "maintenance_monthly_bonuses"
    __table_args__ = (
        UniqueConstraint("club_id", "employee_id", "year", "month", name="uq_maintenance_monthly_bonuses_period"),
    )

    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False, default=0.0)
