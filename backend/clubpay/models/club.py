from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin


class Club(IDMixin, TimestampMixin, Base):
    __tablename__ = "clubs"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Europe/Moscow")

    memberships: Mapped[List["ClubEmployee"]] = relationship(back_populates="club", cascade="all, delete-orphan")


class Employee(IDMixin, TimestampMixin, Base):
    __tablename__ = "employees"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ClubEmployee(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """Membership of an employee in a club."""
    __tablename__ = "club_employees"
    __table_args__ = (
        UniqueConstraint("club_id", "employee_id", name="uq_club_employees_club_employee"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    standard_monthly_shifts: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Per-employee override of the scheme's shift baseline",
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    club: Mapped["Club"] = relationship(back_populates="memberships")
    employee: Mapped["Employee"] = relationship(lazy="joined")
