from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin, utcnow


class SalaryScheme(IDMixin, ClubScopedMixin, TimestampMixin, Base):
    """Named compensation scheme owned by a club. The formula lives in versions."""
    __tablename__ = "salary_schemes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    versions: Mapped[List["SalarySchemeVersion"]] = relationship(
        back_populates="scheme",
        cascade="all, delete-orphan",
        order_by="SalarySchemeVersion.version.desc()",
    )


class SalarySchemeVersion(IDMixin, Base):
    """Immutable formula version. Edits insert a new row with version + 1."""
    __tablename__ = "salary_scheme_versions"
    __table_args__ = (
        UniqueConstraint("scheme_id", "version", name="uq_salary_scheme_versions_scheme_version"),
    )

    scheme_id: Mapped[int] = mapped_column(
        ForeignKey("salary_schemes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    formula: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="{base, bonuses, period_bonuses, standard_monthly_shifts}",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    scheme: Mapped["SalaryScheme"] = relationship(back_populates="versions")


class EmployeeSalaryAssignment(IDMixin, ClubScopedMixin, EmployeeScopedMixin, Base):
    __tablename__ = "employee_salary_assignments"
    __table_args__ = (
        UniqueConstraint("club_id", "employee_id", name="uq_employee_salary_assignments_club_employee"),
    )

    scheme_id: Mapped[int] = mapped_column(ForeignKey("salary_schemes.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    scheme: Mapped["SalaryScheme"] = relationship()
