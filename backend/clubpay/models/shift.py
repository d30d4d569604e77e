from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, JSON, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin
from clubpay.models.enums import ShiftStatus


class Shift(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """One worked shift (or a frozen period-bonus accrual record)."""
    __tablename__ = "shifts"

    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    check_out: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[ShiftStatus] = mapped_column(
        Enum(ShiftStatus, name="shift_status"),
        nullable=False,
        default=ShiftStatus.ACTIVE,
        index=True,
    )

    total_hours: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    cash_income: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    card_income: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    expenses: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    report_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_data: Mapped[Optional[Any]] = mapped_column(
        JSON,
        nullable=True,
        comment="Open metric map from the closing report: {metric_key: value}",
    )
    template_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("club_report_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    calculated_salary: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    salary_breakdown: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    salary_snapshot: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Frozen payout data: {paid_at, scheme_version_id, period_bonuses, ...} or {type: PERIOD_BONUS, ...}",
    )

    evaluations: Mapped[List["ShiftEvaluation"]] = relationship(
        back_populates="shift",
        cascade="all, delete-orphan",
    )


class ShiftEvaluation(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """Checklist evaluation result attached to a shift."""
    __tablename__ = "shift_evaluations"

    shift_id: Mapped[Optional[int]] = mapped_column(ForeignKey("shifts.id", ondelete="CASCADE"), nullable=True, index=True)
    template_id: Mapped[int] = mapped_column(Integer, nullable=False)
    total_score: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False, default=0.0, comment="Score percent 0..100")

    shift: Mapped[Optional["Shift"]] = relationship(back_populates="evaluations")
