from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin


class Payment(IDMixin, ClubScopedMixin, EmployeeScopedMixin, TimestampMixin, Base):
    """Salary payment ledger entry. Read-only for the compensation engine."""
    __tablename__ = "payments"

    amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_type: Mapped[str] = mapped_column(String(32), nullable=False, default="salary")
