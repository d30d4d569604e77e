from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from clubpay.db.base import Base, ClubScopedMixin, IDMixin, TimestampMixin


class ClubReportTemplate(IDMixin, ClubScopedMixin, TimestampMixin, Base):
    """Shift-closing report template. Only the newest active one is used."""
    __tablename__ = "club_report_templates"

    fields_schema: Mapped[Optional[dict]] = mapped_column(
        "schema",
        JSON,
        nullable=True,
        comment="Either a list of field definitions or {fields: [...]}",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)


class SystemMetric(IDMixin, Base):
    """Global catalog of known metric keys."""
    __tablename__ = "system_metrics"

    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False, default="OTHER")
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="NUMBER")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
