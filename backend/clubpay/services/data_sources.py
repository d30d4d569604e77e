"""
Compensation data sources

The engine reads everything it needs through the CompensationStore protocol.
SqlCompensationStore is the database implementation; each call runs in a
worker thread with its own short-lived session so several employees can be
loaded at once.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, TypeVar

import anyio
import anyio.to_thread
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from clubpay.models.club import ClubEmployee
from clubpay.models.enums import MaintenanceTaskStatus
from clubpay.models.maintenance import MaintenanceMonthlyBonus, MaintenanceTask
from clubpay.models.payment import Payment
from clubpay.models.report_template import ClubReportTemplate, SystemMetric
from clubpay.models.salary_scheme import EmployeeSalaryAssignment, SalarySchemeVersion
from clubpay.models.schedule import EmployeeShiftSchedule
from clubpay.models.shift import Shift, ShiftEvaluation
from clubpay.schemas.compensation import (
    EmployeeRecord,
    EvaluationScore,
    MetricRegistryEntry,
    PaymentRecord,
    ShiftEvaluationRecord,
    ShiftRecord,
)
from clubpay.services.errors import DataSourceError
from clubpay.services.metric_classifier import extract_schema_fields
from clubpay.services.money import parse_money

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CompensationStore(Protocol):
    """Read side of everything the compensation engine depends on.

    Implementations raise DataSourceError when a source cannot answer.
    """

    # report field schema / metric registry
    async def get_report_schema(self, club_id: int) -> Optional[List[Any]]:
        """Fields of the club's active report template, or None without one."""
        ...

    async def get_metric_registry(self) -> Dict[str, MetricRegistryEntry]:
        ...

    # employee directory
    async def list_employees(
        self, club_id: int, employee_ids: Optional[Iterable[int]] = None
    ) -> List[EmployeeRecord]:
        ...

    # shift store
    async def list_shifts(
        self,
        club_id: int,
        start: datetime,
        end: datetime,
        employee_ids: Optional[Iterable[int]] = None,
    ) -> List[ShiftRecord]:
        ...

    # schedule
    async def get_planned_shifts(self, club_id: int, month: int, year: int) -> Dict[int, int]:
        ...

    # payment ledger
    async def list_payments(self, club_id: int, month: int, year: int) -> List[PaymentRecord]:
        ...

    # evaluation service
    async def get_evaluation_score(
        self, club_id: int, employee_id: int, start: datetime, end: datetime
    ) -> EvaluationScore:
        ...

    # maintenance service
    async def get_maintenance_bonus(
        self, club_id: int, employee_id: int, month: int, year: int, start: datetime, end: datetime
    ) -> float:
        ...


class SqlCompensationStore:
    def __init__(self, session_factory: Callable[[], Session], max_concurrency: int = 4) -> None:
        self._session_factory = session_factory
        self._max_concurrency = max_concurrency
        self._limiter: Optional[anyio.CapacityLimiter] = None

    async def _run(self, query: Callable[..., T], *args: Any) -> T:
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self._max_concurrency)

        def call() -> T:
            with self._session_factory() as db:
                return query(db, *args)

        try:
            return await anyio.to_thread.run_sync(call, limiter=self._limiter)
        except SQLAlchemyError as exc:
            logger.error("compensation query failed: %s", query.__name__, exc_info=exc)
            raise DataSourceError(f"{query.__name__} failed") from exc

    async def get_report_schema(self, club_id: int) -> Optional[List[Any]]:
        return await self._run(_report_schema, club_id)

    async def get_metric_registry(self) -> Dict[str, MetricRegistryEntry]:
        return await self._run(_metric_registry)

    async def list_employees(self, club_id, employee_ids=None) -> List[EmployeeRecord]:
        ids = list(employee_ids) if employee_ids is not None else None
        return await self._run(_employees, club_id, ids)

    async def list_shifts(self, club_id, start, end, employee_ids=None) -> List[ShiftRecord]:
        ids = list(employee_ids) if employee_ids is not None else None
        return await self._run(_shifts, club_id, start, end, ids)

    async def get_planned_shifts(self, club_id, month, year) -> Dict[int, int]:
        return await self._run(_planned_shifts, club_id, month, year)

    async def list_payments(self, club_id, month, year) -> List[PaymentRecord]:
        return await self._run(_payments, club_id, month, year)

    async def get_evaluation_score(self, club_id, employee_id, start, end) -> EvaluationScore:
        return await self._run(_evaluation_score, club_id, employee_id, start, end)

    async def get_maintenance_bonus(self, club_id, employee_id, month, year, start, end) -> float:
        return await self._run(_maintenance_bonus, club_id, employee_id, month, year, start, end)


# ============ QUERIES ============

def _report_schema(db: Session, club_id: int) -> Optional[List[Any]]:
    template = db.scalars(
        select(ClubReportTemplate)
        .where(ClubReportTemplate.club_id == club_id, ClubReportTemplate.is_active.is_(True))
        .order_by(ClubReportTemplate.created_at.desc(), ClubReportTemplate.id.desc())
        .limit(1)
    ).first()
    if template is None:
        return None
    return extract_schema_fields(template.fields_schema) or []


def _metric_registry(db: Session) -> Dict[str, MetricRegistryEntry]:
    return {
        metric.key: MetricRegistryEntry(
            key=metric.key,
            label=metric.label,
            category=metric.category,
            type=metric.type,
            is_required=metric.is_required,
        )
        for metric in db.scalars(select(SystemMetric))
    }


def _employees(db: Session, club_id: int, employee_ids: Optional[List[int]]) -> List[EmployeeRecord]:
    stmt = (
        select(ClubEmployee, EmployeeSalaryAssignment.scheme_id)
        .outerjoin(
            EmployeeSalaryAssignment,
            (EmployeeSalaryAssignment.club_id == ClubEmployee.club_id)
            & (EmployeeSalaryAssignment.employee_id == ClubEmployee.employee_id),
        )
        .where(ClubEmployee.club_id == club_id, ClubEmployee.is_active.is_(True))
        .order_by(ClubEmployee.display_order, ClubEmployee.employee_id)
    )
    if employee_ids is not None:
        stmt = stmt.where(ClubEmployee.employee_id.in_(employee_ids))
    rows = db.execute(stmt).unique().all()

    scheme_ids = {scheme_id for _, scheme_id in rows if scheme_id is not None}
    latest: Dict[int, SalarySchemeVersion] = {}
    if scheme_ids:
        versions = db.scalars(
            select(SalarySchemeVersion)
            .where(SalarySchemeVersion.scheme_id.in_(scheme_ids))
            .order_by(SalarySchemeVersion.scheme_id, SalarySchemeVersion.version.desc())
        )
        for version in versions:
            latest.setdefault(version.scheme_id, version)

    records = []
    for membership, scheme_id in rows:
        version = latest.get(scheme_id) if scheme_id is not None else None
        records.append(
            EmployeeRecord(
                id=membership.employee_id,
                full_name=membership.employee.full_name,
                role=membership.employee.role,
                scheme_id=scheme_id,
                scheme_version_id=version.id if version else None,
                scheme_version=version.version if version else None,
                formula=version.formula if version else None,
                standard_monthly_shifts=membership.standard_monthly_shifts,
            )
        )
    return records


def _shift_record(shift: Shift) -> ShiftRecord:
    return ShiftRecord(
        id=shift.id,
        employee_id=shift.employee_id,
        check_in=shift.check_in,
        status=shift.status,
        total_hours=shift.total_hours,
        cash_income=shift.cash_income,
        card_income=shift.card_income,
        report_data=shift.report_data,
        calculated_salary=shift.calculated_salary,
        salary_breakdown=shift.salary_breakdown,
        salary_snapshot=shift.salary_snapshot,
        updated_at=shift.updated_at,
        evaluations=[
            ShiftEvaluationRecord(template_id=e.template_id, score_percent=e.total_score)
            for e in shift.evaluations
        ],
    )


def _shifts(
    db: Session,
    club_id: int,
    start: datetime,
    end: datetime,
    employee_ids: Optional[List[int]],
) -> List[ShiftRecord]:
    stmt = (
        select(Shift)
        .options(selectinload(Shift.evaluations))
        .where(Shift.club_id == club_id, Shift.check_in >= start, Shift.check_in <= end)
        .order_by(Shift.check_in.desc(), Shift.id.desc())
    )
    if employee_ids is not None:
        stmt = stmt.where(Shift.employee_id.in_(employee_ids))
    return [_shift_record(shift) for shift in db.scalars(stmt)]


def _planned_shifts(db: Session, club_id: int, month: int, year: int) -> Dict[int, int]:
    rows = db.execute(
        select(EmployeeShiftSchedule.employee_id, EmployeeShiftSchedule.planned_shifts).where(
            EmployeeShiftSchedule.club_id == club_id,
            EmployeeShiftSchedule.month == month,
            EmployeeShiftSchedule.year == year,
        )
    )
    return {employee_id: planned for employee_id, planned in rows}


def _payments(db: Session, club_id: int, month: int, year: int) -> List[PaymentRecord]:
    payments = db.scalars(
        select(Payment)
        .where(Payment.club_id == club_id, Payment.month == month, Payment.year == year)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return [
        PaymentRecord(
            id=p.id,
            employee_id=p.employee_id,
            amount=p.amount,
            month=p.month,
            year=p.year,
            payment_method=p.payment_method,
            payment_type=p.payment_type,
            created_at=p.created_at,
        )
        for p in payments
    ]


def _evaluation_score(
    db: Session, club_id: int, employee_id: int, start: datetime, end: datetime
) -> EvaluationScore:
    average, count = db.execute(
        select(func.avg(ShiftEvaluation.total_score), func.count(ShiftEvaluation.id)).where(
            ShiftEvaluation.club_id == club_id,
            ShiftEvaluation.employee_id == employee_id,
            ShiftEvaluation.created_at >= start,
            ShiftEvaluation.created_at <= end,
        )
    ).one()
    return EvaluationScore(average=parse_money(average).amount, count=count or 0)


def _maintenance_bonus(
    db: Session, club_id: int, employee_id: int, month: int, year: int, start: datetime, end: datetime
) -> float:
    task_bonus = db.scalar(
        select(func.coalesce(func.sum(MaintenanceTask.bonus_earned), 0)).where(
            MaintenanceTask.club_id == club_id,
            MaintenanceTask.assigned_employee_id == employee_id,
            MaintenanceTask.status == MaintenanceTaskStatus.COMPLETED,
            MaintenanceTask.completed_at >= start,
            MaintenanceTask.completed_at <= end,
        )
    )
    monthly_bonus = db.scalar(
        select(func.coalesce(func.sum(MaintenanceMonthlyBonus.bonus_amount), 0)).where(
            MaintenanceMonthlyBonus.club_id == club_id,
            MaintenanceMonthlyBonus.employee_id == employee_id,
            MaintenanceMonthlyBonus.month == month,
            MaintenanceMonthlyBonus.year == year,
        )
    )
    return parse_money(task_bonus).amount + parse_money(monthly_bonus).amount
