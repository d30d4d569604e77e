"""
Payout commit and period bonus accrual

Paying a month freezes every unpaid finished shift: the computed salary,
breakdown and the scheme state used are written to the shift in one
transaction. From then on the shift is answered from its snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import anyio.to_thread
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clubpay.core.settings import Settings, settings as default_settings
from clubpay.db.session import session_scope
from clubpay.models.club import ClubEmployee
from clubpay.models.enums import ShiftStatus
from clubpay.models.shift import Shift
from clubpay.schemas.compensation import (
    PERIOD_BONUS_SNAPSHOT,
    PayoutRequest,
    PayoutResponse,
    PeriodBonusAccrualCreate,
    as_utc,
)
from clubpay.services.data_sources import CompensationStore
from clubpay.services.errors import DataSourceError, PayoutError, RecordNotFoundError, StalePayoutError
from clubpay.services.money import money
from clubpay.services.period_aggregator import EmployeePeriod, build_employee_periods

logger = logging.getLogger(__name__)


def _is_frozen(shift: Shift) -> bool:
    return bool((shift.salary_snapshot or {}).get("paid_at")) or shift.status == ShiftStatus.PAID


def freeze_shifts(
    db: Session,
    period: EmployeePeriod,
    *,
    club_id: int,
    shift_ids: Optional[Sequence[int]] = None,
    paid_at: Optional[datetime] = None,
) -> PayoutResponse:
    """Write the evaluated salaries of ``period`` onto its unpaid shifts.

    The caller owns the transaction.
    """
    paid_at = paid_at or datetime.now(timezone.utc)
    employee_id = period.employee.id
    in_period = set(period.pay_results)

    if shift_ids is not None:
        outside = sorted(set(shift_ids) - in_period)
        if outside:
            raise PayoutError(f"shifts {outside} are not finished shifts of this period")
        targets = set(shift_ids)
    else:
        targets = in_period

    rows = db.scalars(
        select(Shift)
        .where(Shift.club_id == club_id, Shift.employee_id == employee_id, Shift.id.in_(targets))
        .order_by(Shift.id)
        .with_for_update()
    ).all()

    read_at = {s.id: s.updated_at for s in period.shifts}
    payload = period.snapshot_payload()
    frozen: List[int] = []
    skipped: List[int] = []
    total = 0.0
    for shift in rows:
        if _is_frozen(shift):
            skipped.append(shift.id)
            continue
        seen = read_at.get(shift.id)
        if seen is not None and shift.updated_at is not None and as_utc(shift.updated_at) != seen:
            raise StalePayoutError(f"shift {shift.id} changed while the payout was computed")
        result = period.pay_results[shift.id]
        snapshot = dict(shift.salary_snapshot or {})
        if snapshot.get("type") != PERIOD_BONUS_SNAPSHOT:
            shift.calculated_salary = result.calculated_salary
            shift.salary_breakdown = result.breakdown
            snapshot.update(payload)
        snapshot["paid_at"] = paid_at.isoformat()
        shift.salary_snapshot = snapshot
        shift.status = ShiftStatus.PAID
        db.add(shift)
        frozen.append(shift.id)
        total += result.calculated_salary

    db.flush()
    return PayoutResponse(
        employee_id=employee_id,
        frozen_shift_ids=frozen,
        skipped_shift_ids=skipped,
        total_frozen=money(total),
        paid_at=paid_at,
    )


def _freeze_in_transaction(
    session_factory: Callable[[], Session],
    period: EmployeePeriod,
    club_id: int,
    shift_ids: Optional[Sequence[int]],
) -> PayoutResponse:
    try:
        with session_scope(session_factory) as db:
            return freeze_shifts(db, period, club_id=club_id, shift_ids=shift_ids)
    except SQLAlchemyError as exc:
        raise DataSourceError("payout could not be committed") from exc


async def commit_payout(
    store: CompensationStore,
    session_factory: Callable[[], Session],
    club_id: int,
    payload: PayoutRequest,
    *,
    config: Settings = default_settings,
) -> PayoutResponse:
    """Evaluate the employee's month and freeze the result onto the shifts."""
    periods = await build_employee_periods(
        store, club_id, payload.month, payload.year, employee_ids=[payload.employee_id], config=config
    )
    if not periods:
        raise RecordNotFoundError(f"employee {payload.employee_id} is not an active member of club {club_id}")

    response = await anyio.to_thread.run_sync(
        _freeze_in_transaction, session_factory, periods[0], club_id, payload.shift_ids
    )
    logger.info(
        "payout committed",
        extra={
            "club_id": club_id,
            "employee_id": payload.employee_id,
            "month": payload.month,
            "year": payload.year,
        },
    )
    return response


def accrue_period_bonus(db: Session, club_id: int, payload: PeriodBonusAccrualCreate) -> Shift:
    """Record a manually accrued period bonus as a frozen salary line."""
    membership = db.scalar(
        select(ClubEmployee).where(
            ClubEmployee.club_id == club_id,
            ClubEmployee.employee_id == payload.employee_id,
        )
    )
    if membership is None:
        raise RecordNotFoundError(f"employee {payload.employee_id} is not a member of club {club_id}")

    amount = money(payload.amount)
    shift = Shift(
        club_id=club_id,
        employee_id=payload.employee_id,
        check_in=payload.date,
        check_out=payload.date,
        status=ShiftStatus.VERIFIED,
        total_hours=0,
        calculated_salary=amount,
        salary_breakdown={
            "base": 0,
            "bonuses": [{
                "name": payload.bonus_name or "Period bonus",
                "type": "PERIOD_BONUS",
                "amount": amount,
                "source_key": payload.metric_key,
            }],
            "total": amount,
        },
        salary_snapshot={
            "type": PERIOD_BONUS_SNAPSHOT,
            "metric_key": payload.metric_key,
            "bonus_name": payload.bonus_name,
        },
    )
    db.add(shift)
    db.flush()
    return shift
