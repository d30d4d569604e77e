"""
Salary endpoints

  1. Monthly compensation summary of every active employee of a club
  2. Payout: freeze an employee's month onto their shifts
  3. Manual period bonus accrual
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clubpay.core.deps import compensation_errors, get_compensation_store, get_session_factory
from clubpay.db.session import get_db
from clubpay.schemas.compensation import (
    CompensationSummaryResponse,
    PayoutRequest,
    PayoutResponse,
    PeriodBonusAccrualCreate,
    PeriodBonusAccrualRead,
)
from clubpay.services.data_sources import CompensationStore
from clubpay.services.payout import accrue_period_bonus, commit_payout
from clubpay.services.period_aggregator import build_period_summary
from clubpay.shared.contracts import API_PREFIXES

router = APIRouter(prefix=API_PREFIXES["salaries"], tags=["salaries"])


@router.get("/summary", response_model=CompensationSummaryResponse)
async def get_salary_summary(
    club_id: int,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    store: CompensationStore = Depends(get_compensation_store),
):
    """Accrued, paid and balance per employee for one month (defaults to the current one)"""
    now = datetime.now(timezone.utc)
    month = month or now.month
    year = year or now.year
    with compensation_errors():
        summary = await build_period_summary(store, club_id, month, year)
    return CompensationSummaryResponse(month=month, year=year, summary=summary)


@router.post("/payout", response_model=PayoutResponse)
async def pay_out_period(
    club_id: int,
    payload: PayoutRequest,
    store: CompensationStore = Depends(get_compensation_store),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Freeze the computed salary of the employee's unpaid shifts"""
    with compensation_errors():
        return await commit_payout(store, session_factory, club_id, payload)


@router.post("/bonus", response_model=PeriodBonusAccrualRead, status_code=status.HTTP_201_CREATED)
def accrue_bonus(
    club_id: int,
    payload: PeriodBonusAccrualCreate,
    db: Session = Depends(get_db),
):
    """Record a period bonus payout as a frozen salary line"""
    with compensation_errors():
        shift = accrue_period_bonus(db, club_id, payload)
    db.commit()
    db.refresh(shift)
    return PeriodBonusAccrualRead(
        id=shift.id,
        employee_id=shift.employee_id,
        amount=float(shift.calculated_salary),
        metric_key=payload.metric_key,
    )
