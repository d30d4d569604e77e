from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from clubpay.core.deps import compensation_errors, get_compensation_store
from clubpay.schemas.kpi import KpiProgressResponse
from clubpay.services.data_sources import CompensationStore
from clubpay.services.kpi_progress import build_kpi_progress
from clubpay.shared.contracts import API_PREFIXES

router = APIRouter(prefix=API_PREFIXES["employees"], tags=["kpi"])


@router.get("/{employee_id}/kpi", response_model=KpiProgressResponse)
async def get_employee_kpi(
    club_id: int,
    employee_id: int,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    store: CompensationStore = Depends(get_compensation_store),
):
    """Period bonus progress and end-of-month projection for one employee"""
    today = date.today()
    with compensation_errors():
        return await build_kpi_progress(
            store, club_id, employee_id, month or today.month, year or today.year, today=today
        )
