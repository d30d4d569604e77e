"""Database seed helpers for API tests."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from clubpay.models.club import Club, ClubEmployee, Employee
from clubpay.models.enums import ShiftStatus
from clubpay.models.salary_scheme import EmployeeSalaryAssignment, SalaryScheme, SalarySchemeVersion
from clubpay.models.shift import Shift


HOURLY_WITH_KPI = {
    "base": {"type": "hourly", "amount": 100},
    "bonuses": [{"name": "Bar", "type": "percent_revenue", "source": "bar_revenue", "percent": 10}],
    "period_bonuses": [
        {
            "id": "kpi-total",
            "name": "Revenue KPI",
            "type": "PROGRESSIVE",
            "metric_key": "total_revenue",
            "bonus_mode": "SHIFT",
            "thresholds": [{"from": 5000, "percent": 2}, {"from": 10000, "percent": 5}],
        }
    ],
    "standard_monthly_shifts": 15,
}


def seed_club(db: Session, *, formula=HOURLY_WITH_KPI, name="Anna") -> dict:
    club = Club(name="Arena")
    employee = Employee(full_name=name, role="admin")
    db.add_all([club, employee])
    db.flush()
    db.add(ClubEmployee(club_id=club.id, employee_id=employee.id))

    scheme = None
    if formula is not None:
        scheme = SalaryScheme(club_id=club.id, name="Admins")
        scheme.versions.append(SalarySchemeVersion(version=1, formula=formula))
        db.add(scheme)
        db.flush()
        db.add(EmployeeSalaryAssignment(club_id=club.id, employee_id=employee.id, scheme_id=scheme.id))
    db.commit()
    return {"club_id": club.id, "employee_id": employee.id, "scheme_id": scheme.id if scheme else None}


def add_shift(db: Session, club_id: int, employee_id: int, *, day: int, month: int = 3, year: int = 2026,
              status: ShiftStatus = ShiftStatus.CLOSED, **columns) -> Shift:
    columns.setdefault("total_hours", 10)
    shift = Shift(
        club_id=club_id,
        employee_id=employee_id,
        check_in=datetime(year, month, day, 10, tzinfo=timezone.utc),
        status=status,
        **columns,
    )
    db.add(shift)
    db.commit()
    return shift
