"""
Salary scheme endpoints

Schemes are versioned: a formula is never edited in place. Every formula
change inserts version N+1, so shifts already paid under an older version
keep pointing at exactly what they were paid with.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from clubpay.db.session import get_db
from clubpay.models.club import ClubEmployee
from clubpay.models.salary_scheme import EmployeeSalaryAssignment, SalaryScheme, SalarySchemeVersion
from clubpay.schemas.scheme import (
    SalarySchemeCreate,
    SalarySchemeRead,
    SalarySchemeUpdate,
    SalarySchemeVersionRead,
    SchemeAssignmentRead,
    SchemeAssignmentUpdate,
)
from clubpay.services.scheme_loader import validate_formula
from clubpay.shared.contracts import API_PREFIXES

router = APIRouter(prefix=API_PREFIXES["salary_schemes"], tags=["salary-schemes"])
assignment_router = APIRouter(prefix=API_PREFIXES["employees"], tags=["salary-schemes"])


def _validated_formula(formula: dict) -> dict:
    try:
        validate_formula(formula)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    return formula


def _get_scheme(session: Session, club_id: int, scheme_id: int) -> SalaryScheme:
    scheme = (
        session.query(SalaryScheme)
        .options(selectinload(SalaryScheme.versions))
        .filter(SalaryScheme.id == scheme_id, SalaryScheme.club_id == club_id)
        .first()
    )
    if not scheme:
        raise HTTPException(status_code=404, detail="Salary scheme not found")
    return scheme


def _scheme_read(scheme: SalaryScheme) -> SalarySchemeRead:
    latest = scheme.versions[0] if scheme.versions else None
    return SalarySchemeRead(
        id=scheme.id,
        club_id=scheme.club_id,
        name=scheme.name,
        description=scheme.description,
        is_active=scheme.is_active,
        version=latest.version if latest else None,
        formula=latest.formula if latest else None,
        versions=[SalarySchemeVersionRead.model_validate(v) for v in scheme.versions],
        created_at=scheme.created_at,
    )


# ============ SCHEMES ============

@router.get("", response_model=List[SalarySchemeRead])
def list_salary_schemes(club_id: int, session: Session = Depends(get_db)):
    schemes = (
        session.query(SalaryScheme)
        .options(selectinload(SalaryScheme.versions))
        .filter(SalaryScheme.club_id == club_id)
        .order_by(SalaryScheme.name, SalaryScheme.id)
        .all()
    )
    return [_scheme_read(scheme) for scheme in schemes]


@router.post("", response_model=SalarySchemeRead, status_code=status.HTTP_201_CREATED)
def create_salary_scheme(club_id: int, payload: SalarySchemeCreate, session: Session = Depends(get_db)):
    """Create a scheme with its first formula version"""
    formula = _validated_formula(payload.formula)
    scheme = SalaryScheme(club_id=club_id, name=payload.name, description=payload.description)
    scheme.versions.append(SalarySchemeVersion(version=1, formula=formula))
    session.add(scheme)
    session.commit()
    return _scheme_read(_get_scheme(session, club_id, scheme.id))


@router.get("/{scheme_id}", response_model=SalarySchemeRead)
def get_salary_scheme(club_id: int, scheme_id: int, session: Session = Depends(get_db)):
    return _scheme_read(_get_scheme(session, club_id, scheme_id))


@router.patch("/{scheme_id}", response_model=SalarySchemeRead)
def update_salary_scheme(
    club_id: int,
    scheme_id: int,
    payload: SalarySchemeUpdate,
    session: Session = Depends(get_db),
):
    """Update scheme details; a new formula is stored as the next version"""
    scheme = _get_scheme(session, club_id, scheme_id)

    if payload.name is not None:
        scheme.name = payload.name
    if payload.description is not None:
        scheme.description = payload.description
    if payload.is_active is not None:
        scheme.is_active = payload.is_active

    if payload.formula is not None:
        formula = _validated_formula(payload.formula)
        current = session.query(func.max(SalarySchemeVersion.version)).filter(
            SalarySchemeVersion.scheme_id == scheme.id
        ).scalar() or 0
        session.add(SalarySchemeVersion(scheme_id=scheme.id, version=current + 1, formula=formula))

    session.add(scheme)
    session.commit()
    session.expire_all()
    return _scheme_read(_get_scheme(session, club_id, scheme_id))


# ============ ASSIGNMENT ============

@assignment_router.put("/{employee_id}/salary-scheme", response_model=SchemeAssignmentRead)
def assign_salary_scheme(
    club_id: int,
    employee_id: int,
    payload: SchemeAssignmentUpdate,
    session: Session = Depends(get_db),
):
    """Assign a scheme to an employee; ``scheme_id: null`` removes the assignment"""
    membership = session.query(ClubEmployee).filter(
        ClubEmployee.club_id == club_id, ClubEmployee.employee_id == employee_id
    ).first()
    if not membership:
        raise HTTPException(status_code=404, detail="Employee not found in club")

    assignment = session.query(EmployeeSalaryAssignment).filter(
        EmployeeSalaryAssignment.club_id == club_id,
        EmployeeSalaryAssignment.employee_id == employee_id,
    ).first()

    if payload.scheme_id is None:
        if assignment:
            session.delete(assignment)
            session.commit()
        return SchemeAssignmentRead(employee_id=employee_id, scheme_id=None, removed=True)

    _get_scheme(session, club_id, payload.scheme_id)
    if assignment:
        assignment.scheme_id = payload.scheme_id
    else:
        assignment = EmployeeSalaryAssignment(
            club_id=club_id, employee_id=employee_id, scheme_id=payload.scheme_id
        )
    session.add(assignment)
    session.commit()
    return SchemeAssignmentRead(employee_id=employee_id, scheme_id=payload.scheme_id)
