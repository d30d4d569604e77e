from clubpay.models.enums import ShiftStatus
from clubpay.models.shift import Shift

from factories import add_shift, seed_club

SUMMARY = "/api/clubs/{club_id}/salaries/summary?month=3&year=2026"


def _summary(client, club_id):
    response = client.get(SUMMARY.format(club_id=club_id))
    assert response.status_code == 200, response.text
    return response.json()


def test_summary_computes_unpaid_shifts(client, db):
    ids = seed_club(db)
    shift = add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=6000,
                      report_data={"bar_revenue": 1000})
    open_shift = add_shift(db, ids["club_id"], ids["employee_id"], day=5, status=ShiftStatus.ACTIVE,
                           cash_income=500)

    body = _summary(client, ids["club_id"])

    assert (body["month"], body["year"]) == (3, 2026)
    [employee] = body["summary"]
    assert employee["full_name"] == "Anna"
    assert employee["shifts_count"] == 1
    assert [line["id"] for line in employee["shifts"]] == [open_shift.id, shift.id]
    assert employee["shifts"][0]["status"] == "ACTIVE"
    assert employee["shifts"][0]["calculated_salary"] == 0
    # 10h * 100 + 10% of bar + 2% KPI contribution of 6000
    assert employee["total_accrued"] == 1220
    assert employee["balance"] == 1220
    assert employee["period_bonuses"][0]["is_met"] is True
    assert employee["breakdown"]["kpi_bonuses"] == 120


def test_payout_freezes_shift_against_scheme_changes(client, db):
    ids = seed_club(db)
    shift = add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=6000,
                      report_data={"bar_revenue": 1000})

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/payout",
        json={"employee_id": ids["employee_id"], "month": 3, "year": 2026},
    )
    assert response.status_code == 200, response.text
    assert response.json()["frozen_shift_ids"] == [shift.id]
    assert response.json()["total_frozen"] == 1220

    db.expire_all()
    stored = db.get(Shift, shift.id)
    assert stored.status == ShiftStatus.PAID
    assert float(stored.calculated_salary) == 1220
    assert stored.salary_snapshot["paid_at"]
    assert stored.salary_snapshot["scheme_version"] == 1

    response = client.patch(
        f"/api/clubs/{ids['club_id']}/salary-schemes/{ids['scheme_id']}",
        json={"formula": {"base": {"type": "hourly", "amount": 500}}},
    )
    assert response.status_code == 200, response.text

    [employee] = _summary(client, ids["club_id"])["summary"]
    line = employee["shifts"][0]
    assert line["calculated_salary"] == 1220
    assert line["is_paid"] is True
    assert employee["total_accrued"] == 1220
    # bonus states come from the period bonuses frozen at payout
    assert employee["period_bonuses"][0]["name"] == "Revenue KPI"

    again = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/payout",
        json={"employee_id": ids["employee_id"], "month": 3, "year": 2026},
    )
    assert again.status_code == 200, again.text
    assert again.json()["frozen_shift_ids"] == []
    assert again.json()["skipped_shift_ids"] == [shift.id]


def test_payout_rejects_foreign_shift_ids(client, db):
    ids = seed_club(db)
    add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=1000)

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/payout",
        json={"employee_id": ids["employee_id"], "month": 3, "year": 2026, "shift_ids": [9999]},
    )

    assert response.status_code == 400, response.text


def test_payout_for_unknown_employee(client, db):
    ids = seed_club(db)

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/payout",
        json={"employee_id": 9999, "month": 3, "year": 2026},
    )

    assert response.status_code == 404, response.text


def test_period_bonus_accrual(client, db):
    ids = seed_club(db)
    add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=6000,
              report_data={"bar_revenue": 1000})

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/bonus",
        json={
            "employee_id": ids["employee_id"],
            "amount": 3000,
            "date": "2026-03-31T12:00:00Z",
            "bonus_name": "Revenue KPI",
            "metric_key": "total_revenue",
        },
    )
    assert response.status_code == 201, response.text
    assert response.json()["amount"] == 3000

    [employee] = _summary(client, ids["club_id"])["summary"]
    assert employee["shifts_count"] == 1
    assert employee["total_accrued"] == 4220
    assert employee["breakdown"]["accrued_period_bonuses"] == 3000
    assert employee["shifts"][0]["type"] == "PERIOD_BONUS"
    assert employee["period_bonuses"][0]["is_accrued"] is True


def test_accrual_for_non_member(client, db):
    ids = seed_club(db)

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salaries/bonus",
        json={"employee_id": 9999, "amount": 100, "date": "2026-03-31T12:00:00Z"},
    )

    assert response.status_code == 404, response.text


def test_summary_without_any_scheme_is_a_conflict(client, db):
    ids = seed_club(db, formula=None)
    add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=1000)

    response = client.get(SUMMARY.format(club_id=ids["club_id"]))

    assert response.status_code == 409, response.text


def test_employee_kpi_endpoint(client, db):
    ids = seed_club(db)
    add_shift(db, ids["club_id"], ids["employee_id"], day=2, cash_income=6000)

    response = client.get(f"/api/clubs/{ids['club_id']}/employees/{ids['employee_id']}/kpi?month=3&year=2026")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["shifts_count"] == 1
    assert body["kpi"][0]["current_value"] == 6000
    assert body["kpi"][0]["current_level"] == 1
