from clubpay.models.club import ClubEmployee, Employee
from clubpay.models.salary_scheme import EmployeeSalaryAssignment

from factories import HOURLY_WITH_KPI, seed_club


def test_create_and_version_scheme(client, db):
    ids = seed_club(db, formula=None)
    base = f"/api/clubs/{ids['club_id']}/salary-schemes"

    response = client.post(base, json={"name": "Cashiers", "formula": HOURLY_WITH_KPI})
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["version"] == 1
    assert len(created["versions"]) == 1

    response = client.patch(
        f"{base}/{created['id']}",
        json={"description": "after review", "formula": {"base": {"type": "per_shift", "amount": 2500}}},
    )
    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["version"] == 2
    assert updated["formula"]["base"]["type"] == "per_shift"
    assert [v["version"] for v in updated["versions"]] == [2, 1]
    assert updated["versions"][1]["formula"] == HOURLY_WITH_KPI
    assert updated["description"] == "after review"

    response = client.patch(f"{base}/{created['id']}", json={"name": "Senior cashiers"})
    assert response.json()["version"] == 2

    listed = client.get(base).json()
    assert [s["name"] for s in listed] == ["Senior cashiers"]


def test_invalid_formula_is_rejected(client, db):
    ids = seed_club(db, formula=None)

    response = client.post(
        f"/api/clubs/{ids['club_id']}/salary-schemes",
        json={"name": "Broken", "formula": {"period_bonuses": [{"type": "PROGRESSIVE",
                                                                "thresholds": [{"from": "many"}]}]}},
    )

    assert response.status_code == 422, response.text


def test_unknown_scheme(client, db):
    ids = seed_club(db, formula=None)
    assert client.get(f"/api/clubs/{ids['club_id']}/salary-schemes/9999").status_code == 404


def test_assign_and_unassign_scheme(client, db):
    ids = seed_club(db)
    other = Employee(full_name="Boris")
    db.add(other)
    db.flush()
    db.add(ClubEmployee(club_id=ids["club_id"], employee_id=other.id))
    db.commit()
    url = f"/api/clubs/{ids['club_id']}/employees/{other.id}/salary-scheme"

    response = client.put(url, json={"scheme_id": ids["scheme_id"]})
    assert response.status_code == 200, response.text
    assert response.json() == {"employee_id": other.id, "scheme_id": ids["scheme_id"], "removed": False}

    response = client.put(url, json={"scheme_id": None})
    assert response.status_code == 200, response.text
    assert response.json()["removed"] is True

    db.expire_all()
    assert db.query(EmployeeSalaryAssignment).filter_by(employee_id=other.id).first() is None


def test_assignment_requires_membership_and_scheme(client, db):
    ids = seed_club(db)

    response = client.put(
        f"/api/clubs/{ids['club_id']}/employees/9999/salary-scheme", json={"scheme_id": ids["scheme_id"]}
    )
    assert response.status_code == 404, response.text

    response = client.put(
        f"/api/clubs/{ids['club_id']}/employees/{ids['employee_id']}/salary-scheme", json={"scheme_id": 9999}
    )
    assert response.status_code == 404, response.text
