# backend/tests/test_employees_api.py

import pytest

from .fakes import FakeConnection


def _employee_payload(**overrides) -> dict:
    payload = {
        "first_name": "Linus",
        "last_name": "Pauling",
        "email": "linus@example.com",
        "position": "Chemist",
        "department": "Research",
        "salary": 72000,
    }
    payload.update(overrides)
    return payload


def test_employee_crud(client, admin, employee, db):
    created = client.post("/api/employees", json=_employee_payload(), headers=admin["headers"])
    assert created.status_code == 201
    record = created.json()
    assert record["status"] == "active"
    assert record["hire_date"]

    listed = client.get("/api/employees", headers=employee["headers"]).json()
    assert [e["id"] for e in listed] == [record["id"]]

    fetched = client.get(f"/api/employees/{record['id']}", headers=employee["headers"])
    assert fetched.json()["email"] == "linus@example.com"

    updated = client.put(
        f"/api/employees/{record['id']}",
        json=_employee_payload(department="Teaching", status="on leave"),
        headers=admin["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["department"] == "Teaching"
    assert updated.json()["status"] == "on leave"

    deleted = client.delete(f"/api/employees/{record['id']}", headers=admin["headers"])
    assert deleted.json() == {"message": "Employee deleted successfully"}
    assert db["employees"].docs == []
    assert client.get(f"/api/employees/{record['id']}", headers=admin["headers"]).status_code == 404


def test_employee_reads_require_auth(client):
    assert client.get("/api/employees").status_code == 401


def test_mutations_are_admin_only(client, admin, employee):
    assert client.post("/api/employees", json=_employee_payload(), headers=employee["headers"]).status_code == 403

    record = client.post("/api/employees", json=_employee_payload(), headers=admin["headers"]).json()
    url = f"/api/employees/{record['id']}"
    assert client.put(url, json=_employee_payload(), headers=employee["headers"]).status_code == 403
    assert client.delete(url, headers=employee["headers"]).status_code == 403


@pytest.mark.parametrize("overrides", [
    {"email": "not-an-email"},
    {"salary": "a lot"},
    {"position": "  "},
    {"salary": -1},
    {"status": "retired"},
])
def test_invalid_employee_is_rejected(client, admin, db, overrides):
    response = client.post("/api/employees", json=_employee_payload(**overrides), headers=admin["headers"])
    assert response.status_code == 400
    assert db["employees"].docs == []


@pytest.mark.parametrize("missing", ["first_name", "last_name", "email", "position", "department", "salary"])
def test_required_fields(client, admin, missing):
    payload = _employee_payload()
    del payload[missing]
    response = client.post("/api/employees", json=payload, headers=admin["headers"])
    assert response.status_code == 400


def test_update_requires_full_record(client, admin):
    record = client.post("/api/employees", json=_employee_payload(), headers=admin["headers"]).json()
    response = client.put(f"/api/employees/{record['id']}", json={"department": "X"}, headers=admin["headers"])
    assert response.status_code == 400


def test_duplicate_employee_email(client, admin, db):
    client.post("/api/employees", json=_employee_payload(), headers=admin["headers"])
    response = client.post(
        "/api/employees",
        json=_employee_payload(email="LINUS@example.com"),
        headers=admin["headers"],
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Employee with this email already exists"
    assert len(db["employees"].docs) == 1


def test_update_may_keep_own_email(client, admin):
    record = client.post("/api/employees", json=_employee_payload(), headers=admin["headers"]).json()
    response = client.put(f"/api/employees/{record['id']}", json=_employee_payload(), headers=admin["headers"])
    assert response.status_code == 200


def test_link_to_user_must_exist(client, admin, employee):
    bad = client.post("/api/employees", json=_employee_payload(user_id="ghost"), headers=admin["headers"])
    assert bad.status_code == 400

    good = client.post("/api/employees", json=_employee_payload(user_id=employee["id"]), headers=admin["headers"])
    assert good.status_code == 201
    assert good.json()["user_id"] == employee["id"]


def test_unknown_employee(client, admin):
    assert client.put("/api/employees/nope", json=_employee_payload(), headers=admin["headers"]).status_code == 404
    assert client.delete("/api/employees/nope", headers=admin["headers"]).status_code == 404


def test_employee_changes_are_broadcast(client, admin, fresh_hub):
    watcher = FakeConnection()
    fresh_hub.register(watcher)

    record = client.post("/api/employees", json=_employee_payload(), headers=admin["headers"]).json()
    client.put(f"/api/employees/{record['id']}", json=_employee_payload(position="Lead"), headers=admin["headers"])
    client.delete(f"/api/employees/{record['id']}", headers=admin["headers"])

    assert watcher.events("employee-created") == [record]
    assert watcher.events("employee-updated")[0]["position"] == "Lead"
    assert watcher.events("employee-deleted") == [{"id": record["id"]}]
