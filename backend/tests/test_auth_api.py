"""Tests for registration, login and token refresh."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from database import create_indexes, get_db
from server import app
from fakes import DatabaseProxy, without_lookups_by

REGISTRATION = {
    "hospital": {
        "name": "City General Hospital",
        "license_number": "LIC-2024-001",
        "address": {"street": "12 MG Road", "city": "Pune", "state": "Maharashtra", "pincode": "411001"},
        "contact_email": "contact@cityhospital.in",
        "contact_phone": "9876543210",
    },
    "user": {"name": "Dr. Rao", "email": "Admin@CityHospital.in", "password": "s3cure-pass"},
}


@pytest.fixture
def registered(client):
    response = client.post("/api/auth/register", json=REGISTRATION)
    assert response.status_code == 201
    return response.json()


def auth(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def test_register_creates_hospital_and_administrator(registered, mock_db) -> None:
    user = registered["user"]
    assert user["role"] == "administrator"
    assert user["email"] == "admin@cityhospital.in"
    assert user["hospital"]["license_number"] == "LIC-2024-001"
    assert registered["tokens"]["token_type"] == "bearer"

    stored = asyncio.run(mock_db.users.find_one({"email": "admin@cityhospital.in"}))
    assert stored["password_hash"] != "s3cure-pass"
    hospital = asyncio.run(mock_db.hospitals.find_one({"id": user["hospital"]["id"]}))
    assert hospital["address"]["country"] == "India"


def test_register_rejects_duplicate_license(client, registered) -> None:
    payload = {**REGISTRATION, "user": {**REGISTRATION["user"], "email": "other@cityhospital.in"}}

    response = client.post("/api/auth/register", json=payload)

    assert response.status_code == 400
    assert "license number" in response.json()["detail"]


def test_register_validates_pincode_and_phone(client) -> None:
    hospital = {**REGISTRATION["hospital"], "contact_phone": "12345"}
    response = client.post("/api/auth/register", json={**REGISTRATION, "hospital": hospital})
    assert response.status_code == 422

    address = {**REGISTRATION["hospital"]["address"], "pincode": "41100"}
    hospital = {**REGISTRATION["hospital"], "address": address}
    response = client.post("/api/auth/register", json={**REGISTRATION, "hospital": hospital})
    assert response.status_code == 422


def test_register_rejects_short_password(client) -> None:
    user = {**REGISTRATION["user"], "password": "short"}

    assert client.post("/api/auth/register", json={**REGISTRATION, "user": user}).status_code == 422


def test_login_returns_tokens_scoped_to_hospital(client, registered) -> None:
    response = client.post("/api/auth/login", json={"email": "admin@cityhospital.in", "password": "s3cure-pass"})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["hospital"]["id"] == registered["user"]["hospital"]["id"]

    inventory = client.get("/api/inventory", headers=auth(body["tokens"]))
    assert inventory.status_code == 200


def test_login_with_wrong_password_is_unauthorized(client, registered, mock_db) -> None:
    response = client.post("/api/auth/login", json={"email": "admin@cityhospital.in", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"
    assert asyncio.run(mock_db.audit_logs.count_documents({"action": "login_failed"})) == 1


def test_login_unknown_user_is_unauthorized(client) -> None:
    response = client.post("/api/auth/login", json={"email": "ghost@cityhospital.in", "password": "whatever"})

    assert response.status_code == 401


def test_refresh_issues_new_pair(client, registered) -> None:
    response = client.post("/api/auth/refresh", json={"refresh_token": registered["tokens"]["refresh_token"]})

    assert response.status_code == 200
    assert client.get("/api/auth/me", headers=auth(response.json())).status_code == 200


def test_access_token_cannot_be_used_to_refresh(client, registered) -> None:
    response = client.post("/api/auth/refresh", json={"refresh_token": registered["tokens"]["access_token"]})

    assert response.status_code == 401


def test_refresh_token_cannot_be_used_as_bearer(client, registered) -> None:
    headers = {"Authorization": f"Bearer {registered['tokens']['refresh_token']}"}

    assert client.get("/api/inventory", headers=headers).status_code == 401


def test_me_returns_profile(client, registered) -> None:
    body = client.get("/api/auth/me", headers=auth(registered["tokens"])).json()

    assert body["name"] == "Dr. Rao"
    assert body["hospital"]["name"] == "City General Hospital"


def test_deactivated_staff_cannot_log_in_or_refresh(client, registered) -> None:
    admin = auth(registered["tokens"])
    created = client.post(
        "/api/staff",
        json={"name": "Nurse Meera", "email": "meera@cityhospital.in", "password": "nurse-pass", "role": "staff"},
        headers=admin,
    )
    assert created.status_code == 201
    login = client.post("/api/auth/login", json={"email": "meera@cityhospital.in", "password": "nurse-pass"}).json()

    assert client.put(f"/api/staff/{created.json()['id']}/deactivate", headers=admin).status_code == 200

    response = client.post("/api/auth/login", json={"email": "meera@cityhospital.in", "password": "nurse-pass"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Account is deactivated"
    refresh = client.post("/api/auth/refresh", json={"refresh_token": login["tokens"]["refresh_token"]})
    assert refresh.status_code == 401


def test_deactivated_staff_access_token_stops_working(client, registered, mock_db) -> None:
    admin = auth(registered["tokens"])
    created = client.post(
        "/api/staff",
        json={"name": "Nurse Meera", "email": "meera@cityhospital.in", "password": "nurse-pass", "role": "staff"},
        headers=admin,
    ).json()
    login = client.post("/api/auth/login", json={"email": "meera@cityhospital.in", "password": "nurse-pass"}).json()
    staff = auth(login["tokens"])
    add = {"blood_type": "A+", "quantity_change": 450, "operation": "add"}
    assert client.put("/api/inventory/update", json=add, headers=staff).status_code == 200

    client.put(f"/api/staff/{created['id']}/deactivate", headers=admin)

    response = client.put("/api/inventory/update", json=add, headers=staff)
    assert response.status_code == 403
    assert response.json()["detail"] == "Account is deactivated"
    assert asyncio.run(mock_db.blood_units.count_documents({})) == 1


def test_access_token_for_removed_user_is_rejected(client, registered, mock_db) -> None:
    asyncio.run(mock_db.users.delete_many({}))

    response = client.get("/api/inventory", headers=auth(registered["tokens"]))

    assert response.status_code == 401


def test_concurrent_duplicate_registration_is_rejected(mock_db) -> None:
    asyncio.run(create_indexes(mock_db))
    app.dependency_overrides[get_db] = lambda: DatabaseProxy(
        mock_db,
        hospitals=without_lookups_by(mock_db.hospitals, "license_number"),
        users=without_lookups_by(mock_db.users, "email"),
    )
    try:
        client = TestClient(app)
        assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201

        same_license = client.post("/api/auth/register", json=REGISTRATION)
        hospital = {**REGISTRATION["hospital"], "license_number": "LIC-2024-002"}
        same_email = client.post("/api/auth/register", json={**REGISTRATION, "hospital": hospital})
    finally:
        app.dependency_overrides.clear()

    assert same_license.status_code == 400
    assert same_license.json()["detail"] == "Hospital with this license number already exists"
    assert same_email.status_code == 400
    assert same_email.json()["detail"] == "User with this email already exists"
    assert asyncio.run(mock_db.hospitals.count_documents({})) == 1
