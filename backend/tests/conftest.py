import os
import pytest

os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("DB_NAME", "blood_bank_test")

from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from database import get_db
from server import app

from fakes import OTHER_HOSPITAL_ID, make_user, bearer, seed_user


@pytest.fixture
def mock_db():
    return AsyncMongoMockClient()["blood_bank_test"]


@pytest.fixture
def client(mock_db):
    app.dependency_overrides[get_db] = lambda: mock_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(mock_db):
    user = make_user()
    seed_user(mock_db, user)
    return bearer(user)


@pytest.fixture
def staff_headers(mock_db):
    user = make_user(role="staff", user_id="user-2")
    seed_user(mock_db, user)
    return bearer(user)


@pytest.fixture
def other_hospital_headers(mock_db):
    user = make_user(hospital_id=OTHER_HOSPITAL_ID, user_id="user-9")
    seed_user(mock_db, user)
    return bearer(user)
