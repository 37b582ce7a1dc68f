import os
import tempfile
from typing import Generator

import pytest
from fastapi.testclient import TestClient

_scratch = tempfile.mkdtemp(prefix="reservations-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch, "uploads"))
os.environ.setdefault("LOG_DIR", os.path.join(_scratch, "logs"))

from reservation_core.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from reservation_core.database import Base, SessionLocal, engine  # noqa: E402
from services.bookings.app import app as bookings_app  # noqa: E402
from services.resources.app import app as resources_app  # noqa: E402
from services.resources.app import listing_cache  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

ADMIN_PAYLOAD = {
    "full_name": "Admin",
    "email": "admin@alkhidmat.org",
    "password": "Passw0rd!",
    "role": "admin",
}

USER_PAYLOAD = {
    "full_name": "Regular User",
    "email": "user1@alkhidmat.org",
    "password": "Passw0rd!",
}


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    listing_cache.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def resources_client() -> Generator[TestClient, None, None]:
    with TestClient(resources_app) as client:
        yield client


@pytest.fixture()
def bookings_client() -> Generator[TestClient, None, None]:
    with TestClient(bookings_app) as client:
        yield client


def auth_header(users_client: TestClient, email: str, password: str) -> dict[str, str]:
    response = users_client.post("/login", json={"email": email, "password": password})
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(users_client) -> dict[str, str]:
    users_client.post("/register", json=ADMIN_PAYLOAD)
    return auth_header(users_client, ADMIN_PAYLOAD["email"], ADMIN_PAYLOAD["password"])


@pytest.fixture()
def user_id(users_client) -> int:
    return users_client.post("/register", json=USER_PAYLOAD).json()["user_id"]


@pytest.fixture()
def user_headers(users_client, user_id) -> dict[str, str]:
    return auth_header(users_client, USER_PAYLOAD["email"], USER_PAYLOAD["password"])


@pytest.fixture()
def room_id(resources_client, admin_headers) -> int:
    response = resources_client.post(
        "/rooms",
        data={"room_name": "Board Room", "capacity": "10"},
        headers=admin_headers,
    )
    return response.json()["room_id"]


@pytest.fixture()
def vehicle_id(resources_client, admin_headers) -> int:
    response = resources_client.post(
        "/vehicles",
        data={"vehicle_name": "Hiace", "vehicle_number": "LEA-1234", "capacity": "12"},
        headers=admin_headers,
    )
    return response.json()["vehicle_id"]
