import os
from datetime import datetime, timedelta, timezone

# database.py 가 import 되기 전에 테스트용 인메모리 DB로 고정
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RE_REGISTRATION_STORAGE"] = "database"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["SUPERUSER_USERNAME"] = "headquarters"
os.environ["SUPERUSER_EMAIL"] = "hq@fitstudio.kr"
os.environ["SUPERUSER_PASSWORD"] = "hq-secret123"

import pytest
from fastapi.testclient import TestClient

from database import Base, engine
from app import app
from re_registration.service import ReRegistrationService
from re_registration.storage import ConsultationRepository, MemoryStorage, ReRegistrationStore

PASSWORD = "secret123"


class FakeClock:
    """테스트용 고정 시계 (advance 로만 이동)"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    # 2026-03-10 (화요일)
    return FakeClock(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def service(storage, clock):
    store = ReRegistrationStore(storage, "re-registration-data-test", now=clock)
    return ReRegistrationService(ConsultationRepository(store), now=clock)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)


def token_headers(client, username, password=PASSWORD):
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def superuser_headers(client):
    return token_headers(client, os.environ["SUPERUSER_USERNAME"], os.environ["SUPERUSER_PASSWORD"])


def login_headers(client, username, role="staff", gym_id="gangnam"):
    """운영자 등록 → 슈퍼유저가 역할/지점 지정 → Bearer 헤더 반환"""
    response = client.post(
        "/auth/register",
        json={"email": f"{username}@fitstudio.kr", "username": username, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    response = client.patch(
        f"/auth/users/{response.json()['id']}",
        json={"role": role, "gym_id": gym_id},
        headers=superuser_headers(client),
    )
    assert response.status_code == 200, response.text
    return token_headers(client, username)


@pytest.fixture
def staff_headers(client):
    return login_headers(client, "trainer_kim")
