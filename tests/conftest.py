import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from leave_service.core.db import get_database
from leave_service.main import app


@pytest.fixture
def db():
    """테스트마다 새로운 in-memory MongoDB."""
    return AsyncMongoMockClient()["military_test"]


@pytest.fixture
async def client(db):
    async def override_get_database():
        yield db

    app.dependency_overrides[get_database] = override_get_database
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def leave_doc(_id, **fields):
    doc = {
        "_id": _id,
        "personId": "p-1",
        "personType": "soldier",
        "personName": "김철수",
        "personRank": "상병",
        "leaveType": "연가",
        "startDate": "2025-03-01",
        "endDate": "2025-03-05",
        "duration": 5,
        "destination": "서울",
        "status": "pending",
        "createdAt": "2025-02-20T09:00:00.000Z",
        "updatedAt": "2025-02-20T09:00:00.000Z",
    }
    doc.update(fields)
    return doc


def schedule_doc(_id, **fields):
    doc = {
        "_id": _id,
        "type": "leave",
        "userId": "p-2",
        "personType": "soldier",
        "requesterName": "이영희",
        "requesterRank": "일병",
        "leaveTypes": [{"id": "a", "name": "포상휴가", "days": 2}],
        "startDate": "2025-04-10",
        "endDate": "2025-04-11",
        "days": 2,
        "reason": "가족 행사",
        "status": "신청",
        "requestedAt": "2025-04-01T08:00:00.000Z",
    }
    doc.update(fields)
    return doc


def balance_doc(person_id, *entries):
    return {
        "_id": person_id,
        "userId": person_id,
        "personType": "soldier",
        "personName": "김철수",
        "personRank": "상병",
        "leaveTypes": [
            {"id": name, "name": name, "days": days, "remainingDays": remaining}
            for name, days, remaining in entries
        ],
    }
