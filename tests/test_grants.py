from datetime import datetime

from leave_service.core import balances, grants
from leave_service.schemas.grant import LeaveGrantCreate
from tests.conftest import balance_doc


def _grant(**fields):
    data = {
        "personType": "soldier",
        "personId": "p-1",
        "personName": "김철수",
        "personRank": "상병",
        "leaveTypeName": "포상휴가",
        "days": 2,
        "grantedAt": datetime(2025, 3, 1, 9, 0),
    }
    data.update(fields)
    return LeaveGrantCreate(**data)


async def test_grant_creates_balance_and_history(db):
    result = await grants.grant_leave(db, _grant())

    assert result.success
    assert result.status_code == 201
    entry = result.data.leaveTypes[0]
    assert (entry.name, entry.days, entry.remainingDays) == ("포상휴가", 2, 2)

    history = await db["schedules"].find_one({"type": "grantedLeave"})
    assert history["userId"] == "p-1"
    assert history["days"] == 2


async def test_grant_accumulates_on_existing_type(db):
    await db["userLeaves"].insert_one(balance_doc("p-1", ("포상휴가", 3, 1)))

    result = await grants.grant_leave(db, _grant(leaveTypeName="포상휴가", days=2))

    entry = result.data.leaveTypes[0]
    assert (entry.days, entry.remainingDays) == (5, 3)


async def test_same_grant_on_same_day_is_rejected(db):
    await grants.grant_leave(db, _grant())

    result = await grants.grant_leave(db, _grant(grantedAt=datetime(2025, 3, 1, 18, 0)))

    assert not result.success
    assert result.status_code == 409
    assert await db["schedules"].count_documents({"type": "grantedLeave"}) == 1


async def test_granted_leaves_newest_first(db):
    await grants.grant_leave(db, _grant(grantedAt=datetime(2025, 3, 1)))
    await grants.grant_leave(db, _grant(grantedAt=datetime(2025, 4, 1)))

    result = await grants.get_granted_leaves(db)

    assert [g.grantedAt[:10] for g in result.data] == ["2025-04-01", "2025-03-01"]
    assert result.data[0].leaveTypeName == "포상휴가"


async def test_grant_history_shows_up_as_leave_record(db):
    from leave_service.core.data_layer import get_schedules_as_leaves

    await grants.grant_leave(db, _grant())

    result = await get_schedules_as_leaves(db)

    assert len(result.data) == 1
    record = result.data[0]
    assert record.leaveType == "포상휴가"
    assert record.status == "approved"
    assert record.startDate == "2025-03-01T09:00:00.000Z"


async def test_get_leave_balance(db):
    await db["userLeaves"].insert_one(balance_doc("p-1", ("연가", 10, 7)))

    found = await balances.get_leave_balance(db, "p-1")
    missing = await balances.get_leave_balance(db, "p-2")

    assert found.data.leaveTypes[0].remainingDays == 7
    assert missing.status_code == 404
