from datetime import date

from leave_service.core import leaves
from leave_service.schemas.leave import LeaveCreate, LeaveUpdate
from tests.conftest import leave_doc, schedule_doc


def _create(**fields):
    data = {
        "personId": "p-1",
        "personType": "soldier",
        "personName": "김철수",
        "personRank": "상병",
        "leaveType": "연가",
        "startDate": "2025-03-01",
        "endDate": "2025-03-05",
        "destination": "부산",
    }
    data.update(fields)
    return LeaveCreate(**data)


def test_calculate_duration_is_inclusive():
    assert leaves.calculate_duration(date(2025, 3, 1), date(2025, 3, 5)) == 5
    assert leaves.calculate_duration(date(2025, 3, 1), date(2025, 3, 1)) == 1


async def test_add_leave_stores_record(db):
    result = await leaves.add_leave(db, _create(status="신청"))

    assert result.success
    assert result.status_code == 201
    assert result.data.duration == 5
    assert result.data.status == "pending"
    stored = await db["leaves"].find_one({"_id": result.data.id})
    assert stored["startDate"] == "2025-03-01"
    assert stored["status"] == "pending"


async def test_add_leave_rejects_same_period(db):
    await leaves.add_leave(db, _create())

    result = await leaves.add_leave(db, _create(destination="대구"))

    assert not result.success
    assert result.status_code == 409
    assert await db["leaves"].count_documents({}) == 1


async def test_add_leave_rejects_unknown_status(db):
    result = await leaves.add_leave(db, _create(status="보류"))

    assert not result.success
    assert result.status_code == 400


async def test_update_leave_recomputes_duration(db):
    await db["leaves"].insert_one(leave_doc("l-1", startDate="2025-03-01", endDate="2025-03-05"))

    result = await leaves.update_leave(db, "l-1", LeaveUpdate(endDate=date(2025, 3, 10)))

    assert result.success
    assert result.data.duration == 10
    assert result.data.endDate.startswith("2025-03-10")


async def test_update_leave_missing_record(db):
    result = await leaves.update_leave(db, "missing", LeaveUpdate(destination="광주"))

    assert not result.success
    assert result.status_code == 404


async def test_update_leave_requires_changes(db):
    result = await leaves.update_leave(db, "l-1", LeaveUpdate())

    assert not result.success
    assert result.status_code == 400


async def test_person_leaves_come_from_both_sources(db):
    await db["leaves"].insert_one(leave_doc("l-1", personId="p-2"))
    await db["schedules"].insert_one(schedule_doc("s-1", userId="p-2"))
    await db["leaves"].insert_one(leave_doc("l-2", personId="p-9"))

    result = await leaves.get_person_leaves(db, "soldier", "p-2")

    assert {r.id for r in result.data} == {"l-1", "s-1"}


async def test_current_leaves_only_approved_and_in_range(db):
    await db["leaves"].insert_many(
        [
            leave_doc("l-1", status="approved", startDate="2025-03-01", endDate="2025-03-05"),
            leave_doc("l-2", status="pending", startDate="2025-03-01", endDate="2025-03-05"),
            leave_doc("l-3", status="approved", startDate="2025-03-06", endDate="2025-03-08"),
        ]
    )

    result = await leaves.get_current_leaves(db, today=date(2025, 3, 5))

    assert [r.id for r in result.data] == ["l-1"]


async def test_leave_stats_for_month(db):
    await db["leaves"].insert_many(
        [
            leave_doc("l-1", startDate="2025-03-01", unit="1중대", status="approved"),
            leave_doc("l-2", startDate="2025-03-20", personType="officer", leaveType="병가", unit="1중대"),
            leave_doc("l-3", startDate="2025-04-02", unit="2중대"),
        ]
    )

    result = await leaves.get_leave_stats(db, 2025, 3)

    assert result.success
    stats = result.data
    assert stats.totalLeaves == 2
    assert stats.personnelStats.soldiers == 1
    assert stats.personnelStats.officers == 1
    assert stats.typeStats == {"연가": 1, "병가": 1}
    assert stats.unitStats == {"1중대": 2}
    assert stats.statusStats == {"approved": 1, "pending": 1}


async def test_leave_stats_for_year(db):
    await db["leaves"].insert_many(
        [
            leave_doc("l-1", startDate="2025-03-01"),
            leave_doc("l-2", startDate="2025-12-31"),
            leave_doc("l-3", startDate="2026-01-01"),
        ]
    )

    result = await leaves.get_leave_stats(db, 2025)

    assert result.data.totalLeaves == 2


async def test_leave_stats_ignore_schedules(db):
    await db["leaves"].insert_one(leave_doc("l-1", startDate="2025-03-01"))
    await db["schedules"].insert_one(schedule_doc("s-1", startDate="2025-03-10", endDate="2025-03-11"))

    result = await leaves.get_leave_stats(db, 2025, 3)

    assert result.data.totalLeaves == 1
    assert result.data.typeStats == {"연가": 1}
