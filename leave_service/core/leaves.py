import logging
from collections import Counter
from datetime import date
from typing import Any, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from leave_service.core.converters import from_leaves_collection
from leave_service.core.data_layer import (
    LEAVES_SOURCE,
    get_integrated_leaves,
    get_leaves_from_collection,
    get_source_collection,
    id_filter,
)
from leave_service.core.exceptions import (
    DuplicateLeaveError,
    InvalidLeaveRequestError,
    LeaveNotFoundError,
    LeaveServiceError,
)
from leave_service.core.normalize import (
    CANONICAL_STATUSES,
    date_part,
    normalize_status,
    normalize_timestamp,
    utc_now,
)
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.leave import (
    LeaveCreate,
    LeaveFilters,
    LeaveRecord,
    LeaveStats,
    LeaveTypeOption,
    LeaveUpdate,
    PersonnelStats,
)

logger = logging.getLogger(__name__)

# 휴가 종류 기본 목록
DEFAULT_LEAVE_TYPES: List[LeaveTypeOption] = [
    LeaveTypeOption(id="annual", name="연가"),
    LeaveTypeOption(id="reward", name="포상휴가"),
    LeaveTypeOption(id="medical", name="병가"),
    LeaveTypeOption(id="special", name="위로휴가"),
    LeaveTypeOption(id="other", name="기타"),
]


def calculate_duration(start: date, end: date) -> int:
    """시작일과 종료일을 모두 포함한 휴가 일수."""
    return abs((end - start).days) + 1


def _stored_date(value: Any) -> date:
    return date.fromisoformat(date_part(normalize_timestamp(value)))


async def add_leave(
    db: AsyncIOMotorDatabase,
    payload: LeaveCreate,
) -> ApiResponse[LeaveRecord]:
    """
    새 휴가 신청 (leaves 컬렉션).
    같은 인원, 같은 기간의 휴가가 이미 있으면 거절.
    """
    collection = get_source_collection(db, LEAVES_SOURCE)
    start = payload.startDate.isoformat()
    end = payload.endDate.isoformat()

    try:
        status = normalize_status(payload.status)
        if status not in CANONICAL_STATUSES:
            raise InvalidLeaveRequestError(f"Unsupported leave status: {payload.status}")

        existing = await collection.find_one(
            {"personId": payload.personId, "startDate": start, "endDate": end}
        )
        if existing is not None:
            raise DuplicateLeaveError("A leave for the same period is already registered")

        now = utc_now()
        doc = {
            **payload.model_dump(mode="json"),
            "_id": str(ObjectId()),
            "startDate": start,
            "endDate": end,
            "status": status,
            "duration": calculate_duration(payload.startDate, payload.endDate),
            "createdAt": now,
            "updatedAt": now,
        }
        await collection.insert_one(doc)
    except LeaveServiceError as exc:
        logger.warning("Leave request for %s rejected: %s", payload.personId, exc)
        return ApiResponse.from_error(exc)
    except PyMongoError:
        logger.exception("Failed to add leave for %s", payload.personId)
        return ApiResponse.fail("Failed to add leave", status_code=502)

    logger.info(
        "Added leave %s for %s (%s ~ %s, %d days)",
        doc["_id"],
        payload.personId,
        start,
        end,
        doc["duration"],
    )
    return ApiResponse.ok(from_leaves_collection(doc), status_code=201)


async def update_leave(
    db: AsyncIOMotorDatabase,
    leave_id: str,
    payload: LeaveUpdate,
) -> ApiResponse[LeaveRecord]:
    """
    leaves 컬렉션의 휴가 정보 부분 수정.
    날짜가 바뀌면 duration을 다시 계산한다.
    """
    changes = payload.model_dump(exclude_unset=True, mode="json")
    if not changes:
        return ApiResponse.fail("At least one field must be provided", status_code=400)

    collection = get_source_collection(db, LEAVES_SOURCE)
    try:
        doc = await collection.find_one(id_filter(leave_id))
        if doc is None:
            raise LeaveNotFoundError(f"Leave record {leave_id} was not found")

        if payload.startDate is not None or payload.endDate is not None:
            start = payload.startDate or _stored_date(doc.get("startDate"))
            end = payload.endDate or _stored_date(doc.get("endDate"))
            changes["duration"] = calculate_duration(start, end)

        changes["updatedAt"] = utc_now()
        await collection.update_one({"_id": doc["_id"]}, {"$set": changes})
        updated = await collection.find_one({"_id": doc["_id"]})
    except LeaveServiceError as exc:
        return ApiResponse.from_error(exc)
    except PyMongoError:
        logger.exception("Failed to update leave %s", leave_id)
        return ApiResponse.fail("Failed to update leave", status_code=502)

    return ApiResponse.ok(from_leaves_collection(updated))


async def get_person_leaves(
    db: AsyncIOMotorDatabase,
    person_type: str,
    person_id: str,
) -> ApiResponse[List[LeaveRecord]]:
    return await get_integrated_leaves(
        db, LeaveFilters(personType=person_type, personId=person_id)
    )


async def get_current_leaves(
    db: AsyncIOMotorDatabase,
    today: Optional[date] = None,
) -> ApiResponse[List[LeaveRecord]]:
    """
    오늘 휴가 중인 인원 (승인 + 시작일 <= 오늘 <= 종료일).
    schedules의 휴가 부여 이력이 섞이지 않도록 leaves 컬렉션만 본다.
    """
    today_str = (today or utc_now().date()).isoformat()

    result = await get_leaves_from_collection(db, LeaveFilters(status="approved"))
    if not result.success:
        return result

    current = [
        leave
        for leave in result.data
        if date_part(leave.startDate) <= today_str <= date_part(leave.endDate)
    ]
    logger.info("%d person(s) on leave as of %s", len(current), today_str)
    return ApiResponse.ok(current)


def _period(year: int, month: Optional[int]) -> Tuple[date, date]:
    if month is None:
        return date(year, 1, 1), date(year + 1, 1, 1)
    if month == 12:
        return date(year, 12, 1), date(year + 1, 1, 1)
    return date(year, month, 1), date(year, month + 1, 1)


async def get_leave_stats(
    db: AsyncIOMotorDatabase,
    year: int,
    month: Optional[int] = None,
) -> ApiResponse[LeaveStats]:
    """
    기간(연간 또는 월간) 휴가 통계.
    시작일이 기간 안에 있는 휴가를 유형별 / 부대별 / 상태별 / 인원 구분별로 집계.
    """
    try:
        start, end = _period(year, month)
    except ValueError:
        return ApiResponse.fail(f"Invalid period: year={year}, month={month}", status_code=400)

    result = await get_leaves_from_collection(
        db, LeaveFilters(startAfter=start.isoformat())
    )
    if not result.success:
        return result

    leaves = [
        leave
        for leave in result.data
        if start.isoformat() <= date_part(leave.startDate) < end.isoformat()
    ]
    person_types = Counter(leave.personType for leave in leaves)

    stats = LeaveStats(
        totalLeaves=len(leaves),
        personnelStats=PersonnelStats(
            soldiers=person_types["soldier"],
            officers=person_types["officer"],
        ),
        typeStats=dict(Counter(leave.leaveType for leave in leaves)),
        unitStats=dict(Counter(leave.unit for leave in leaves if leave.unit)),
        statusStats=dict(Counter(leave.status for leave in leaves)),
    )
    return ApiResponse.ok(stats)
