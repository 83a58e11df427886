import logging
from typing import Any, List, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from leave_service.core.config import settings
from leave_service.core.normalize import normalize_timestamp, utc_now
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.grant import LeaveTypeBalance, PersonLeaveBalance
from leave_service.schemas.leave import LeaveRecord

logger = logging.getLogger(__name__)


def find_leave_type_index(
    leave_types: List[Mapping[str, Any]],
    name: str,
) -> Optional[int]:
    """leaveTypes 배열에서 이름이 같은(대소문자 무시) 항목의 위치."""
    target = name.casefold()
    for idx, entry in enumerate(leave_types):
        entry_name = entry.get("name")
        if isinstance(entry_name, str) and entry_name.casefold() == target:
            return idx
    return None


def serialize_balance(raw: Mapping[str, Any]) -> PersonLeaveBalance:
    """
    userLeaves Document(dict) -> Pydantic 모델로 변환.
    Timestamp 필드는 ISO 문자열로 맞춘다.
    """
    leave_types = [
        LeaveTypeBalance(
            id=str(entry.get("id") or entry.get("name")),
            name=entry.get("name") or "",
            days=int(entry.get("days") or 0),
            remainingDays=int(entry.get("remainingDays") or 0),
            isDefault=bool(entry.get("isDefault", False)),
            createdAt=normalize_timestamp(entry["createdAt"]) if entry.get("createdAt") else None,
            updatedAt=normalize_timestamp(entry["updatedAt"]) if entry.get("updatedAt") else None,
        )
        for entry in raw.get("leaveTypes") or []
    ]
    return PersonLeaveBalance(
        userId=str(raw.get("userId") or raw["_id"]),
        personType=raw.get("personType"),
        personName=raw.get("personName"),
        personRank=raw.get("personRank"),
        leaveTypes=leave_types,
        updatedAt=normalize_timestamp(raw["updatedAt"]) if raw.get("updatedAt") else None,
    )


async def deduct_leave_balance(db: AsyncIOMotorDatabase, leave: LeaveRecord) -> None:
    """
    휴가 승인 시 해당 인원의 잔여 일수를 duration 만큼 차감 (0 미만으로 내려가지 않음).
    잔여 일수 관리는 best-effort 이므로, 여기서 발생한 오류는 로그만 남기고 삼킨다.
    """
    try:
        balances = db[settings.BALANCES_COLLECTION]
        balance = await balances.find_one({"_id": leave.personId})
        if balance is None:
            logger.info(
                "No leave balance for person %s, skipping deduction",
                leave.personId,
            )
            return

        leave_types = [dict(entry) for entry in balance.get("leaveTypes") or []]
        idx = find_leave_type_index(leave_types, leave.leaveType)
        if idx is None:
            logger.info(
                "Leave type %r not found in balance of person %s, skipping deduction",
                leave.leaveType,
                leave.personId,
            )
            return

        now = utc_now()
        entry = leave_types[idx]
        remaining = max(0, int(entry.get("remainingDays") or 0) - leave.duration)
        entry["remainingDays"] = remaining
        entry["updatedAt"] = now

        await balances.update_one(
            {"_id": balance["_id"]},
            {"$set": {"leaveTypes": leave_types, "updatedAt": now}},
        )
        logger.info(
            "Deducted %d day(s) of %s from %s, remaining=%d",
            leave.duration,
            leave.leaveType,
            leave.personName or leave.personId,
            remaining,
        )
    except (PyMongoError, TypeError, ValueError):
        logger.exception("Failed to deduct leave balance for person %s", leave.personId)


async def get_leave_balance(
    db: AsyncIOMotorDatabase,
    person_id: str,
) -> ApiResponse[PersonLeaveBalance]:
    try:
        raw = await db[settings.BALANCES_COLLECTION].find_one({"_id": person_id})
    except PyMongoError:
        logger.exception("Failed to read leave balance of person %s", person_id)
        return ApiResponse.fail("Failed to load leave balance", status_code=502)

    if raw is None:
        return ApiResponse.fail(f"No leave balance for person {person_id}", status_code=404)
    return ApiResponse.ok(serialize_balance(raw))
