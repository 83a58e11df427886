import logging
import uuid
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from leave_service.core.balances import find_leave_type_index, serialize_balance
from leave_service.core.config import settings
from leave_service.core.converters import PERSON_TYPES
from leave_service.core.exceptions import DuplicateLeaveError
from leave_service.core.normalize import (
    date_part,
    normalize_timestamp,
    to_naive_utc,
    utc_now,
)
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.grant import LeaveGrant, LeaveGrantCreate, PersonLeaveBalance

logger = logging.getLogger(__name__)

GRANTED_LEAVE_TYPE = "grantedLeave"


def _serialize_grant(raw: Dict[str, Any]) -> LeaveGrant:
    return LeaveGrant(
        id=str(raw["_id"]),
        personId=str(raw.get("userId") or ""),
        personName=raw.get("personName") or "이름 없음",
        personRank=raw.get("personRank") or "계급 미상",
        personType=raw.get("personType") if raw.get("personType") in PERSON_TYPES else "soldier",
        leaveTypeName=raw.get("leaveType") or "미지정",
        days=int(raw.get("days") or 0),
        reason=raw.get("reason") or "",
        grantedAt=normalize_timestamp(raw.get("grantedAt")),
        grantedBy=raw.get("grantedBy") or "",
        grantedByName=raw.get("grantedByName") or "",
    )


async def _ensure_not_granted_today(
    db: AsyncIOMotorDatabase,
    payload: LeaveGrantCreate,
    granted_day: str,
) -> None:
    cursor = db[settings.SCHEDULES_COLLECTION].find(
        {
            "userId": payload.personId,
            "type": GRANTED_LEAVE_TYPE,
            "leaveType": payload.leaveTypeName,
        }
    )
    for grant in await cursor.to_list(length=None):
        if not grant.get("grantedAt"):
            continue
        if date_part(normalize_timestamp(grant["grantedAt"])) == granted_day:
            raise DuplicateLeaveError(
                "The same leave type was already granted to this person on this date"
            )


async def grant_leave(
    db: AsyncIOMotorDatabase,
    payload: LeaveGrantCreate,
) -> ApiResponse[PersonLeaveBalance]:
    """
    휴가 부여.
    1) 같은 날 같은 종류를 이미 부여했는지 확인
    2) userLeaves의 해당 휴가 종류 days / remainingDays 증가 (없으면 새로 추가)
    3) schedules에 부여 이력(type=grantedLeave) 기록
    """
    granted_at = to_naive_utc(payload.grantedAt) if payload.grantedAt else utc_now()
    granted_day = date_part(normalize_timestamp(granted_at))
    balances = db[settings.BALANCES_COLLECTION]

    try:
        await _ensure_not_granted_today(db, payload, granted_day)

        balance = await balances.find_one({"_id": payload.personId}) or {}
        leave_types = [dict(entry) for entry in balance.get("leaveTypes") or []]
        now = utc_now()

        idx = find_leave_type_index(leave_types, payload.leaveTypeName)
        if idx is not None:
            entry = leave_types[idx]
            entry["days"] = int(entry.get("days") or 0) + payload.days
            entry["remainingDays"] = int(entry.get("remainingDays") or 0) + payload.days
            entry["updatedAt"] = now
        else:
            leave_types.append(
                {
                    "id": str(uuid.uuid4()),
                    "name": payload.leaveTypeName,
                    "days": payload.days,
                    "remainingDays": payload.days,
                    "isDefault": False,
                    "createdAt": now,
                    "updatedAt": now,
                }
            )

        await balances.update_one(
            {"_id": payload.personId},
            {
                "$set": {
                    "userId": payload.personId,
                    "personType": payload.personType,
                    "personName": payload.personName,
                    "personRank": payload.personRank,
                    "leaveTypes": leave_types,
                    "updatedAt": now,
                }
            },
            upsert=True,
        )

        grant_id = str(ObjectId())
        await db[settings.SCHEDULES_COLLECTION].insert_one(
            {
                "_id": grant_id,
                "id": grant_id,
                "userId": payload.personId,
                "personName": payload.personName or "이름 없음",
                "personRank": payload.personRank or "계급 미상",
                "personType": payload.personType,
                "type": GRANTED_LEAVE_TYPE,
                "leaveType": payload.leaveTypeName,
                "leaveTypes": [
                    {
                        "id": str(uuid.uuid4()),
                        "name": payload.leaveTypeName,
                        "days": payload.days,
                    }
                ],
                "days": payload.days,
                "description": payload.reason,
                "reason": payload.reason,
                "date": granted_at,
                "grantedAt": granted_at,
                "createdAt": now,
                "status": "승인",
            }
        )

        saved = await balances.find_one({"_id": payload.personId})
    except DuplicateLeaveError as exc:
        logger.warning("Leave grant for %s rejected: %s", payload.personId, exc)
        return ApiResponse.from_error(exc)
    except PyMongoError:
        logger.exception("Failed to grant leave to %s", payload.personId)
        return ApiResponse.fail("Failed to grant leave", status_code=502)

    logger.info(
        "Granted %d day(s) of %s to %s(%s)",
        payload.days,
        payload.leaveTypeName,
        payload.personName,
        payload.personRank,
    )
    return ApiResponse.ok(serialize_balance(saved), status_code=201)


async def get_granted_leaves(
    db: AsyncIOMotorDatabase,
    limit: int = 50,
) -> ApiResponse[List[LeaveGrant]]:
    """최근 휴가 부여 내역 (grantedAt 내림차순)."""
    try:
        cursor = (
            db[settings.SCHEDULES_COLLECTION]
            .find({"type": GRANTED_LEAVE_TYPE})
            .sort("grantedAt", -1)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
    except PyMongoError:
        logger.exception("Failed to load granted leaves")
        return ApiResponse.fail("Failed to load granted leaves", status_code=502)

    return ApiResponse.ok([_serialize_grant(doc) for doc in docs])
