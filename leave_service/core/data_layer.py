"""
통합 휴가 데이터 계층.

휴가 데이터는 두 컬렉션에 나뉘어 있다.
- leaves    : 웹 관리자 화면에서 직접 등록한 휴가
- schedules : 모바일 앱의 일정 신청(휴가/외출/외진 ...) 및 휴가 부여 이력
두 컬렉션을 동시에 조회해 LeaveRecord 한 종류로 합쳐 돌려주고,
id 하나로 상태를 바꾸거나 삭제할 때는 두 컬렉션을 정해진 순서로 찾아본다.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from leave_service.core.balances import deduct_leave_balance
from leave_service.core.config import settings
from leave_service.core.converters import (
    from_leaves_collection,
    from_schedules_collection,
)
from leave_service.core.exceptions import (
    InvalidLeaveRequestError,
    LeaveNotFoundError,
    LeaveServiceError,
)
from leave_service.core.normalize import (
    CANONICAL_STATUSES,
    date_part,
    normalize_status,
    parse_datetime,
    status_synonyms,
    utc_now,
)
from leave_service.schemas.common import ApiResponse
from leave_service.schemas.leave import LeaveFilters, LeaveRecord

logger = logging.getLogger(__name__)

LEAVES_SOURCE = "leaves"
SCHEDULES_SOURCE = "schedules"

# schedules 컬렉션에서 휴가로 취급하는 일정 type
LEAVE_SCHEDULE_TYPES = ["leave", "휴가", "grantedLeave"]

_CONVERTERS: Dict[str, Callable[[Mapping[str, Any]], LeaveRecord]] = {
    LEAVES_SOURCE: from_leaves_collection,
    SCHEDULES_SOURCE: from_schedules_collection,
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def get_source_collection(db: AsyncIOMotorDatabase, source: str) -> AsyncIOMotorCollection:
    names = {
        LEAVES_SOURCE: settings.LEAVES_COLLECTION,
        SCHEDULES_SOURCE: settings.SCHEDULES_COLLECTION,
    }
    if source not in names:
        raise InvalidLeaveRequestError(f"Unsupported collection: {source}")
    return db[names[source]]


def id_filter(leave_id: str) -> Dict[str, Any]:
    """
    문서 id 조건. 이 서비스는 _id를 문자열로 저장하지만,
    다른 경로로 들어온 ObjectId _id 문서도 찾을 수 있게 둘 다 본다.
    """
    if ObjectId.is_valid(leave_id):
        return {"_id": {"$in": [leave_id, ObjectId(leave_id)]}}
    return {"_id": leave_id}


def _start_date_key(record: LeaveRecord) -> datetime:
    parsed = parse_datetime(record.startDate)
    if parsed is None:
        return _EPOCH
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_by_start_date(records: List[LeaveRecord]) -> List[LeaveRecord]:
    """시작일 내림차순 (같은 시작일이면 원래 순서 유지)."""
    return sorted(records, key=_start_date_key, reverse=True)


def _matches(record: LeaveRecord, filters: LeaveFilters) -> bool:
    # DB에서 걸러지지 않은 조건은 변환 후 여기서 다시 확인
    if filters.status and record.status != normalize_status(filters.status):
        return False
    if filters.startAfter and date_part(record.startDate) < date_part(filters.startAfter):
        return False
    if filters.endBefore and date_part(record.endDate) > date_part(filters.endBefore):
        return False
    if filters.personType and record.personType != filters.personType:
        return False
    if filters.personId and record.personId != filters.personId:
        return False
    if filters.unit and record.unit != filters.unit:
        return False
    return True


def _lower_bound(field: str, bound: str) -> Dict[str, Any]:
    """문자열/BSON date 어느 쪽으로 저장돼 있어도 걸리도록 두 조건을 $or로 묶는다."""
    day = date.fromisoformat(date_part(bound))
    return {
        "$or": [
            {field: {"$gte": day.isoformat()}},
            {field: {"$gte": datetime(day.year, day.month, day.day)}},
            # 휴가 부여 이력처럼 startDate가 없는 문서는 변환 후 다시 거른다
            {field: None},
        ]
    }


def _upper_bound(field: str, bound: str) -> Dict[str, Any]:
    # 날짜 단위 비교: 'YYYY-MM-DDT..' 문자열도 포함되도록 다음 날 0시 미만으로 조회
    next_day = date.fromisoformat(date_part(bound)) + timedelta(days=1)
    return {
        "$or": [
            {field: {"$lt": next_day.isoformat()}},
            {field: {"$lt": datetime(next_day.year, next_day.month, next_day.day)}},
            # endDate가 없으면 startDate로 대체되므로 일단 가져온 뒤 다시 거른다
            {field: None},
        ]
    }


def _convert_documents(docs: List[Mapping[str, Any]], source: str) -> List[LeaveRecord]:
    """변환할 수 없는 문서 하나 때문에 전체 목록이 실패하지 않도록 해당 문서만 건너뛴다."""
    convert = _CONVERTERS[source]
    records = []
    for doc in docs:
        try:
            records.append(convert(doc))
        except (ValidationError, KeyError):
            logger.warning(
                "Skipping malformed document %s in %s",
                doc.get("_id"),
                source,
                exc_info=True,
            )
    return records


async def _fetch_leaves(db: AsyncIOMotorDatabase, filters: LeaveFilters) -> List[LeaveRecord]:
    query: Dict[str, Any] = {}
    if filters.personId:
        query["personId"] = filters.personId
    elif filters.personType:
        query["personType"] = filters.personType

    cursor = get_source_collection(db, LEAVES_SOURCE).find(query)
    docs = await cursor.to_list(length=None)
    records = _convert_documents(docs, LEAVES_SOURCE)
    return [r for r in records if _matches(r, filters)]


async def _fetch_schedules(db: AsyncIOMotorDatabase, filters: LeaveFilters) -> List[LeaveRecord]:
    query: Dict[str, Any] = {"type": {"$in": LEAVE_SCHEDULE_TYPES}}
    if filters.personId:
        query["userId"] = filters.personId
    if filters.status:
        canonical = normalize_status(filters.status)
        tokens: List[Any] = status_synonyms(canonical)
        if canonical == "pending":
            # 상태가 비어 있는 일정은 pending으로 변환됨
            tokens.extend([None, ""])
        query["status"] = {"$in": tokens}

    ranges = []
    if filters.startAfter:
        ranges.append(_lower_bound("startDate", filters.startAfter))
    if filters.endBefore:
        ranges.append(_upper_bound("endDate", filters.endBefore))
    if ranges:
        query["$and"] = ranges

    cursor = get_source_collection(db, SCHEDULES_SOURCE).find(query)
    docs = await cursor.to_list(length=None)
    records = _convert_documents(docs, SCHEDULES_SOURCE)
    return [r for r in records if _matches(r, filters)]


def _limited(records: List[LeaveRecord], filters: LeaveFilters) -> List[LeaveRecord]:
    records = sort_by_start_date(records)
    if filters.limit:
        return records[: filters.limit]
    return records


async def get_leaves_from_collection(
    db: AsyncIOMotorDatabase,
    filters: Optional[LeaveFilters] = None,
) -> ApiResponse[List[LeaveRecord]]:
    """leaves 컬렉션만 조회."""
    filters = filters or LeaveFilters()
    try:
        records = await _fetch_leaves(db, filters)
    except PyMongoError:
        logger.exception("Failed to query the leaves collection")
        return ApiResponse.fail("Failed to load leave records", status_code=502)
    return ApiResponse.ok(_limited(records, filters))


async def get_schedules_as_leaves(
    db: AsyncIOMotorDatabase,
    filters: Optional[LeaveFilters] = None,
) -> ApiResponse[List[LeaveRecord]]:
    """schedules 컬렉션의 휴가성 일정만 조회해 LeaveRecord로 변환."""
    filters = filters or LeaveFilters()
    try:
        records = await _fetch_schedules(db, filters)
    except PyMongoError:
        logger.exception("Failed to query the schedules collection")
        return ApiResponse.fail("Failed to load schedule records", status_code=502)
    return ApiResponse.ok(_limited(records, filters))


async def get_integrated_leaves(
    db: AsyncIOMotorDatabase,
    filters: Optional[LeaveFilters] = None,
) -> ApiResponse[List[LeaveRecord]]:
    """
    통합 휴가 조회.
    1) leaves / schedules 두 컬렉션을 동시에 조회
    2) DB에서 못 거른 조건(상태 동의어, 날짜 범위, personType 등)은 변환 후 필터링
    3) 병합 -> 시작일 내림차순 정렬 -> limit 적용
    """
    filters = filters or LeaveFilters()
    try:
        from_leaves, from_schedules = await asyncio.gather(
            _fetch_leaves(db, filters),
            _fetch_schedules(db, filters),
        )
    except PyMongoError:
        logger.exception("Failed to query leave sources")
        return ApiResponse.fail("Failed to load leave records", status_code=502)

    logger.debug(
        "Integrated leaves: %d from leaves, %d from schedules",
        len(from_leaves),
        len(from_schedules),
    )
    return ApiResponse.ok(_limited([*from_leaves, *from_schedules], filters))


async def locate_leave_document(
    db: AsyncIOMotorDatabase,
    leave_id: str,
    preferred_collection: str = LEAVES_SOURCE,
) -> Tuple[str, Dict[str, Any]]:
    """
    id로 문서를 찾는다. preferred_collection을 먼저 보고, 없으면 나머지 컬렉션을 본다.
    처음 찾은 문서를 (컬렉션 이름, 문서) 로 돌려주고, 둘 다 없으면 LeaveNotFoundError.
    """
    preferred = get_source_collection(db, preferred_collection)
    alternative_name = (
        SCHEDULES_SOURCE if preferred_collection == LEAVES_SOURCE else LEAVES_SOURCE
    )

    doc = None
    try:
        doc = await preferred.find_one(id_filter(leave_id))
    except PyMongoError:
        logger.warning(
            "Probe of %s for %s failed, trying %s",
            preferred_collection,
            leave_id,
            alternative_name,
            exc_info=True,
        )
    if doc is not None:
        return preferred_collection, doc

    logger.info(
        "Document %s not found in %s, trying %s",
        leave_id,
        preferred_collection,
        alternative_name,
    )
    doc = await get_source_collection(db, alternative_name).find_one(id_filter(leave_id))
    if doc is None:
        raise LeaveNotFoundError(
            f"Leave record {leave_id} was not found in leaves or schedules"
        )
    return alternative_name, doc


async def get_leave(
    db: AsyncIOMotorDatabase,
    leave_id: str,
    preferred_collection: str = LEAVES_SOURCE,
) -> ApiResponse[LeaveRecord]:
    try:
        source, doc = await locate_leave_document(db, leave_id, preferred_collection)
        record = _CONVERTERS[source](doc)
    except LeaveServiceError as exc:
        return ApiResponse.from_error(exc)
    except ValidationError:
        logger.warning("Leave %s is malformed", leave_id, exc_info=True)
        return ApiResponse.fail(f"Leave record {leave_id} is malformed", status_code=422)
    except PyMongoError:
        logger.exception("Failed to load leave %s", leave_id)
        return ApiResponse.fail("Failed to load leave record", status_code=502)
    return ApiResponse.ok(record)


async def update_leave_status(
    db: AsyncIOMotorDatabase,
    leave_id: str,
    status: str,
    preferred_collection: str = LEAVES_SOURCE,
    approver_name: Optional[str] = None,
) -> ApiResponse[LeaveRecord]:
    """
    휴가 상태 변경.
    1) 두 컬렉션 중 문서가 있는 곳을 찾음 (preferred -> 나머지)
    2) 상태 정규화 후 status / updatedAt / approverName 갱신
    3) approved로 바뀌는 경우 잔여 휴가 일수 차감 (실패해도 상태 변경은 유지)
    4) 갱신된 문서를 다시 읽어 LeaveRecord로 반환

    같은 문서에 대한 동시 요청은 막지 않는다 (DB 단일 문서 쓰기 직렬화에만 의존).
    """
    try:
        normalized = normalize_status(status)
        if normalized not in CANONICAL_STATUSES:
            raise InvalidLeaveRequestError(f"Unsupported leave status: {status}")

        source, doc = await locate_leave_document(db, leave_id, preferred_collection)
        convert = _CONVERTERS[source]
        previous = convert(doc)

        update: Dict[str, Any] = {
            "status": normalized,
            "updatedAt": utc_now(),
        }
        if approver_name:
            update["approverName"] = approver_name

        collection = get_source_collection(db, source)
        await collection.update_one({"_id": doc["_id"]}, {"$set": update})

        # 이미 승인된 휴가를 다시 승인해도 두 번 차감하지 않음
        if normalized == "approved" and previous.status != "approved" and previous.personId:
            await deduct_leave_balance(db, previous)

        record = convert(await collection.find_one({"_id": doc["_id"]}))
    except LeaveServiceError as exc:
        logger.warning("Leave status update for %s rejected: %s", leave_id, exc)
        return ApiResponse.from_error(exc)
    except ValidationError:
        # 문서 변환은 상태 쓰기 전에 먼저 수행된다
        logger.warning("Leave %s is malformed, status not changed", leave_id, exc_info=True)
        return ApiResponse.fail(f"Leave record {leave_id} is malformed", status_code=422)
    except PyMongoError:
        logger.exception("Failed to update status of leave %s", leave_id)
        return ApiResponse.fail("Failed to update leave status", status_code=502)

    logger.info("Leave %s in %s is now %s", leave_id, source, normalized)
    return ApiResponse.ok(record)


async def delete_leave_document(
    db: AsyncIOMotorDatabase,
    leave_id: str,
    preferred_collection: str = LEAVES_SOURCE,
) -> ApiResponse[None]:
    """휴가 문서 삭제 (leaves / schedules 모두 확인)."""
    try:
        source, doc = await locate_leave_document(db, leave_id, preferred_collection)
        await get_source_collection(db, source).delete_one({"_id": doc["_id"]})
    except LeaveServiceError as exc:
        logger.warning("Leave delete for %s rejected: %s", leave_id, exc)
        return ApiResponse.from_error(exc)
    except PyMongoError:
        logger.exception("Failed to delete leave %s", leave_id)
        return ApiResponse.fail("Failed to delete leave record", status_code=502)

    logger.info("Deleted leave %s from %s", leave_id, source)
    return ApiResponse.ok()
