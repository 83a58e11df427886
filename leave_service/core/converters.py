"""
원본 MongoDB Document -> LeaveRecord 변환.

leaves 컬렉션과 schedules 컬렉션은 필드 이름이 서로 다르다
(personId vs userId, createdAt vs requestedAt, duration vs days ...).
컬렉션별 필드 이름은 이 모듈 밖으로 새어 나가지 않는다.
"""
import logging
from typing import Any, Mapping

from leave_service.core.normalize import (
    CANONICAL_STATUSES,
    first_present,
    normalize_leave_type,
    normalize_status,
    normalize_timestamp,
)
from leave_service.schemas.leave import LeaveRecord

logger = logging.getLogger(__name__)

PERSON_TYPES = ("soldier", "officer")


def _canonical_status(raw: Any, doc_id: str) -> str:
    status = normalize_status(str(raw or "pending"))
    if status not in CANONICAL_STATUSES:
        logger.warning(
            "Document %s has unknown status %r, treating it as pending",
            doc_id,
            raw,
        )
        return "pending"
    return status


def _person_type(raw: Any, doc_id: str) -> str:
    if raw in PERSON_TYPES:
        return raw
    if raw:
        logger.warning(
            "Document %s has unknown personType %r, treating it as soldier",
            doc_id,
            raw,
        )
    return "soldier"


def _as_int(raw: Any, default: int) -> int:
    if not raw:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _text(raw: Any, default: str = "") -> str:
    # 앱 쪽에서 부대명, 연락처 등을 숫자로 저장한 문서도 있다
    if raw is None or raw == "":
        return default
    if isinstance(raw, str):
        return raw
    return str(raw)


def from_leaves_collection(doc: Mapping[str, Any]) -> LeaveRecord:
    """leaves 컬렉션 Document -> LeaveRecord (필드 이름 1:1 매핑)."""
    doc_id = str(doc["_id"])
    return LeaveRecord(
        id=doc_id,
        personId=str(doc.get("personId") or ""),
        personType=_person_type(doc.get("personType"), doc_id),
        personName=_text(doc.get("personName")),
        personRank=_text(doc.get("personRank")),
        leaveType=normalize_leave_type(doc.get("leaveType")),
        startDate=normalize_timestamp(doc.get("startDate")),
        endDate=normalize_timestamp(doc.get("endDate")),
        destination=_text(doc.get("destination")),
        contact=_text(doc.get("contact")),
        reason=_text(doc.get("reason")),
        status=_canonical_status(doc.get("status"), doc_id),
        duration=_as_int(doc.get("duration"), 0),
        createdAt=normalize_timestamp(doc.get("createdAt")),
        updatedAt=normalize_timestamp(doc.get("updatedAt")),
        approverName=_text(doc.get("approverName")),
        unit=_text(doc.get("unit")),
    )


def from_schedules_collection(doc: Mapping[str, Any]) -> LeaveRecord:
    """
    schedules 컬렉션(일반 일정 Document) -> LeaveRecord.
    필드마다 전용 필드 -> 일반 필드 -> 고정 기본값 순서로 채운다.
    """
    doc_id = str(doc["_id"])
    # 휴가 부여 이력은 startDate 대신 date 필드를 가진다
    start_date = doc.get("startDate") or doc.get("date")

    return LeaveRecord(
        id=doc_id,
        personId=str(doc.get("userId") or ""),
        personType=_person_type(doc.get("personType"), doc_id),
        personName=_text(
            first_present((doc.get("requesterName"), doc.get("personName"))), "이름 없음"
        ),
        personRank=_text(
            first_present((doc.get("requesterRank"), doc.get("personRank")))
        ),
        leaveType=normalize_leave_type(
            first_present(
                (doc.get("leaveTypes"), doc.get("leaveType"), doc.get("title"))
            )
        ),
        startDate=normalize_timestamp(start_date),
        endDate=normalize_timestamp(doc.get("endDate") or start_date),
        destination=_text(
            first_present((doc.get("destination"), doc.get("reason"))), "불명"
        ),
        contact=_text(doc.get("contact")),
        reason=_text(doc.get("reason")),
        status=_canonical_status(doc.get("status"), doc_id),
        duration=_as_int(first_present((doc.get("days"), doc.get("duration"))), 1),
        createdAt=normalize_timestamp(
            first_present((doc.get("requestedAt"), doc.get("createdAt")))
        ),
        updatedAt=normalize_timestamp(
            first_present((doc.get("updatedAt"), doc.get("processedAt")))
        ),
        approverName=_text(doc.get("approverName")),
        unit=_text(doc.get("unit")),
    )
