"""
상태값 / 시각 / 휴가 유형 정규화.

모바일 앱과 웹 관리자 화면이 서로 다른 표기(영문, 한글 동의어, Timestamp 객체,
문자열 날짜 등)로 데이터를 기록하기 때문에, 읽기 시점에 한 곳에서 표준 형식으로 맞춘다.
정규화 함수는 절대 예외를 던지지 않는다. 알 수 없는 값은 그대로 통과시키거나
기본값으로 대체하고 로그만 남긴다.
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

CANONICAL_STATUSES = ("pending", "approved", "rejected", "personal")

DEFAULT_LEAVE_TYPE = "휴가"

_STATUS_SYNONYMS = {
    "pending": "pending",
    "신청": "pending",
    "대기": "pending",
    "대기중": "pending",
    "approved": "approved",
    "승인": "approved",
    "승인됨": "approved",
    "rejected": "rejected",
    "거절": "rejected",
    "반려": "rejected",
    "반려됨": "rejected",
    "personal": "personal",
    "개인": "personal",
}

_KOREAN_LABELS = {
    "pending": "신청",
    "approved": "승인",
    "rejected": "거절",
    "personal": "개인",
}

# 앞 19자리가 YYYY-MM-DDTHH:MM:SS 이면 이미 ISO 문자열로 본다
_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%Y. %m. %d.",
)

# bson.timestamp.Timestamp.as_datetime, protobuf Timestamp.ToDatetime 등
_CONVERSION_METHODS = ("as_datetime", "to_datetime", "ToDatetime")


def normalize_status(status: str, to_korean: bool = False) -> str:
    """
    상태값 매핑.
    - 대소문자 구분 없이 동의어 테이블에서 표준 영문 상태로 변환
    - 테이블에 없는 값은 그대로 반환
    - to_korean=True 이면 표준 상태를 한글 표시용 라벨로 한 번 더 변환
    """
    normalized = _STATUS_SYNONYMS.get(status.lower())
    if normalized is None:
        logger.debug("Unrecognized status token passed through: %r", status)
        normalized = status

    if to_korean:
        return _KOREAN_LABELS.get(normalized, normalized)
    return normalized


def status_synonyms(canonical: str) -> List[str]:
    """
    표준 상태값 하나에 대응하는 원본 표기 전체.
    DB 쪽 $in 필터를 만들 때 사용 (DB 비교는 대소문자를 구분하므로 영문은 변형도 포함).
    """
    tokens: List[str] = []
    for raw, target in _STATUS_SYNONYMS.items():
        if target != canonical:
            continue
        tokens.append(raw)
        if raw.isascii():
            tokens.extend([raw.capitalize(), raw.upper()])
    return tokens or [canonical]


def _to_iso(value: datetime) -> str:
    # naive datetime은 UTC로 간주 (Motor 기본 동작과 동일)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    """DB에 저장할 현재 시각 (naive UTC, pymongo 기본 반환 형식과 동일)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now_iso() -> str:
    return _to_iso(utc_now())


def parse_datetime(text: str) -> Optional[datetime]:
    """문자열 날짜를 datetime으로. 해석할 수 없으면 None."""
    text = text.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def normalize_timestamp(timestamp: Any) -> str:
    """
    Timestamp 객체 / datetime / 문자열을 ISO 문자열로 변환.
    값이 없으면 현재 시각을 돌려준다 (업무상 의미 있는 값이 아니라 기본값일 뿐).
    """
    if not timestamp:
        return utc_now_iso()

    if isinstance(timestamp, str):
        if _ISO_PREFIX.match(timestamp):
            return timestamp
        parsed = parse_datetime(timestamp)
        if parsed is None:
            logger.warning("Unparseable timestamp string: %r", timestamp)
            return utc_now_iso()
        return _to_iso(parsed)

    for method_name in _CONVERSION_METHODS:
        convert = getattr(timestamp, method_name, None)
        if callable(convert):
            return _to_iso(convert())

    if isinstance(timestamp, datetime):
        return _to_iso(timestamp)
    if isinstance(timestamp, date):
        return _to_iso(datetime(timestamp.year, timestamp.month, timestamp.day))

    logger.warning("Unknown timestamp format: %r", timestamp)
    return utc_now_iso()


def normalize_leave_type(leave_type: Any) -> str:
    """
    휴가 유형 정규화.
    - 문자열: 그대로
    - [{id, name, days?}, ...]: 하나면 그 이름, 여러 개면 '+'로 연결
    - 없음: '휴가'
    """
    if not leave_type:
        return DEFAULT_LEAVE_TYPE

    if isinstance(leave_type, str):
        return leave_type

    if isinstance(leave_type, (list, tuple)):
        names = [
            entry.get("name")
            for entry in leave_type
            if isinstance(entry, dict) and entry.get("name")
        ]
        return "+".join(names) or DEFAULT_LEAVE_TYPE

    logger.warning("Unknown leave type format: %r", leave_type)
    return DEFAULT_LEAVE_TYPE


def date_part(value: str) -> str:
    """ISO 문자열의 날짜 부분(YYYY-MM-DD). 날짜 단위 비교에 사용."""
    return value[:10]


def first_present(values: Iterable[Any], default: Any = None) -> Any:
    """값이 있는(truthy) 첫 번째 항목. 필드 대체 체인에 사용."""
    for value in values:
        if value:
            return value
    return default
