from datetime import date, datetime, timezone

import pytest

from leave_service.core.normalize import (
    CANONICAL_STATUSES,
    normalize_leave_type,
    normalize_status,
    normalize_timestamp,
    status_synonyms,
)


@pytest.mark.parametrize("status", CANONICAL_STATUSES)
def test_normalize_status_is_idempotent(status):
    once = normalize_status(status)
    assert normalize_status(once) == once


def test_korean_synonyms_map_to_canonical():
    assert normalize_status("신청") == normalize_status("pending") == "pending"
    assert normalize_status("반려") == "rejected"
    assert normalize_status("APPROVED") == "approved"


def test_to_korean_label():
    assert normalize_status("승인", to_korean=True) == "승인"
    assert normalize_status("approved", to_korean=True) == "승인"
    assert normalize_status("rejected", to_korean=True) == "거절"


def test_unknown_status_passes_through():
    assert normalize_status("보류") == "보류"
    assert normalize_status("보류", to_korean=True) == "보류"


def test_status_synonyms_include_case_variants():
    tokens = status_synonyms("approved")
    assert "승인" in tokens
    assert "Approved" in tokens
    assert "APPROVED" in tokens
    assert "rejected" not in tokens


@pytest.mark.parametrize(
    "value",
    [
        "2025-03-01T00:00:00.000Z",
        "2025-03-01T09:30:15+09:00",
        "2025-03-01T09:30:15",
    ],
)
def test_iso_strings_are_returned_unchanged(value):
    assert normalize_timestamp(value) == value


def test_datetime_values_become_utc_iso():
    aware = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert normalize_timestamp(aware) == "2025-03-01T09:00:00.000Z"
    # naive datetime은 UTC로 간주
    assert normalize_timestamp(datetime(2025, 3, 1, 9, 0)) == "2025-03-01T09:00:00.000Z"
    assert normalize_timestamp(date(2025, 3, 1)) == "2025-03-01T00:00:00.000Z"


def test_date_only_string_is_parsed():
    assert normalize_timestamp("2025-03-01") == "2025-03-01T00:00:00.000Z"
    assert normalize_timestamp("2025.03.01") == "2025-03-01T00:00:00.000Z"


def test_timestamp_object_with_conversion_method():
    class FakeTimestamp:
        def ToDatetime(self):
            return datetime(2024, 12, 31, 15, 0)

    assert normalize_timestamp(FakeTimestamp()) == "2024-12-31T15:00:00.000Z"


@pytest.mark.parametrize("value", [None, "", "not a date", 12345])
def test_missing_or_unknown_timestamp_falls_back_to_now(value):
    result = normalize_timestamp(value)
    parsed = datetime.fromisoformat(result.replace("Z", "+00:00"))
    assert abs((datetime.now(timezone.utc) - parsed).total_seconds()) < 5


def test_leave_type_list_is_joined():
    leave_types = [{"id": "a", "name": "연가"}, {"id": "b", "name": "포상휴가"}]
    assert normalize_leave_type(leave_types) == "연가+포상휴가"


def test_leave_type_single_and_default():
    assert normalize_leave_type([{"id": "a", "name": "병가"}]) == "병가"
    assert normalize_leave_type("위로휴가") == "위로휴가"
    assert normalize_leave_type(None) == "휴가"
    assert normalize_leave_type([]) == "휴가"
    assert normalize_leave_type({"name": "연가"}) == "휴가"
