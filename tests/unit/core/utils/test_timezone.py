"""
core/utils/timezone.py 테스트
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.utils.ids import new_id
from core.utils.timezone import (
    ensure_utc,
    now_utc,
    parse_timestamp,
    to_iso,
    utc_from_timestamp_ms,
)


class TestNowUtc:
    """now_utc 테스트"""

    def test_timezone_aware(self) -> None:
        assert now_utc().tzinfo == timezone.utc


class TestConversions:
    """시간 변환 테스트"""

    def test_from_timestamp_ms(self) -> None:
        assert utc_from_timestamp_ms(1708444800000) == datetime(
            2024, 2, 20, 16, 0, tzinfo=timezone.utc
        )

    def test_ensure_utc_naive(self) -> None:
        naive = datetime(2026, 1, 1, 12, 0)

        assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_offset(self) -> None:
        kst = timezone(timedelta(hours=9))
        dt = datetime(2026, 1, 1, 9, 0, tzinfo=kst)

        assert ensure_utc(dt) == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)

    def test_to_iso_fixed_precision(self) -> None:
        """마이크로초 자릿수 고정 → 문자열 정렬이 시간 정렬과 일치"""
        a = to_iso(datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc))
        b = to_iso(datetime(2026, 1, 1, 0, 0, 0, 1, tzinfo=timezone.utc))

        assert a == "2026-01-01T00:00:00.000000+00:00"
        assert a < b


class TestParseTimestamp:
    """parse_timestamp 테스트"""

    def test_iso_string(self) -> None:
        assert parse_timestamp("2026-03-01T10:00:00+00:00") == datetime(
            2026, 3, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_iso_string_with_z(self) -> None:
        assert parse_timestamp("2026-03-01T10:00:00Z").tzinfo == timezone.utc

    def test_epoch_ms_int(self) -> None:
        assert parse_timestamp(1708444800000) == datetime(2024, 2, 20, 16, 0, tzinfo=timezone.utc)

    def test_epoch_ms_digit_string(self) -> None:
        assert parse_timestamp("1708444800000") == datetime(
            2024, 2, 20, 16, 0, tzinfo=timezone.utc
        )

    def test_datetime_passthrough(self) -> None:
        dt = datetime(2026, 3, 1, tzinfo=timezone.utc)

        assert parse_timestamp(dt) == dt

    @pytest.mark.parametrize("value", [None, True, ["2026"], "yesterday"])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(value)  # type: ignore[arg-type]


class TestNewId:
    """new_id 테스트"""

    def test_unique_hex(self) -> None:
        ids = {new_id() for _ in range(100)}

        assert len(ids) == 100
        assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)
