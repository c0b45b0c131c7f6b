"""
타임존 유틸리티

내부 저장: UTC 원칙 준수를 위한 헬퍼 함수
로컬 DB와 원격 문서 모두 ISO-8601 문자열로 저장.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """naive datetime은 UTC로 간주하여 타임존 부여"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_from_timestamp_ms(ts_ms: int) -> datetime:
    """밀리초 타임스탬프를 UTC datetime으로 변환

    Args:
        ts_ms: Unix 타임스탬프 (밀리초)

    Returns:
        UTC datetime

    Example:
        >>> utc_from_timestamp_ms(1708444800000)
        datetime(2024, 2, 20, 16, 0, 0, tzinfo=timezone.utc)
    """
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)


def to_iso(dt: datetime) -> str:
    """저장용 ISO-8601 문자열 (UTC, 마이크로초 고정 → 문자열 정렬 = 시간 정렬)"""
    return ensure_utc(dt).isoformat(timespec="microseconds")


def parse_timestamp(value: str | int | float | datetime) -> datetime:
    """저장된 시간 값을 UTC datetime으로 변환

    ISO 문자열 외에 밀리초 정수도 허용.
    (이전 버전 클라이언트가 원격 문서에 epoch ms로 기록한 경우)

    Args:
        value: ISO 문자열, 밀리초 타임스탬프 또는 datetime

    Returns:
        UTC datetime

    Raises:
        ValueError: 해석할 수 없는 값
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return utc_from_timestamp_ms(int(value))
    if isinstance(value, str):
        if value.isdigit():
            return utc_from_timestamp_ms(int(value))
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(value))
    raise ValueError(f"Unsupported timestamp value: {value!r}")
