"""
유틸리티 패키지

ID 생성, 타임존 처리 등 공통 유틸리티
"""

from core.utils.ids import new_id
from core.utils.timezone import (
    ensure_utc,
    now_utc,
    parse_timestamp,
    to_iso,
    utc_from_timestamp_ms,
)

__all__ = [
    "new_id",
    "ensure_utc",
    "now_utc",
    "parse_timestamp",
    "to_iso",
    "utc_from_timestamp_ms",
]
