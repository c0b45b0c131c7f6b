"""
어댑터 공통 데이터 모델

원격 미러 API 응답을 표준화한 모델.
문서 필드는 스키마 없는 dict 그대로 유지 (변환은 sync.serializer 담당).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.types import ChangeType
from core.utils.timezone import parse_timestamp


def _fields_of(data: Any) -> dict[str, Any]:
    """응답 항목의 fields 추출 (항목/fields가 객체가 아니면 ValueError)"""
    if not isinstance(data, dict):
        raise ValueError(f"Remote item is not an object: {data!r}")

    fields = data.get("fields") or {}
    if not isinstance(fields, dict):
        raise ValueError(f"Remote fields is not an object: {fields!r}")
    return dict(fields)


@dataclass(frozen=True)
class RemoteDocument:
    """원격 문서

    Attributes:
        id: 문서 키 (로컬 레코드 ID와 동일)
        fields: 문서 필드
        updated_at: 서버가 부여한 마지막 쓰기 시간
    """

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteDocument":
        """API 응답 dict → RemoteDocument

        Raises:
            ValueError: 객체가 아니거나 id가 없는 경우
        """
        fields = _fields_of(data)
        doc_id = data.get("id")
        if doc_id is None or doc_id == "":
            raise ValueError(f"Remote document without id: {data!r}")

        updated_raw = data.get("updated_at")
        return cls(
            id=str(doc_id),
            fields=fields,
            updated_at=parse_timestamp(updated_raw) if updated_raw else None,
        )


@dataclass(frozen=True)
class RemoteChange:
    """원격 변경 이벤트 (변경 스트림 1건)

    Attributes:
        type: added / modified / removed
        doc_id: 문서 키
        fields: 변경 후 필드 (removed는 비어 있을 수 있음)
    """

    type: ChangeType
    doc_id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteChange":
        """변경 스트림 프레임의 항목 → RemoteChange

        Raises:
            ValueError: 객체가 아니거나 type이 잘못되었거나 id가 없는 경우
        """
        fields = _fields_of(data)
        doc_id = data.get("id")
        if doc_id is None or doc_id == "":
            raise ValueError(f"Remote change without id: {data!r}")

        return cls(
            type=ChangeType(data.get("type")),
            doc_id=str(doc_id),
            fields=fields,
        )
