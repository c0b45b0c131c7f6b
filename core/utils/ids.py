"""
레코드 ID 생성

로컬에서 생성한 ID를 원격 문서 키로 그대로 사용하므로
기기 간 충돌이 없도록 128비트 랜덤 ID를 사용.
"""

from uuid import uuid4


def new_id() -> str:
    """새 레코드 ID (uuid4 hex, 32자)"""
    return uuid4().hex
