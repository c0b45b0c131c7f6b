"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class TransactionDirection(str, Enum):
    """거래 방향

    금액은 항상 양수로 저장되고, 부호는 방향에서 파생됨.
    """

    LENT = "LENT"  # 내가 빌려줌 → 상대가 나에게 갚아야 함 (+)
    BORROWED = "BORROWED"  # 내가 빌림 → 내가 상대에게 갚아야 함 (-)


class CardType(str, Enum):
    """카드 브랜드"""

    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    RUPAY = "RUPAY"


class BalanceColor(str, Enum):
    """전체 잔액 표시 색상 태그"""

    RED = "red"
    GREEN = "green"


class ChangeType(str, Enum):
    """원격 변경 이벤트 유형"""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class StreamState(str, Enum):
    """변경 스트림 연결 상태"""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
