"""
Ledger 데이터 모델

Person, Transaction, TransactionHistory, Card 불변 데이터 구조.
모든 금액은 Decimal, 모든 시간은 UTC datetime.
DB 행(tuple)은 from_row()로 변환.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from core.types import CardType, TransactionDirection
from core.utils.timezone import parse_timestamp


@dataclass(frozen=True)
class Person:
    """거래 상대방

    Attributes:
        id: 레코드 ID (uuid4 hex)
        name: 이름 (비어 있을 수 없음)
        phone: 전화번호
        notes: 메모
        created_at: 생성 시간
    """

    id: str
    name: str
    phone: str | None
    notes: str | None
    created_at: datetime

    COLUMNS = "id, name, phone, notes, created_at"

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "Person":
        return cls(
            id=row[0],
            name=row[1],
            phone=row[2],
            notes=row[3],
            created_at=parse_timestamp(row[4]),
        )


@dataclass(frozen=True)
class Transaction:
    """거래 (빌려줌/빌림 1건)

    Attributes:
        id: 레코드 ID
        person_id: 상대방 ID
        amount: 금액 (항상 양수)
        direction: 방향 (LENT/BORROWED)
        date: 사용자가 지정한 거래일 (생성 시간과 다를 수 있음)
        note: 메모
        created_at: 생성 시간
    """

    id: str
    person_id: str
    amount: Decimal
    direction: TransactionDirection
    date: datetime
    note: str | None
    created_at: datetime

    COLUMNS = "id, person_id, amount, direction, date, note, created_at"

    @property
    def signed_amount(self) -> Decimal:
        """부호 있는 금액 (LENT +, BORROWED -)"""
        if self.direction == TransactionDirection.LENT:
            return self.amount
        return -self.amount

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "Transaction":
        return cls(
            id=row[0],
            person_id=row[1],
            amount=Decimal(row[2]),
            direction=TransactionDirection(row[3]),
            date=parse_timestamp(row[4]),
            note=row[5],
            created_at=parse_timestamp(row[6]),
        )


@dataclass(frozen=True)
class TransactionHistory:
    """거래 수정 이력 (수정 직전 상태 스냅샷)"""

    id: str
    transaction_id: str
    previous_amount: Decimal
    previous_direction: TransactionDirection
    previous_date: datetime
    previous_note: str | None
    changed_at: datetime

    COLUMNS = (
        "id, transaction_id, previous_amount, previous_direction, "
        "previous_date, previous_note, changed_at"
    )

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "TransactionHistory":
        return cls(
            id=row[0],
            transaction_id=row[1],
            previous_amount=Decimal(row[2]),
            previous_direction=TransactionDirection(row[3]),
            previous_date=parse_timestamp(row[4]),
            previous_note=row[5],
            changed_at=parse_timestamp(row[6]),
        )


@dataclass(frozen=True)
class Card:
    """결제 카드 메타데이터 (잔액 개념 없음)"""

    id: str
    card_name: str
    card_number: str
    card_type: CardType
    name_on_card: str
    expiry: str
    cvv: str
    color: str
    created_at: datetime

    COLUMNS = (
        "id, card_name, card_number, card_type, name_on_card, "
        "expiry, cvv, color, created_at"
    )

    @property
    def masked_number(self) -> str:
        """끝 4자리만 노출한 카드 번호 (로그용)"""
        digits = self.card_number.replace(" ", "")
        return f"**** {digits[-4:]}" if len(digits) >= 4 else "****"

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "Card":
        return cls(
            id=row[0],
            card_name=row[1],
            card_number=row[2],
            card_type=CardType(row[3]),
            name_on_card=row[4],
            expiry=row[5],
            cvv=row[6],
            color=row[7],
            created_at=parse_timestamp(row[8]),
        )


@dataclass(frozen=True)
class PersonBalance:
    """상대방별 순잔액 (파생값, 저장하지 않음)

    Attributes:
        person: 상대방
        net_balance: 순잔액 (+: 상대가 나에게 갚아야 함, -: 내가 갚아야 함)
        owes_me: net_balance > 0
        i_owe: net_balance < 0
        settled: net_balance == 0
        display_amount: abs(net_balance)
    """

    person: Person
    net_balance: Decimal
    owes_me: bool
    i_owe: bool
    settled: bool
    display_amount: Decimal


@dataclass(frozen=True)
class GlobalBalance:
    """전체 순잔액 (파생값)"""

    global_net: Decimal
    total_lent: Decimal
    total_borrowed: Decimal
    message: str
    color: str
