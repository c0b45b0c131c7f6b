"""
Ledger 저장소

상대방(Person), 거래(Transaction), 거래 수정 이력, 카드의 로컬 영구 저장 및 조회.
로컬 DB가 단일 진실 공급원(source of truth).
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from core.errors import NotFoundError
from core.ledger.models import Card, Person, Transaction, TransactionHistory
from core.ledger.schema import LEDGER_TABLES
from core.ledger.validation import (
    validate_amount,
    validate_card_type,
    validate_direction,
)
from core.types import CardType, TransactionDirection
from core.utils.ids import new_id
from core.utils.timezone import now_utc, to_iso

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


def _nullable(value: str | None) -> str | None:
    """빈 문자열은 NULL로 저장"""
    return value or None


class LedgerStore:
    """Ledger 저장소

    외래 키(ON DELETE CASCADE)로 참조 무결성 관리:
    Person 삭제 → Transaction 삭제 → TransactionHistory 삭제.

    Args:
        db: 연결된 SQLite 어댑터 (스키마 초기화 완료 상태)
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # -------------------------------------------------------------------------
    # Person
    # -------------------------------------------------------------------------

    async def create_person(
        self,
        name: str,
        phone: str | None = None,
        notes: str | None = None,
    ) -> str:
        """상대방 생성

        이름 검증은 호출자 계층에서 수행.

        Returns:
            생성된 person_id
        """
        person = Person(
            id=new_id(),
            name=name,
            phone=_nullable(phone),
            notes=_nullable(notes),
            created_at=now_utc(),
        )
        await self.insert_person(person)
        return person.id

    async def insert_person(self, person: Person) -> None:
        """ID가 지정된 상대방 저장 (원격 병합용)"""
        async with self.db.transaction():
            await self.db.execute(
                f"INSERT INTO person ({Person.COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (
                    person.id,
                    person.name,
                    _nullable(person.phone),
                    _nullable(person.notes),
                    to_iso(person.created_at),
                ),
            )
        logger.debug(f"Saved person: {person.id}")

    async def get_person(self, person_id: str) -> Person | None:
        """상대방 단건 조회"""
        row = await self.db.fetchone(
            f"SELECT {Person.COLUMNS} FROM person WHERE id = ?",
            (person_id,),
        )
        return Person.from_row(row) if row else None

    async def get_all_persons(self) -> list[Person]:
        """전체 상대방 조회 (최근 생성 순)"""
        rows = await self.db.fetchall(
            f"SELECT {Person.COLUMNS} FROM person ORDER BY created_at DESC"
        )
        return [Person.from_row(row) for row in rows]

    async def update_person(
        self,
        person_id: str,
        name: str | None = None,
        phone: str | None = None,
        notes: str | None = None,
    ) -> None:
        """상대방 부분 수정

        None이 아닌 필드만 덮어씀. 전달된 필드가 없으면 아무 것도 하지 않음.
        phone/notes에 빈 문자열을 주면 값을 지움 (NULL 저장).
        """
        updates: list[str] = []
        values: list[str | None] = []

        if name is not None:
            updates.append("name = ?")
            values.append(name)
        if phone is not None:
            updates.append("phone = ?")
            values.append(_nullable(phone))
        if notes is not None:
            updates.append("notes = ?")
            values.append(_nullable(notes))

        if not updates:
            return

        values.append(person_id)

        async with self.db.transaction():
            await self.db.execute(
                f"UPDATE person SET {', '.join(updates)} WHERE id = ?",
                tuple(values),
            )

    async def delete_person(self, person_id: str) -> None:
        """상대방 삭제 (거래와 이력 연쇄 삭제)"""
        async with self.db.transaction():
            await self.db.execute("DELETE FROM person WHERE id = ?", (person_id,))
        logger.debug(f"Deleted person: {person_id}")

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    async def create_transaction(
        self,
        person_id: str,
        amount: Decimal | int | str,
        direction: TransactionDirection | str,
        date: datetime,
        note: str | None = None,
    ) -> str:
        """거래 생성

        Returns:
            생성된 transaction_id

        Raises:
            ValidationError: 금액이 0 이하이거나 방향이 잘못된 경우
            NotFoundError: person_id에 해당하는 상대방이 없는 경우
        """
        transaction = Transaction(
            id=new_id(),
            person_id=person_id,
            amount=validate_amount(amount),
            direction=validate_direction(direction),
            date=date,
            note=_nullable(note),
            created_at=now_utc(),
        )
        await self.insert_transaction(transaction)
        return transaction.id

    async def insert_transaction(self, transaction: Transaction) -> None:
        """ID가 지정된 거래 저장 (원격 병합용)

        Raises:
            ValidationError: 금액/방향 검증 실패
            NotFoundError: 상대방이 아직 로컬에 없는 경우
        """
        amount = validate_amount(transaction.amount)
        direction = validate_direction(transaction.direction)

        async with self.db.transaction():
            exists = await self.db.fetchone(
                "SELECT 1 FROM person WHERE id = ?",
                (transaction.person_id,),
            )
            if exists is None:
                raise NotFoundError("Person", transaction.person_id)

            await self.db.execute(
                f"INSERT INTO ledger_transaction ({Transaction.COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    transaction.id,
                    transaction.person_id,
                    str(amount),
                    direction.value,
                    to_iso(transaction.date),
                    _nullable(transaction.note),
                    to_iso(transaction.created_at),
                ),
            )
        logger.debug(f"Saved transaction: {transaction.id}")

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        """거래 단건 조회"""
        row = await self.db.fetchone(
            f"SELECT {Transaction.COLUMNS} FROM ledger_transaction WHERE id = ?",
            (transaction_id,),
        )
        return Transaction.from_row(row) if row else None

    async def get_transactions_by_person(self, person_id: str) -> list[Transaction]:
        """상대방별 거래 조회 (거래일 최신 순, 동일 시 생성 최신 순)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {Transaction.COLUMNS} FROM ledger_transaction
            WHERE person_id = ?
            ORDER BY date DESC, created_at DESC
            """,
            (person_id,),
        )
        return [Transaction.from_row(row) for row in rows]

    async def get_all_transactions(self) -> list[Transaction]:
        """전체 거래 조회 (거래일 최신 순, 동일 시 생성 최신 순)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {Transaction.COLUMNS} FROM ledger_transaction
            ORDER BY date DESC, created_at DESC
            """
        )
        return [Transaction.from_row(row) for row in rows]

    async def update_transaction(
        self,
        transaction_id: str,
        amount: Decimal | int | str,
        direction: TransactionDirection | str,
        date: datetime,
        note: str | None = None,
    ) -> None:
        """거래 수정

        하나의 DB 트랜잭션 안에서:
        1. 현재 행 조회 (없으면 NotFoundError, 이력 미생성)
        2. 수정 직전 상태를 transaction_history에 추가
        3. 거래 행 덮어쓰기

        Raises:
            ValidationError: 금액/방향 검증 실패
            NotFoundError: 거래가 없는 경우
        """
        new_amount = validate_amount(amount)
        new_direction = validate_direction(direction)

        async with self.db.transaction():
            row = await self.db.fetchone(
                f"SELECT {Transaction.COLUMNS} FROM ledger_transaction WHERE id = ?",
                (transaction_id,),
            )
            if row is None:
                raise NotFoundError("Transaction", transaction_id)

            current = Transaction.from_row(row)

            await self.db.execute(
                f"INSERT INTO transaction_history ({TransactionHistory.COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    new_id(),
                    transaction_id,
                    str(current.amount),
                    current.direction.value,
                    to_iso(current.date),
                    current.note,
                    to_iso(now_utc()),
                ),
            )

            await self.db.execute(
                """
                UPDATE ledger_transaction
                SET amount = ?, direction = ?, date = ?, note = ?
                WHERE id = ?
                """,
                (
                    str(new_amount),
                    new_direction.value,
                    to_iso(date),
                    _nullable(note),
                    transaction_id,
                ),
            )

        logger.debug(f"Updated transaction: {transaction_id}")

    async def delete_transaction(self, transaction_id: str) -> None:
        """거래 삭제 (이력 연쇄 삭제)"""
        async with self.db.transaction():
            await self.db.execute(
                "DELETE FROM ledger_transaction WHERE id = ?",
                (transaction_id,),
            )
        logger.debug(f"Deleted transaction: {transaction_id}")

    async def get_transaction_history(
        self,
        transaction_id: str,
    ) -> list[TransactionHistory]:
        """거래 수정 이력 조회 (최신 순)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {TransactionHistory.COLUMNS} FROM transaction_history
            WHERE transaction_id = ?
            ORDER BY changed_at DESC
            """,
            (transaction_id,),
        )
        return [TransactionHistory.from_row(row) for row in rows]

    # -------------------------------------------------------------------------
    # Card
    # -------------------------------------------------------------------------

    async def create_card(
        self,
        card_name: str,
        card_number: str,
        card_type: CardType | str,
        name_on_card: str,
        expiry: str,
        cvv: str,
        color: str,
    ) -> str:
        """카드 생성

        Returns:
            생성된 card_id
        """
        card = Card(
            id=new_id(),
            card_name=card_name,
            card_number=card_number,
            card_type=validate_card_type(card_type),
            name_on_card=name_on_card,
            expiry=expiry,
            cvv=cvv,
            color=color,
            created_at=now_utc(),
        )
        await self.insert_card(card)
        return card.id

    async def insert_card(self, card: Card) -> None:
        """ID가 지정된 카드 저장 (원격 병합용)"""
        card_type = validate_card_type(card.card_type)

        async with self.db.transaction():
            await self.db.execute(
                f"INSERT INTO card ({Card.COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    card.id,
                    card.card_name,
                    card.card_number,
                    card_type.value,
                    card.name_on_card,
                    card.expiry,
                    card.cvv,
                    card.color,
                    to_iso(card.created_at),
                ),
            )
        logger.debug(f"Saved card: {card.id} ({card.masked_number})")

    async def get_card(self, card_id: str) -> Card | None:
        """카드 단건 조회"""
        row = await self.db.fetchone(
            f"SELECT {Card.COLUMNS} FROM card WHERE id = ?",
            (card_id,),
        )
        return Card.from_row(row) if row else None

    async def get_all_cards(self) -> list[Card]:
        """전체 카드 조회 (최근 생성 순)"""
        rows = await self.db.fetchall(
            f"SELECT {Card.COLUMNS} FROM card ORDER BY created_at DESC"
        )
        return [Card.from_row(row) for row in rows]

    async def update_card(
        self,
        card_id: str,
        card_name: str,
        card_number: str,
        card_type: CardType | str,
        name_on_card: str,
        expiry: str,
        cvv: str,
        color: str,
    ) -> None:
        """카드 전체 필드 덮어쓰기 (이력 없음)"""
        card_type = validate_card_type(card_type)

        async with self.db.transaction():
            await self.db.execute(
                """
                UPDATE card
                SET card_name = ?, card_number = ?, card_type = ?, name_on_card = ?,
                    expiry = ?, cvv = ?, color = ?
                WHERE id = ?
                """,
                (
                    card_name,
                    card_number,
                    card_type.value,
                    name_on_card,
                    expiry,
                    cvv,
                    color,
                    card_id,
                ),
            )

    async def delete_card(self, card_id: str) -> None:
        """카드 삭제"""
        async with self.db.transaction():
            await self.db.execute("DELETE FROM card WHERE id = ?", (card_id,))
        logger.debug(f"Deleted card: {card_id}")

    # -------------------------------------------------------------------------
    # 진단
    # -------------------------------------------------------------------------

    async def get_counts(self) -> dict[str, int]:
        """테이블별 행 수"""
        counts: dict[str, int] = {}
        for table in LEDGER_TABLES:
            row = await self.db.fetchone(f"SELECT COUNT(*) FROM {table}")
            counts[table] = int(row[0]) if row else 0
        return counts
