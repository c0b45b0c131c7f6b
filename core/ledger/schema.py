"""
Ledger 스키마 초기화

앱 시작 시 자동으로 Ledger 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 반복 호출해도 안전하게 동작.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


LEDGER_TABLES: tuple[str, ...] = (
    "person",
    "ledger_transaction",
    "transaction_history",
    "card",
)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: 연결된 SQLiteAdapter 인스턴스
    """
    async with db.transaction():
        await _create_ledger_tables(db)
        await _create_ledger_indexes(db)
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # person 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS person (
            id               TEXT PRIMARY KEY,
            name             TEXT NOT NULL,
            phone            TEXT,
            notes            TEXT,
            created_at       TEXT NOT NULL
        )
    """)

    # ledger_transaction 테이블 (TRANSACTION은 SQL 예약어)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_transaction (
            id               TEXT PRIMARY KEY,
            person_id        TEXT NOT NULL,
            amount           TEXT NOT NULL,
            direction        TEXT NOT NULL CHECK(direction IN ('LENT', 'BORROWED')),
            date             TEXT NOT NULL,
            note             TEXT,
            created_at       TEXT NOT NULL,
            FOREIGN KEY (person_id) REFERENCES person(id) ON DELETE CASCADE
        )
    """)

    # transaction_history 테이블 (append-only)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transaction_history (
            id                 TEXT PRIMARY KEY,
            transaction_id     TEXT NOT NULL,
            previous_amount    TEXT NOT NULL,
            previous_direction TEXT NOT NULL,
            previous_date      TEXT NOT NULL,
            previous_note      TEXT,
            changed_at         TEXT NOT NULL,
            FOREIGN KEY (transaction_id) REFERENCES ledger_transaction(id) ON DELETE CASCADE
        )
    """)

    # card 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS card (
            id               TEXT PRIMARY KEY,
            card_name        TEXT NOT NULL,
            card_number      TEXT NOT NULL,
            card_type        TEXT NOT NULL CHECK(card_type IN ('VISA', 'MASTERCARD', 'RUPAY')),
            name_on_card     TEXT NOT NULL,
            expiry           TEXT NOT NULL,
            cvv              TEXT NOT NULL,
            color            TEXT NOT NULL,
            created_at       TEXT NOT NULL
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """Ledger 인덱스 생성"""

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_transaction_person
        ON ledger_transaction(person_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transaction_history_transaction
        ON transaction_history(transaction_id)
    """)
