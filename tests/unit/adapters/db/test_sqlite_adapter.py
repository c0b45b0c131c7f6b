"""
SQLite 어댑터 테스트

SQLiteAdapter 및 Ledger 스키마 초기화 테스트.
"""

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, create_connection
from core.errors import StorageError
from core.ledger.schema import LEDGER_TABLES, init_ledger_schema


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_create_connection(self, tmp_path: Path) -> None:
        """연결 생성 (WAL + 외래 키)"""
        conn = await create_connection(tmp_path / "test.db")

        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        cursor = await conn.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """부모 디렉토리 생성"""
        db_path = tmp_path / "subdir" / "test.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()
        await conn.close()


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest_asyncio.fixture
    async def adapter(self, tmp_path: Path) -> SQLiteAdapter:
        """어댑터 픽스처"""
        adapter = SQLiteAdapter(tmp_path / "test.db")
        await adapter.connect()
        yield adapter
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connect_and_close(self, tmp_path: Path) -> None:
        """연결 및 종료 (핸들 해제)"""
        adapter = SQLiteAdapter(tmp_path / "test.db")

        assert adapter.is_connected is False

        await adapter.connect()
        assert adapter.is_connected is True

        await adapter.close()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_not_connected(self, tmp_path: Path) -> None:
        """연결 전 사용 → StorageError"""
        adapter = SQLiteAdapter(tmp_path / "test.db")

        with pytest.raises(StorageError, match="Not connected"):
            await adapter.fetchone("SELECT 1")

    @pytest.mark.asyncio
    async def test_execute_and_fetch(self, adapter: SQLiteAdapter) -> None:
        """SQL 실행 및 조회"""
        await adapter.execute("CREATE TABLE items (value TEXT)")
        for value in ("A", "B", "C"):
            await adapter.execute("INSERT INTO items (value) VALUES (?)", (value,))
        await adapter.commit()

        rows = await adapter.fetchall("SELECT value FROM items ORDER BY value")
        row = await adapter.fetchone("SELECT value FROM items WHERE value = ?", ("B",))

        assert [r[0] for r in rows] == ["A", "B", "C"]
        assert row[0] == "B"

    @pytest.mark.asyncio
    async def test_sql_error_wrapped(self, adapter: SQLiteAdapter) -> None:
        """SQL 오류 → StorageError"""
        with pytest.raises(StorageError):
            await adapter.execute("SELECT * FROM missing_table")

    @pytest.mark.asyncio
    async def test_transaction_commit(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 커밋"""
        await adapter.execute("CREATE TABLE tx_test (id INTEGER)")
        await adapter.commit()

        async with adapter.transaction():
            await adapter.execute("INSERT INTO tx_test (id) VALUES (1)")
            await adapter.execute("INSERT INTO tx_test (id) VALUES (2)")

        rows = await adapter.fetchall("SELECT id FROM tx_test")
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, adapter: SQLiteAdapter) -> None:
        """예외 시 롤백 후 예외 전파"""
        await adapter.execute("CREATE TABLE tx_test2 (id INTEGER)")
        await adapter.commit()

        with pytest.raises(ValueError):
            async with adapter.transaction():
                await adapter.execute("INSERT INTO tx_test2 (id) VALUES (1)")
                raise ValueError("의도적 에러")

        rows = await adapter.fetchall("SELECT id FROM tx_test2")
        assert len(rows) == 0

    @pytest.mark.asyncio
    async def test_cancelled_transaction_rolled_back(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 도중 태스크 취소 → 롤백, 이후 트랜잭션이 커밋하지 않음"""
        await adapter.execute("CREATE TABLE tx_cancel (id INTEGER)")
        await adapter.commit()

        in_tx = asyncio.Event()

        async def writer() -> None:
            async with adapter.transaction():
                await adapter.execute("INSERT INTO tx_cancel (id) VALUES (1)")
                in_tx.set()
                await asyncio.Event().wait()

        task = asyncio.create_task(writer())
        await in_tx.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        async with adapter.transaction():
            await adapter.execute("INSERT INTO tx_cancel (id) VALUES (2)")

        rows = await adapter.fetchall("SELECT id FROM tx_cancel")
        assert [r[0] for r in rows] == [2]

    @pytest.mark.asyncio
    async def test_nested_transaction_rejected(self, adapter: SQLiteAdapter) -> None:
        """중첩 트랜잭션 → StorageError"""
        with pytest.raises(StorageError, match="Nested"):
            async with adapter.transaction():
                async with adapter.transaction():
                    pass

    @pytest.mark.asyncio
    async def test_other_task_waits_for_transaction(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 중 다른 태스크의 조회는 커밋 후 실행"""
        await adapter.execute("CREATE TABLE snap (id INTEGER)")
        await adapter.commit()

        observed: list[int] = []
        in_tx = asyncio.Event()

        async def reader() -> None:
            await in_tx.wait()
            rows = await adapter.fetchall("SELECT id FROM snap")
            observed.append(len(rows))

        async def writer() -> None:
            async with adapter.transaction():
                await adapter.execute("INSERT INTO snap (id) VALUES (1)")
                in_tx.set()
                await asyncio.sleep(0.01)
                await adapter.execute("INSERT INTO snap (id) VALUES (2)")

        await asyncio.gather(reader(), writer())

        assert observed == [2]

    @pytest.mark.asyncio
    async def test_context_manager(self, tmp_path: Path) -> None:
        """컨텍스트 매니저"""
        async with SQLiteAdapter(tmp_path / "ctx_test.db") as adapter:
            assert adapter.is_connected is True
            await adapter.execute("CREATE TABLE ctx (id INTEGER)")

        assert adapter.is_connected is False


class TestInitLedgerSchema:
    """init_ledger_schema 테스트"""

    @pytest.mark.asyncio
    async def test_creates_tables_and_indexes(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "schema_test.db") as db:
            await init_ledger_schema(db)

            for table in LEDGER_TABLES:
                assert await db.table_exists(table) is True
            assert await db.index_exists("ix_ledger_transaction_person") is True
            assert await db.index_exists("ix_transaction_history_transaction") is True

    @pytest.mark.asyncio
    async def test_idempotent(self, tmp_path: Path) -> None:
        """두 번 실행해도 안전"""
        async with SQLiteAdapter(tmp_path / "schema_test.db") as db:
            await init_ledger_schema(db)
            await init_ledger_schema(db)

            assert await db.table_exists("person") is True

    @pytest.mark.asyncio
    async def test_direction_check_constraint(self, tmp_path: Path) -> None:
        """direction CHECK 제약"""
        async with SQLiteAdapter(tmp_path / "schema_test.db") as db:
            await init_ledger_schema(db)
            await db.execute(
                "INSERT INTO person (id, name, created_at) VALUES ('p', 'A', 'x')"
            )
            await db.commit()

            with pytest.raises(StorageError):
                await db.execute(
                    "INSERT INTO ledger_transaction "
                    "(id, person_id, amount, direction, date, created_at) "
                    "VALUES ('t', 'p', '1', 'GIFTED', 'x', 'x')"
                )
