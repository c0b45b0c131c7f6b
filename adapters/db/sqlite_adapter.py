"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
트랜잭션 진행 중에는 다른 태스크의 구문이 끼어들지 않도록 어댑터 단위 Lock 사용.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.errors import StorageError

logger = logging.getLogger(__name__)


async def create_connection(db_path: Path | str) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로

    Returns:
        aiosqlite 연결 객체

    Raises:
        StorageError: 연결 또는 PRAGMA 설정 실패
    """
    db_path_str = str(db_path)

    # 디렉토리가 없으면 생성
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = await aiosqlite.connect(db_path_str)

        # WAL 모드 설정
        await conn.execute("PRAGMA journal_mode=WAL")

        # 동시 접근 설정
        await conn.execute("PRAGMA busy_timeout=30000")  # 30초 대기

        # 외래 키 제약 활성화 (ON DELETE CASCADE 동작에 필요)
        await conn.execute("PRAGMA foreign_keys=ON")
    except aiosqlite.Error as e:
        raise StorageError(f"Failed to open database {db_path_str}: {e}") from e

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

        # 트랜잭션 직렬화용 Lock과 소유 태스크
        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path)

    async def close(self) -> None:
        """연결 종료 (핸들 해제)"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("Not connected to database")
        return self._conn

    def _in_own_transaction(self) -> bool:
        """현재 태스크가 열린 트랜잭션의 소유자인지"""
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        """다른 태스크의 트랜잭션이 끝날 때까지 대기"""
        if self._in_own_transaction():
            yield
        else:
            async with self._lock:
                yield

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        conn = self._require_conn()

        async with self._guard():
            try:
                if parameters:
                    return await conn.execute(sql, parameters)
                return await conn.execute(sql)
            except aiosqlite.Error as e:
                raise StorageError(f"SQL execution failed: {e}") from e

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        conn = self._require_conn()

        async with self._guard():
            try:
                cursor = await conn.execute(sql, parameters or ())
                return await cursor.fetchone()
            except aiosqlite.Error as e:
                raise StorageError(f"SQL query failed: {e}") from e

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        conn = self._require_conn()

        async with self._guard():
            try:
                cursor = await conn.execute(sql, parameters or ())
                return list(await cursor.fetchall())
            except aiosqlite.Error as e:
                raise StorageError(f"SQL query failed: {e}") from e

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        블록 안의 execute/fetch는 같은 태스크에서만 실행되며,
        다른 태스크의 구문은 커밋/롤백 후까지 대기.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        conn = self._require_conn()

        if self._in_own_transaction():
            raise StorageError("Nested transactions are not supported")

        async with self._lock:
            self._tx_owner = asyncio.current_task()
            try:
                yield conn
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise StorageError(f"Transaction failed: {e}") from e
            except BaseException:
                # 취소(CancelledError) 시에도 반쯤 적용된 변경이 남지 않도록 롤백
                await asyncio.shield(conn.rollback())
                raise
            finally:
                self._tx_owner = None

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def index_exists(self, index_name: str) -> bool:
        """인덱스 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='index' AND name=?",
            (index_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
