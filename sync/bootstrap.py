"""
Ledger App Bootstrap

설정 기반 의존성 조립 및 생명주기 관리.

조립 순서:
1. SQLite 어댑터 연결 + 스키마 초기화
2. LedgerStore
3. 원격 미러 (remote.enabled일 때만 RemoteMirrorClient)
4. SyncCoordinator → MirroredLedger, SessionLifecycle
"""

import logging
from pathlib import Path
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IRemoteMirror
from adapters.mirror.rest_client import RemoteMirrorClient
from core.config.loader import Settings
from core.errors import StorageError
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.logging import setup_logging
from sync.coordinator import SyncCoordinator
from sync.mirrored_ledger import MirroredLedger
from sync.session import SessionLifecycle

logger = logging.getLogger(__name__)

LOG_PROCESS_NAME = "ledger"


def create_remote_mirror(settings: Settings) -> IRemoteMirror | None:
    """설정에 따라 원격 미러 클라이언트 생성 (비활성화 시 None)"""
    remote = settings.remote
    if not remote.enabled:
        return None

    return RemoteMirrorClient(
        base_url=remote.base_url,
        ws_url=remote.ws_url,
        api_key=remote.api_key,
        timeout=remote.timeout,
    )


class LedgerApp:
    """Ledger 애플리케이션

    Args:
        settings: 설정 객체
        mirror: 원격 미러 (지정 시 설정보다 우선, 테스트용 Mock 주입)
        configure_logging: start 시 settings.log_level로 로깅 초기화
        log_dir: 로그 디렉토리 (None이면 Paths.LOGS_DIR)

    사용 예시:
    ```python
    async with LedgerApp(load_settings(), configure_logging=True) as app:
        await app.session.on_identity_change("uid-123")
        person_id = await app.ledger.add_person("Alex")
    ```
    """

    def __init__(
        self,
        settings: Settings,
        mirror: IRemoteMirror | None = None,
        configure_logging: bool = False,
        log_dir: Path | None = None,
    ):
        self.settings = settings
        self._configure_logging = configure_logging
        self._log_dir = log_dir
        self.db = SQLiteAdapter(settings.database.path)
        self.mirror = mirror if mirror is not None else create_remote_mirror(settings)

        self.store = LedgerStore(self.db)
        self.coordinator = SyncCoordinator(self.store, self.mirror)
        self.ledger = MirroredLedger(self.store, self.coordinator)
        self.session = SessionLifecycle(self.coordinator)

        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """DB 연결 및 스키마 초기화"""
        if self._started:
            return

        if self._configure_logging:
            level = logging.getLevelName(self.settings.log_level)
            setup_logging(
                LOG_PROCESS_NAME,
                console_level=level,
                file_level=level,
                log_dir=self._log_dir,
            )

        await self.db.connect()
        try:
            await init_ledger_schema(self.db)
        except StorageError:
            await self.db.close()
            raise

        self._started = True
        logger.info(
            "Ledger app started",
            extra={
                "db_path": str(self.settings.database.path),
                "remote_enabled": self.mirror is not None,
            },
        )

    async def stop(self) -> None:
        """세션 종료 → 원격 클라이언트 종료 → DB 종료"""
        if not self._started:
            return

        try:
            await self.coordinator.end_session()
        finally:
            if self.mirror is not None:
                await self.mirror.close()
            await self.db.close()
            self._started = False

        logger.info("Ledger app stopped")

    def get_stats(self) -> dict[str, Any]:
        return {
            "started": self._started,
            "sync": self.coordinator.get_stats(),
        }

    async def __aenter__(self) -> "LedgerApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()
