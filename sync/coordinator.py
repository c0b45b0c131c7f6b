"""
동기화 코디네이터

로컬 Ledger 저장소와 원격 미러 사이의 세션 단위 동기화.

세션 흐름 (SyncStateMachine):
    DETACHED --bind--> ATTACHED --start_session--> SYNCING --> LIVE
    ATTACHED/SYNCING/LIVE --end_session--> DETACHED

start_session 순서:
1. 다운로드: 원격 people → transactions → cards 중 로컬에 없는 ID만 삽입
2. 초기 푸시: 로컬 cards → people → transactions 전체를 원격에 덮어쓰기
3. 리스너 연결 후 LIVE

원격 에러는 start_session 밖으로 전파되지 않음.
"""

import asyncio
import logging
from typing import Any

from adapters.interfaces import IRemoteMirror
from core.constants import RemoteCollections
from core.domain.state_machines import SyncState, SyncStateMachine
from core.errors import RemoteError, RemoteUnavailableError
from core.ledger.store import LedgerStore
from sync.listener import ChangeListener
from sync.merger import ChangeMerger
from sync.serializer import card_to_fields, person_to_fields, transaction_to_fields

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """동기화 코디네이터

    한 번에 하나의 사용자 ID만 바인딩.
    세션 세대(generation) 번호로 end_session 이후 도착한 늦은 결과를 무시.

    Args:
        store: Ledger 저장소
        mirror: 원격 미러 (None이면 원격 동기화 없이 상태 전이만 수행)
    """

    def __init__(self, store: LedgerStore, mirror: IRemoteMirror | None = None):
        self.store = store
        self.mirror = mirror

        self.merger = ChangeMerger(store)
        self.listener = ChangeListener(mirror, self.merger) if mirror is not None else None

        self._state_machine = SyncStateMachine()
        self._user_id: str | None = None
        self._generation = 0

        self._pushed = 0
        self._push_failures = 0
        self._download_failures = 0
        self._mirror_writes = 0
        self._mirror_skipped = 0

    # -------------------------------------------------------------------------
    # 상태
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> str | None:
        """바인딩된 사용자 ID"""
        return self._user_id

    @property
    def state(self) -> SyncState:
        return SyncState(self._state_machine.state)

    @property
    def is_live(self) -> bool:
        return self._state_machine.is_live

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._state_machine.is_attached

    # -------------------------------------------------------------------------
    # 세션
    # -------------------------------------------------------------------------

    async def bind(self, user_id: str) -> None:
        """사용자 ID 바인딩 (DETACHED → ATTACHED, 네트워크 없음)

        이미 바인딩된 상태면 기존 세션을 먼저 종료.
        """
        if self._state_machine.is_attached:
            await self.end_session()

        self._state_machine.transition(SyncState.ATTACHED)
        self._user_id = user_id
        self._generation += 1
        logger.info("Sync identity bound", extra={"user_id": user_id})

    async def start_session(self) -> None:
        """세션 시작 (ATTACHED → SYNCING → LIVE)

        다운로드/푸시/구독 실패는 로그만 남기고 LIVE까지 진행.
        진행 중 end_session이 호출되면 남은 단계를 건너뛰고 DETACHED 유지.
        로컬 저장소 에러나 취소로 중단되면 ATTACHED로 되돌린 뒤 예외 전파.

        Raises:
            StateMachineError: ATTACHED 상태가 아닌 경우
            StorageError: 로컬 저장소 실패
        """
        self._state_machine.transition(SyncState.SYNCING)
        generation = self._generation
        user_id = self._user_id
        assert user_id is not None

        try:
            if self.mirror is None or self.listener is None:
                logger.info("원격 미러 미구성, 로컬 전용 세션")
            else:
                await self._download(user_id, generation)
                if not self._is_current(generation):
                    logger.info("세션 종료됨, 다운로드 결과 이후 단계 생략")
                    return

                await self._initial_push(user_id, generation)
                if not self._is_current(generation):
                    logger.info("세션 종료됨, 리스너 연결 생략")
                    return

                await self.listener.start(user_id)
                if not self._is_current(generation):
                    await self.listener.stop()
                    return
        except BaseException:
            if self._is_current(generation):
                self._state_machine.transition(SyncState.ATTACHED)
                logger.error("Sync session start failed", extra={"user_id": user_id})
                if self.listener is not None:
                    await asyncio.shield(self.listener.stop())
            raise

        self._state_machine.transition(SyncState.LIVE)
        logger.info("Sync session live", extra={"user_id": user_id})

    async def end_session(self) -> None:
        """세션 종료 (리스너 해제, 사용자 ID 해제 → DETACHED)

        여러 번 호출해도 안전.
        """
        self._generation += 1

        if self.listener is not None:
            await self.listener.stop()
        self.merger.clear_pending()

        user_id, self._user_id = self._user_id, None
        if self._state_machine.is_attached:
            self._state_machine.transition(SyncState.DETACHED)
            logger.info("Sync session ended", extra={"user_id": user_id})

    async def _download(self, user_id: str, generation: int) -> None:
        """원격 → 로컬 (로컬에 없는 ID만)"""
        assert self.mirror is not None

        for collection in RemoteCollections.DOWNLOAD_ORDER:
            try:
                documents = await self.mirror.list_documents(user_id, collection)
            except RemoteUnavailableError as e:
                self._download_failures += 1
                logger.warning(
                    "원격 미러 연결 불가, 다운로드 생략",
                    extra={"collection": collection, "error": str(e)},
                )
                continue
            except RemoteError as e:
                self._download_failures += 1
                logger.error(
                    "원격 다운로드 실패",
                    extra={"collection": collection, "status": e.status, "error": str(e)},
                )
                continue
            except Exception as e:
                # 잘못된 응답 형식 등: 해당 컬렉션만 건너뜀
                self._download_failures += 1
                logger.error(
                    "원격 다운로드 응답 처리 실패",
                    extra={"collection": collection, "error": repr(e)},
                )
                continue

            if not self._is_current(generation):
                return

            await self.merger.merge_download(collection, documents)

    async def _initial_push(self, user_id: str, generation: int) -> None:
        """로컬 → 원격 (로컬 우선 덮어쓰기, 카테고리별 실패 격리)"""
        assert self.mirror is not None

        for collection in RemoteCollections.PUSH_ORDER:
            if not self._is_current(generation):
                return

            documents = await self._collect_local(collection)
            try:
                await self.mirror.batch_set(user_id, collection, documents)
            except RemoteUnavailableError as e:
                self._push_failures += 1
                logger.warning(
                    "원격 미러 연결 불가, 푸시 생략",
                    extra={"collection": collection, "error": str(e)},
                )
                continue
            except RemoteError as e:
                self._push_failures += 1
                logger.error(
                    "초기 푸시 실패",
                    extra={"collection": collection, "status": e.status, "error": str(e)},
                )
                continue
            except Exception as e:
                self._push_failures += 1
                logger.error(
                    "초기 푸시 처리 실패",
                    extra={"collection": collection, "error": repr(e)},
                )
                continue

            self._pushed += len(documents)
            logger.info(
                f"Pushed {len(documents)} {collection} to remote",
                extra={"collection": collection, "count": len(documents)},
            )

    async def _collect_local(self, collection: str) -> dict[str, dict[str, Any]]:
        if collection == RemoteCollections.CARDS:
            return {c.id: card_to_fields(c) for c in await self.store.get_all_cards()}
        if collection == RemoteCollections.PEOPLE:
            return {p.id: person_to_fields(p) for p in await self.store.get_all_persons()}
        if collection == RemoteCollections.TRANSACTIONS:
            return {
                t.id: transaction_to_fields(t)
                for t in await self.store.get_all_transactions()
            }
        raise ValueError(f"Unknown collection: {collection}")

    # -------------------------------------------------------------------------
    # 레코드 단위 미러링
    # -------------------------------------------------------------------------

    async def mirror_set(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> bool:
        """원격 문서 upsert

        바인딩된 사용자가 없거나 원격이 미구성/연결 불가면 건너뜀.

        Returns:
            원격 쓰기 성공 여부

        Raises:
            RemoteError: 환경성이 아닌 원격 실패
        """
        if self.mirror is None or self._user_id is None:
            return False

        try:
            await self.mirror.set_document(self._user_id, collection, doc_id, fields)
        except RemoteUnavailableError as e:
            self._mirror_skipped += 1
            logger.warning(
                "원격 미러 연결 불가, 쓰기 생략",
                extra={"collection": collection, "doc_id": doc_id, "error": str(e)},
            )
            return False

        self._mirror_writes += 1
        return True

    async def mirror_delete(self, collection: str, doc_id: str) -> bool:
        """원격 문서 삭제

        Returns:
            원격 삭제 성공 여부

        Raises:
            RemoteError: 환경성이 아닌 원격 실패
        """
        if self.mirror is None or self._user_id is None:
            return False

        try:
            await self.mirror.delete_document(self._user_id, collection, doc_id)
        except RemoteUnavailableError as e:
            self._mirror_skipped += 1
            logger.warning(
                "원격 미러 연결 불가, 삭제 생략",
                extra={"collection": collection, "doc_id": doc_id, "error": str(e)},
            )
            return False

        self._mirror_writes += 1
        return True

    # -------------------------------------------------------------------------
    # 통계
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "user_id": self._user_id,
            "pushed": self._pushed,
            "push_failures": self._push_failures,
            "download_failures": self._download_failures,
            "mirror_writes": self._mirror_writes,
            "mirror_skipped": self._mirror_skipped,
            **self.merger.get_stats(),
        }
