"""
원격 변경 리스너

cards/people/transactions 컬렉션을 구독하고,
수신한 변경을 단일 큐 → 단일 소비자 태스크로 순서대로 병합.
"""

import asyncio
import logging

from adapters.interfaces import IChangeSubscription, IRemoteMirror
from adapters.models import RemoteChange
from core.constants import RemoteCollections
from core.errors import RemoteError
from sync.merger import ChangeMerger

logger = logging.getLogger(__name__)


class ChangeListener:
    """원격 변경 리스너

    구독 콜백은 큐에 넣기만 하고, 병합 쓰기는 소비자 태스크 하나가 직렬로 수행.

    Args:
        mirror: 원격 미러
        merger: 변경 병합기
    """

    def __init__(self, mirror: IRemoteMirror, merger: ChangeMerger):
        self.mirror = mirror
        self.merger = merger

        self._queue: asyncio.Queue[tuple[str, RemoteChange]] = asyncio.Queue()
        self._subscriptions: list[IChangeSubscription] = []
        self._consumer_task: asyncio.Task[None] | None = None
        self._user_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._consumer_task is not None

    @property
    def subscribed_collections(self) -> list[str]:
        return [sub.collection for sub in self._subscriptions]

    async def start(self, user_id: str) -> int:
        """소비자 태스크 시작 + 전체 컬렉션 구독

        구독 실패는 컬렉션별로 로그만 남김.

        Returns:
            구독에 성공한 컬렉션 수
        """
        if self.is_running:
            await self.stop()

        self._user_id = user_id
        self._consumer_task = asyncio.create_task(self._consume_loop())

        for collection in RemoteCollections.PUSH_ORDER:
            try:
                sub = await self.mirror.subscribe(
                    user_id,
                    collection,
                    on_changes=self._make_enqueue(collection),
                    on_error=self._make_error_handler(collection),
                )
            except RemoteError as e:
                logger.warning(
                    "변경 구독 실패",
                    extra={"collection": collection, "error": str(e)},
                )
                continue
            self._subscriptions.append(sub)

        logger.info(
            "Change listener started",
            extra={"user_id": user_id, "collections": self.subscribed_collections},
        )
        return len(self._subscriptions)

    async def stop(self) -> None:
        """구독 해제 → 소비자 태스크 취소 (여러 번 호출해도 안전)"""
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            try:
                await sub.close()
            except Exception as e:
                logger.warning(
                    "구독 해제 중 에러",
                    extra={"collection": sub.collection, "error": str(e)},
                )

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

        # 남은 변경은 폐기
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

        if self._user_id is not None:
            logger.info("Change listener stopped", extra={"user_id": self._user_id})
        self._user_id = None

    async def drain(self) -> None:
        """큐에 들어온 변경이 모두 적용될 때까지 대기"""
        await self._queue.join()

    def _make_enqueue(self, collection: str):
        async def on_changes(changes: list[RemoteChange]) -> None:
            for change in changes:
                self._queue.put_nowait((collection, change))

        return on_changes

    def _make_error_handler(self, collection: str):
        async def on_error(error: Exception) -> None:
            logger.warning(
                "변경 스트림 에러",
                extra={"collection": collection, "error": str(error)},
            )

        return on_error

    async def _consume_loop(self) -> None:
        while True:
            collection, change = await self._queue.get()
            try:
                await self.merger.apply(collection, change)
            except Exception as e:
                logger.error(
                    "변경 적용 중 예기치 않은 에러",
                    extra={"collection": collection, "doc_id": change.doc_id, "error": str(e)},
                )
            finally:
                self._queue.task_done()
