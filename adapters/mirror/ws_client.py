"""
원격 미러 변경 스트림 클라이언트

컬렉션별 WebSocket 스트림으로 added/modified/removed 변경 수신.
IChangeSubscription Protocol 준수.

프레임 형식:
    {"changes": [{"type": "added", "id": "...", "fields": {...}}, ...]}
"""

import asyncio
import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from adapters.interfaces import ChangesCallback, ErrorCallback
from adapters.models import RemoteChange
from core.constants import Defaults
from core.errors import RemoteError, RemoteUnavailableError
from core.types import StreamState

logger = logging.getLogger(__name__)


def parse_changes(message: str | bytes) -> list[RemoteChange]:
    """스트림 프레임 → RemoteChange 목록

    형식이 잘못된 개별 항목은 건너뜀.

    Raises:
        ValueError: 프레임 자체가 JSON이 아니거나 changes가 목록이 아닌 경우
    """
    data = json.loads(message)
    items = data.get("changes") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ValueError("Frame without 'changes' list")

    changes: list[RemoteChange] = []
    for item in items:
        try:
            changes.append(RemoteChange.from_dict(item))
        except ValueError as e:
            logger.warning("잘못된 변경 항목 무시", extra={"error": str(e)})
    return changes


class RemoteChangeStream:
    """컬렉션 변경 스트림

    백그라운드 태스크에서 연결/수신/재연결을 반복.
    수신한 변경은 on_changes 콜백으로 전달 (프레임 순서 유지).

    Args:
        url: 스트림 URL
        collection: 컬렉션 이름
        api_key: API 키 (Bearer 토큰)
        on_changes: 변경 수신 콜백
        on_error: 연결 에러 콜백 (선택)
    """

    RECONNECT_MIN_DELAY = Defaults.RECONNECT_MIN_DELAY_SEC
    RECONNECT_MAX_DELAY = Defaults.RECONNECT_MAX_DELAY_SEC
    PING_INTERVAL = 20  # ping 간격 (초)
    PING_TIMEOUT = 10  # ping 타임아웃 (초)

    def __init__(
        self,
        url: str,
        collection: str,
        api_key: str,
        on_changes: ChangesCallback,
        on_error: ErrorCallback | None = None,
    ):
        self.url = url
        self._collection = collection
        self.api_key = api_key
        self.on_changes = on_changes
        self.on_error = on_error

        self._state = StreamState.DISCONNECTED
        self._ws: Any = None
        self._run_task: asyncio.Task[None] | None = None
        self._should_run = False

    @property
    def collection(self) -> str:
        """구독 중인 컬렉션 이름"""
        return self._collection

    @property
    def state(self) -> StreamState:
        """현재 연결 상태"""
        return self._state

    async def start(self) -> None:
        """스트림 시작 (연결은 백그라운드에서 진행)"""
        if self._run_task is not None:
            return

        self._should_run = True
        self._run_task = asyncio.create_task(self._run())

    async def close(self) -> None:
        """스트림 종료"""
        self._should_run = False

        if self._run_task is not None:
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
            self._run_task = None

        await self._close_ws()
        self._set_state(StreamState.DISCONNECTED)

    async def _close_ws(self) -> None:
        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:
                logger.debug("WebSocket 종료 중 에러", extra={"error": str(e)})
            self._ws = None

    async def _run(self) -> None:
        """연결 → 수신 → (끊기면) 백오프 후 재연결"""
        delay = self.RECONNECT_MIN_DELAY

        while self._should_run:
            self._set_state(
                StreamState.CONNECTING
                if self._state == StreamState.DISCONNECTED
                else StreamState.RECONNECTING
            )
            try:
                self._ws = await websockets.connect(
                    self.url,
                    additional_headers={"Authorization": f"Bearer {self.api_key}"},
                    ping_interval=self.PING_INTERVAL,
                    ping_timeout=self.PING_TIMEOUT,
                )
                self._set_state(StreamState.CONNECTED)
                delay = self.RECONNECT_MIN_DELAY
                logger.info("변경 스트림 연결 성공", extra={"collection": self._collection})

                await self._receive_loop()

            except asyncio.CancelledError:
                raise
            except InvalidStatus as e:
                status = e.response.status_code
                await self._report_error(RemoteError(status=status, message=str(e)))
            except (ConnectionClosed, OSError, asyncio.TimeoutError) as e:
                await self._report_error(RemoteUnavailableError(status=0, message=str(e)))
            except WebSocketException as e:
                await self._report_error(RemoteError(status=0, message=str(e)))
            except Exception as e:
                logger.error(
                    "변경 스트림 처리 중 예기치 않은 에러",
                    extra={"collection": self._collection, "error": repr(e)},
                )
                await self._report_error(RemoteError(status=0, message=repr(e)))
            finally:
                await self._close_ws()

            if not self._should_run:
                break

            logger.info(
                "변경 스트림 재연결 대기",
                extra={"collection": self._collection, "delay": delay},
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.RECONNECT_MAX_DELAY)

    async def _receive_loop(self) -> None:
        """메시지 수신 루프 (연결이 닫히면 반환)"""
        async for message in self._ws:
            try:
                changes = parse_changes(message)
            except ValueError as e:
                logger.warning(
                    "변경 프레임 파싱 실패",
                    extra={"collection": self._collection, "error": str(e)},
                )
                continue

            if not changes:
                continue

            try:
                await self.on_changes(changes)
            except Exception as e:
                logger.error(
                    "변경 콜백 처리 중 에러",
                    extra={"collection": self._collection, "error": str(e)},
                )

    async def _report_error(self, error: RemoteError) -> None:
        logger.warning(
            "변경 스트림 연결 끊김",
            extra={"collection": self._collection, "error": str(error)},
        )
        if self.on_error is not None:
            try:
                await self.on_error(error)
            except Exception as e:
                logger.error("에러 콜백 실패", extra={"error": str(e)})

    def _set_state(self, new_state: StreamState) -> None:
        old_state = self._state
        self._state = new_state

        if old_state != new_state:
            logger.debug(
                "변경 스트림 상태 변경",
                extra={
                    "collection": self._collection,
                    "old_state": old_state.value,
                    "new_state": new_state.value,
                },
            )

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "RemoteChangeStream":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
