"""
세션 생명주기

인증 계층의 사용자 ID 변경 신호를 동기화 코디네이터 세션으로 연결.
"""

import asyncio
import logging

from sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class SessionLifecycle:
    """사용자 ID 변경 → 세션 시작/종료

    - 새 ID: (기존 세션 종료 후) bind + start_session
    - 같은 ID로 이미 LIVE: 무시
    - None: 진행 중인 세션 시작을 기다리지 않고 즉시 end_session

    로그인 처리는 asyncio.Lock으로 직렬화.
    신호마다 순번을 매겨 마지막 신호만 최종 상태에 반영
    (대기 중이던 이전 로그인은 건너뛰고, 도중에 로그아웃되면 세션 종료).

    Args:
        coordinator: 동기화 코디네이터
    """

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator
        self._lock = asyncio.Lock()
        self._sequence = 0

    async def on_identity_change(self, user_id: str | None) -> None:
        self._sequence += 1
        sequence = self._sequence

        if not user_id:
            # 세대 번호가 바뀌므로 진행 중인 시작 결과는 무시됨
            logger.info("Identity cleared")
            await self.coordinator.end_session()
            return

        async with self._lock:
            if sequence != self._sequence:
                logger.debug(f"Identity change superseded: {user_id}")
                return

            if self.coordinator.user_id == user_id and self.coordinator.is_live:
                logger.debug(f"Identity unchanged: {user_id}")
                return

            logger.info("Identity changed", extra={"user_id": user_id})
            await self.coordinator.bind(user_id)
            await self.coordinator.start_session()

            if sequence != self._sequence:
                # 시작 도중 로그아웃 또는 다른 ID 신호 도착
                await self.coordinator.end_session()
