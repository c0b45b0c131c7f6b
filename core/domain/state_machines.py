"""
State Machines

동기화 세션의 상태 전이 관리.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class SyncState(str, Enum):
    """동기화 세션 상태

    전이 규칙:
    - DETACHED → ATTACHED: 사용자 ID 바인딩
    - ATTACHED → SYNCING: 세션 시작 (다운로드 + 초기 푸시)
    - SYNCING → LIVE: 실시간 리스너 연결
    - SYNCING → ATTACHED: 세션 시작 실패 (로컬 저장소 에러, 재시도 가능)
    - ATTACHED/SYNCING/LIVE → DETACHED: 사용자 ID 해제
    """
    DETACHED = "DETACHED"
    ATTACHED = "ATTACHED"
    SYNCING = "SYNCING"
    LIVE = "LIVE"


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인

        Args:
            to_state: 목표 상태

        Returns:
            전이 가능 여부
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(
            f"{self._name}: {old_state} → {target}",
        )

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return self._history.copy()


class SyncStateMachine(StateMachine):
    """동기화 세션 상태 머신"""

    TRANSITIONS: dict[str, list[str]] = {
        "DETACHED": ["ATTACHED"],
        "ATTACHED": ["SYNCING", "DETACHED"],
        "SYNCING": ["LIVE", "ATTACHED", "DETACHED"],
        "LIVE": ["DETACHED"],
    }

    def __init__(self, initial_state: str | SyncState = SyncState.DETACHED):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="SyncStateMachine",
        )

    @property
    def is_attached(self) -> bool:
        """사용자 ID가 바인딩된 상태인지"""
        return self._state != SyncState.DETACHED.value

    @property
    def is_live(self) -> bool:
        """실시간 리스너 활성 상태인지"""
        return self._state == SyncState.LIVE.value
