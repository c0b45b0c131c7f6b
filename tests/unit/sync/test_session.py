"""
세션 생명주기 테스트
"""

import asyncio

import pytest

from adapters.mock.mirror import MockRemoteMirror
from core.domain.state_machines import SyncState
from core.errors import RemoteUnavailableError, StorageError
from core.ledger.store import LedgerStore
from sync.coordinator import SyncCoordinator
from sync.session import SessionLifecycle


@pytest.fixture
def coordinator(store: LedgerStore, mock_mirror: MockRemoteMirror) -> SyncCoordinator:
    return SyncCoordinator(store, mock_mirror)


@pytest.fixture
def session(coordinator: SyncCoordinator) -> SessionLifecycle:
    return SessionLifecycle(coordinator)


class TestSessionLifecycle:
    """SessionLifecycle 테스트"""

    @pytest.mark.asyncio
    async def test_identity_starts_session(
        self, session: SessionLifecycle, coordinator: SyncCoordinator
    ) -> None:
        await session.on_identity_change("uid")

        assert coordinator.state == SyncState.LIVE
        assert coordinator.user_id == "uid"

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_identity_cleared_ends_session(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
    ) -> None:
        await session.on_identity_change("uid")
        await session.on_identity_change(None)

        assert coordinator.state == SyncState.DETACHED
        assert mock_mirror.subscriptions == []

    @pytest.mark.asyncio
    async def test_clear_when_detached_is_noop(
        self, session: SessionLifecycle, coordinator: SyncCoordinator
    ) -> None:
        await session.on_identity_change(None)

        assert coordinator.state == SyncState.DETACHED

    @pytest.mark.asyncio
    async def test_same_identity_ignored(
        self, session: SessionLifecycle, mock_mirror: MockRemoteMirror
    ) -> None:
        await session.on_identity_change("uid")
        await session.on_identity_change("uid")

        assert len(mock_mirror.calls_of("subscribe")) == 3

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_switch_identity(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
    ) -> None:
        await session.on_identity_change("uid-a")
        await session.on_identity_change("uid-b")

        assert coordinator.user_id == "uid-b"
        assert {sub.user_id for sub in mock_mirror.subscriptions} == {"uid-b"}

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_concurrent_calls_serialized(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
    ) -> None:
        """동시 호출도 순서대로 처리 (마지막 신호가 최종 상태)"""
        await asyncio.gather(
            session.on_identity_change("uid-a"),
            session.on_identity_change(None),
            session.on_identity_change("uid-b"),
        )

        assert coordinator.state == SyncState.LIVE
        assert coordinator.user_id == "uid-b"
        assert {sub.user_id for sub in mock_mirror.subscriptions} == {"uid-b"}

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_unreachable_remote_no_exception(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
    ) -> None:
        for method in ("list_documents", "batch_set", "subscribe"):
            mock_mirror.fail(method, RemoteUnavailableError(0, "offline"))

        await session.on_identity_change("uid")

        assert coordinator.state == SyncState.LIVE

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_logout_not_blocked_by_hung_start(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """원격 응답이 멈춘 세션 시작 중에도 로그아웃은 즉시 완료"""
        gate = asyncio.Event()
        original_list = mock_mirror.list_documents

        async def hung_list(user_id: str, collection: str):
            await gate.wait()
            return await original_list(user_id, collection)

        monkeypatch.setattr(mock_mirror, "list_documents", hung_list)

        login = asyncio.create_task(session.on_identity_change("uid"))
        await asyncio.sleep(0)
        assert coordinator.state == SyncState.SYNCING

        await asyncio.wait_for(session.on_identity_change(None), timeout=1)

        assert coordinator.state == SyncState.DETACHED
        assert coordinator.user_id is None

        gate.set()
        await login

        assert coordinator.state == SyncState.DETACHED
        assert mock_mirror.subscriptions == []
        assert mock_mirror.calls_of("batch_set") == []

    @pytest.mark.asyncio
    async def test_relogin_during_hung_start(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        mock_mirror: MockRemoteMirror,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """멈춘 시작 중 로그아웃 후 다른 ID 로그인 → 마지막 ID로 LIVE"""
        gate = asyncio.Event()
        original_list = mock_mirror.list_documents

        async def gated_list(user_id: str, collection: str):
            if user_id == "uid-a":
                await gate.wait()
            return await original_list(user_id, collection)

        monkeypatch.setattr(mock_mirror, "list_documents", gated_list)

        first = asyncio.create_task(session.on_identity_change("uid-a"))
        await asyncio.sleep(0)
        await asyncio.wait_for(session.on_identity_change(None), timeout=1)
        second = asyncio.create_task(session.on_identity_change("uid-b"))

        gate.set()
        await asyncio.gather(first, second)

        assert coordinator.state == SyncState.LIVE
        assert coordinator.user_id == "uid-b"
        assert {sub.user_id for sub in mock_mirror.subscriptions} == {"uid-b"}

        await session.on_identity_change(None)

    @pytest.mark.asyncio
    async def test_same_identity_retried_after_failed_start(
        self,
        session: SessionLifecycle,
        coordinator: SyncCoordinator,
        store: LedgerStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """로컬 저장소 에러로 시작 실패 → ATTACHED 유지, 같은 ID 재시도 시 LIVE"""

        async def broken_persons():
            raise StorageError("disk I/O error")

        monkeypatch.setattr(store, "get_all_persons", broken_persons)

        with pytest.raises(StorageError):
            await session.on_identity_change("uid")

        assert coordinator.state == SyncState.ATTACHED
        assert coordinator.user_id == "uid"

        monkeypatch.undo()
        await session.on_identity_change("uid")

        assert coordinator.state == SyncState.LIVE

        await session.on_identity_change(None)
