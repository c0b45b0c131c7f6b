"""
Mock 원격 미러 테스트
"""

import pytest

from adapters.interfaces import IChangeSubscription, IRemoteMirror
from adapters.mock.mirror import MockRemoteMirror
from adapters.models import RemoteChange
from core.errors import RemoteUnavailableError
from core.types import ChangeType


class TestMockRemoteMirror:
    """MockRemoteMirror 테스트"""

    def test_protocol_compliance(self, mock_mirror: MockRemoteMirror) -> None:
        """IRemoteMirror Protocol 준수"""
        assert isinstance(mock_mirror, IRemoteMirror)

    @pytest.mark.asyncio
    async def test_set_list_delete(self, mock_mirror: MockRemoteMirror) -> None:
        await mock_mirror.set_document("u", "people", "p1", {"name": "Alex"})
        await mock_mirror.batch_set("u", "people", {"p2": {"name": "Sam"}})

        docs = await mock_mirror.list_documents("u", "people")
        assert {d.id for d in docs} == {"p1", "p2"}

        await mock_mirror.delete_document("u", "people", "p1")
        await mock_mirror.delete_document("u", "people", "missing")

        assert mock_mirror.doc_ids("u", "people") == {"p2"}
        assert mock_mirror.doc_ids("other", "people") == set()

    @pytest.mark.asyncio
    async def test_failure_injection(self, mock_mirror: MockRemoteMirror) -> None:
        mock_mirror.fail("set_document", RemoteUnavailableError(0, "offline"))

        with pytest.raises(RemoteUnavailableError):
            await mock_mirror.set_document("u", "cards", "c1", {})

        mock_mirror.clear_failures()
        await mock_mirror.set_document("u", "cards", "c1", {})

        assert len(mock_mirror.calls_of("set_document")) == 2
        assert mock_mirror.get("u", "cards", "c1") == {}

    @pytest.mark.asyncio
    async def test_emit_to_subscribers(self, mock_mirror: MockRemoteMirror) -> None:
        received: list[RemoteChange] = []

        async def on_changes(changes: list[RemoteChange]) -> None:
            received.extend(changes)

        sub = await mock_mirror.subscribe("u", "people", on_changes)
        assert isinstance(sub, IChangeSubscription)

        change = RemoteChange(ChangeType.ADDED, "p1", {"name": "Alex"})
        await mock_mirror.emit("u", "people", [change])
        await mock_mirror.emit("u", "cards", [RemoteChange(ChangeType.ADDED, "c1")])

        assert received == [change]
        assert mock_mirror.get("u", "people", "p1") == {"name": "Alex"}

        await sub.close()
        await sub.close()
        await mock_mirror.emit("u", "people", [RemoteChange(ChangeType.REMOVED, "p1")])

        assert len(received) == 1
        assert mock_mirror.subscriptions == []
        assert mock_mirror.get("u", "people", "p1") is None
