"""
Mock 원격 미러

테스트용 메모리 내 문서 저장소.
IRemoteMirror, IChangeSubscription Protocol 준수.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from adapters.interfaces import ChangesCallback, ErrorCallback
from adapters.models import RemoteChange, RemoteDocument
from core.types import ChangeType
from core.utils.timezone import now_utc


@dataclass
class MockMirrorState:
    """Mock 상태 (메모리 내 저장)"""

    # (user_id, collection) -> {doc_id -> RemoteDocument}
    documents: dict[tuple[str, str], dict[str, RemoteDocument]] = field(default_factory=dict)

    # 호출 기록 (method, user_id, collection, doc_id)
    calls: list[tuple[str, str, str, str | None]] = field(default_factory=list)

    # 시뮬레이션 옵션: method 이름 -> 발생시킬 예외
    failures: dict[str, Exception] = field(default_factory=dict)


class MockChangeSubscription:
    """Mock 변경 구독 핸들"""

    def __init__(
        self,
        mirror: "MockRemoteMirror",
        user_id: str,
        collection: str,
        on_changes: ChangesCallback,
        on_error: ErrorCallback | None = None,
    ):
        self._mirror = mirror
        self.user_id = user_id
        self._collection = collection
        self.on_changes = on_changes
        self.on_error = on_error
        self.closed = False

    @property
    def collection(self) -> str:
        return self._collection

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._mirror._detach(self)


class MockRemoteMirror:
    """Mock 원격 미러

    IRemoteMirror Protocol 구현.

    사용 예시:
    ```python
    mirror = MockRemoteMirror()

    # 원격 초기 데이터
    mirror.put("uid", "people", "p1", {"name": "Alex"})

    # 실패 시뮬레이션
    mirror.fail("batch_set", RemoteUnavailableError(0, "offline"))

    # 변경 스트림 시뮬레이션
    await mirror.emit("uid", "people", [RemoteChange(ChangeType.ADDED, "p2", {...})])
    ```
    """

    def __init__(self, state: MockMirrorState | None = None):
        self.state = state or MockMirrorState()
        self._subscriptions: list[MockChangeSubscription] = []
        self.closed = False

    # -------------------------------------------------------------------------
    # 테스트 헬퍼
    # -------------------------------------------------------------------------

    def put(self, user_id: str, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """호출 기록 없이 문서 직접 저장"""
        bucket = self.state.documents.setdefault((user_id, collection), {})
        bucket[doc_id] = RemoteDocument(id=doc_id, fields=dict(fields), updated_at=now_utc())

    def get(self, user_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        """저장된 문서 필드 조회 (없으면 None)"""
        doc = self.state.documents.get((user_id, collection), {}).get(doc_id)
        return dict(doc.fields) if doc else None

    def doc_ids(self, user_id: str, collection: str) -> set[str]:
        return set(self.state.documents.get((user_id, collection), {}))

    def fail(self, method: str, error: Exception) -> None:
        """해당 메서드 호출 시 error 발생 (clear_failures 전까지 유지)"""
        self.state.failures[method] = error

    def clear_failures(self) -> None:
        self.state.failures.clear()

    def calls_of(self, method: str) -> list[tuple[str, str, str, str | None]]:
        return [c for c in self.state.calls if c[0] == method]

    @property
    def subscriptions(self) -> list[MockChangeSubscription]:
        """활성 구독 목록"""
        return list(self._subscriptions)

    async def emit(self, user_id: str, collection: str, changes: list[RemoteChange]) -> None:
        """변경을 저장소에 반영하고 해당 컬렉션 구독자에게 전달"""
        bucket = self.state.documents.setdefault((user_id, collection), {})
        for change in changes:
            if change.type == ChangeType.REMOVED:
                bucket.pop(change.doc_id, None)
            else:
                bucket[change.doc_id] = RemoteDocument(
                    id=change.doc_id,
                    fields=dict(change.fields),
                    updated_at=now_utc(),
                )

        for sub in self.subscriptions:
            if sub.user_id == user_id and sub.collection == collection:
                await sub.on_changes(list(changes))

    async def emit_error(self, user_id: str, collection: str, error: Exception) -> None:
        """구독자의 on_error 콜백 호출"""
        for sub in self.subscriptions:
            if sub.user_id == user_id and sub.collection == collection and sub.on_error:
                await sub.on_error(error)

    def _detach(self, sub: MockChangeSubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def _record(self, method: str, user_id: str, collection: str, doc_id: str | None = None) -> None:
        self.state.calls.append((method, user_id, collection, doc_id))
        error = self.state.failures.get(method)
        if error is not None:
            raise error

    # -------------------------------------------------------------------------
    # IRemoteMirror
    # -------------------------------------------------------------------------

    async def list_documents(self, user_id: str, collection: str) -> list[RemoteDocument]:
        self._record("list_documents", user_id, collection)
        await asyncio.sleep(0)
        return list(self.state.documents.get((user_id, collection), {}).values())

    async def set_document(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        self._record("set_document", user_id, collection, doc_id)
        self.put(user_id, collection, doc_id, fields)

    async def batch_set(
        self,
        user_id: str,
        collection: str,
        documents: dict[str, dict[str, Any]],
    ) -> None:
        self._record("batch_set", user_id, collection)
        for doc_id, fields in documents.items():
            self.put(user_id, collection, doc_id, fields)

    async def delete_document(self, user_id: str, collection: str, doc_id: str) -> None:
        self._record("delete_document", user_id, collection, doc_id)
        self.state.documents.get((user_id, collection), {}).pop(doc_id, None)

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_changes: ChangesCallback,
        on_error: ErrorCallback | None = None,
    ) -> MockChangeSubscription:
        self._record("subscribe", user_id, collection)
        sub = MockChangeSubscription(self, user_id, collection, on_changes, on_error)
        self._subscriptions.append(sub)
        return sub

    async def close(self) -> None:
        self.closed = True
