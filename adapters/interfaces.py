"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from adapters.models import RemoteChange, RemoteDocument


# 변경 스트림 콜백 타입 정의
ChangesCallback = Callable[[list[RemoteChange]], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


@runtime_checkable
class IChangeSubscription(Protocol):
    """원격 컬렉션 변경 구독 핸들"""

    @property
    def collection(self) -> str:
        """구독 중인 컬렉션 이름"""
        ...

    async def close(self) -> None:
        """구독 해제 (여러 번 호출해도 안전)"""
        ...


@runtime_checkable
class IRemoteMirror(Protocol):
    """원격 문서 미러 인터페이스

    사용자별 네임스페이스(users/{user_id}) 아래
    평면 컬렉션(cards, people, transactions)을 다룸.

    에러 규약:
    - RemoteUnavailableError: 미구성/연결 불가 (환경성)
    - RemoteError: 그 외 원격 실패
    """

    async def list_documents(
        self,
        user_id: str,
        collection: str,
    ) -> list[RemoteDocument]:
        """컬렉션의 전체 문서 조회"""
        ...

    async def set_document(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        """문서 upsert (전체 덮어쓰기)"""
        ...

    async def batch_set(
        self,
        user_id: str,
        collection: str,
        documents: dict[str, dict[str, Any]],
    ) -> None:
        """여러 문서 일괄 upsert (doc_id → fields)"""
        ...

    async def delete_document(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
    ) -> None:
        """문서 삭제 (없어도 에러 아님)"""
        ...

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_changes: ChangesCallback,
        on_error: ErrorCallback | None = None,
    ) -> IChangeSubscription:
        """컬렉션 변경 구독 시작"""
        ...

    async def close(self) -> None:
        """연결 자원 정리"""
        ...
