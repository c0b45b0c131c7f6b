"""
원격 문서 미러 REST 클라이언트

사용자별 문서 컬렉션을 HTTP로 조회/저장/삭제.
IRemoteMirror Protocol 준수.

API 레이아웃:
- GET    {base}/users/{uid}/{collection}              → {"documents": [...]}
- PUT    {base}/users/{uid}/{collection}/{doc_id}     → upsert
- POST   {base}/users/{uid}/{collection}:batchWrite   → {"writes": [...]}
- DELETE {base}/users/{uid}/{collection}/{doc_id}
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from adapters.interfaces import ChangesCallback, ErrorCallback
from adapters.mirror.ws_client import RemoteChangeStream
from adapters.models import RemoteDocument
from core.errors import RemoteError, RemoteUnavailableError

logger = logging.getLogger(__name__)


# 미구성/연결 불가를 나타내는 에러 코드 (환경성)
UNAVAILABLE_ERROR_CODES: frozenset[str] = frozenset({"NOT_FOUND", "UNAVAILABLE"})

# 환경성으로 간주하는 HTTP 상태 코드
UNAVAILABLE_STATUS_CODES: frozenset[int] = frozenset({502, 503, 504})


def _parse_error(response: httpx.Response) -> tuple[str, str]:
    """에러 응답 → (code, message)"""
    try:
        data = response.json()
        error = data.get("error", {}) if isinstance(data, dict) else {}
        code = str(error.get("code", response.status_code))
        message = str(error.get("message", response.text))
    except ValueError:
        code = str(response.status_code)
        message = response.text
    return code, message


class RemoteMirrorClient:
    """원격 문서 미러 REST 클라이언트

    IRemoteMirror Protocol 구현.

    Args:
        base_url: REST API 베이스 URL
        ws_url: 변경 스트림 WebSocket 베이스 URL
        api_key: API 키 (Bearer 토큰)
        timeout: 요청 타임아웃 (초)
        max_retries: 최대 재시도 횟수 (전송 오류 시)
        transport: httpx 전송 계층 (테스트용 MockTransport 주입)
    """

    def __init__(
        self,
        base_url: str,
        ws_url: str,
        api_key: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ws_url = ws_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries

        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 가져오기 (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        return self._client

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _collection_path(self, user_id: str, collection: str) -> str:
        return f"/users/{quote(user_id, safe='')}/{quote(collection, safe='')}"

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """API 요청 실행

        Args:
            method: HTTP 메서드 (GET, PUT, POST, DELETE)
            path: API 경로
            json: 요청 본문

        Returns:
            JSON 응답 (본문이 없으면 None)

        Raises:
            RemoteUnavailableError: 연결 불가, 5xx 게이트웨이 오류, 미구성 DB
            RemoteError: 기타 API 에러 응답
        """
        url = f"{self.base_url}{path}"
        client = await self._get_client()

        for attempt in range(self.max_retries):
            try:
                response = await client.request(method, url, json=json)
            except httpx.RequestError as e:
                logger.warning(
                    "Remote request error",
                    extra={"path": path, "error": str(e), "attempt": attempt + 1},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise RemoteUnavailableError(status=0, message=str(e)) from e

            if response.status_code >= 400:
                code, message = _parse_error(response)

                if (
                    response.status_code in UNAVAILABLE_STATUS_CODES
                    or code in UNAVAILABLE_ERROR_CODES
                ):
                    raise RemoteUnavailableError(
                        status=response.status_code,
                        message=f"{code}: {message}",
                    )

                raise RemoteError(status=response.status_code, message=f"{code}: {message}")

            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise RemoteError(
                    status=response.status_code, message=f"Invalid JSON response: {e}"
                ) from e

        # max_retries <= 0
        raise RemoteUnavailableError(status=0, message="No request attempted")

    # -------------------------------------------------------------------------
    # 문서 조회/저장
    # -------------------------------------------------------------------------

    async def list_documents(
        self,
        user_id: str,
        collection: str,
    ) -> list[RemoteDocument]:
        """컬렉션의 전체 문서 조회"""
        data = await self._request("GET", self._collection_path(user_id, collection))

        if data is None:
            data = {}
        items = data.get("documents", []) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise RemoteError(status=0, message=f"Malformed {collection} listing")

        documents: list[RemoteDocument] = []
        for item in items:
            try:
                documents.append(RemoteDocument.from_dict(item))
            except ValueError as e:
                logger.warning(
                    "잘못된 원격 문서 무시",
                    extra={"collection": collection, "error": str(e)},
                )
        return documents

    async def set_document(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
    ) -> None:
        """문서 upsert (전체 덮어쓰기)"""
        path = f"{self._collection_path(user_id, collection)}/{quote(doc_id, safe='')}"
        await self._request("PUT", path, json={"fields": fields})

    async def batch_set(
        self,
        user_id: str,
        collection: str,
        documents: dict[str, dict[str, Any]],
    ) -> None:
        """여러 문서 일괄 upsert"""
        if not documents:
            return

        writes = [{"id": doc_id, "fields": fields} for doc_id, fields in documents.items()]
        path = f"{self._collection_path(user_id, collection)}:batchWrite"
        await self._request("POST", path, json={"writes": writes})

    async def delete_document(
        self,
        user_id: str,
        collection: str,
        doc_id: str,
    ) -> None:
        """문서 삭제"""
        path = f"{self._collection_path(user_id, collection)}/{quote(doc_id, safe='')}"
        await self._request("DELETE", path)

    # -------------------------------------------------------------------------
    # 변경 구독
    # -------------------------------------------------------------------------

    async def subscribe(
        self,
        user_id: str,
        collection: str,
        on_changes: ChangesCallback,
        on_error: ErrorCallback | None = None,
    ) -> RemoteChangeStream:
        """컬렉션 변경 스트림 구독 시작

        연결은 백그라운드 태스크에서 수행되며, 끊기면 지수 백오프로 재연결.
        """
        stream = RemoteChangeStream(
            url=f"{self.ws_url}{self._collection_path(user_id, collection)}:listen",
            collection=collection,
            api_key=self.api_key,
            on_changes=on_changes,
            on_error=on_error,
        )
        await stream.start()
        return stream
