"""
원격 미러 REST 클라이언트 테스트

httpx.MockTransport로 HTTP 계층 대체.
"""

import json
from typing import Callable

import httpx
import pytest

from adapters.mirror.rest_client import RemoteMirrorClient
from core.errors import RemoteError, RemoteUnavailableError


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    max_retries: int = 1,
) -> RemoteMirrorClient:
    return RemoteMirrorClient(
        base_url="https://mirror.test/v1/",
        ws_url="wss://mirror.test/v1",
        api_key="secret",
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    """요청 형식 테스트"""

    @pytest.mark.asyncio
    async def test_list_documents(self) -> None:
        """GET 컬렉션 → RemoteDocument 목록"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "documents": [
                        {
                            "id": "p1",
                            "fields": {"name": "Alex"},
                            "updated_at": "2026-03-01T00:00:00+00:00",
                        },
                        {"fields": {"name": "no id"}},
                    ]
                },
            )

        client = make_client(handler)
        docs = await client.list_documents("uid-1", "people")
        await client.close()

        assert seen[0].method == "GET"
        assert seen[0].url.path == "/v1/users/uid-1/people"
        assert seen[0].headers["Authorization"] == "Bearer secret"
        assert [d.id for d in docs] == ["p1"]
        assert docs[0].fields == {"name": "Alex"}
        assert docs[0].updated_at is not None

    @pytest.mark.asyncio
    async def test_set_document(self) -> None:
        """PUT 문서 (전체 필드)"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = make_client(handler)
        await client.set_document("uid-1", "cards", "c1", {"card_name": "Travel"})
        await client.close()

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/v1/users/uid-1/cards/c1"
        assert json.loads(seen[0].content) == {"fields": {"card_name": "Travel"}}

    @pytest.mark.asyncio
    async def test_batch_set(self) -> None:
        """POST :batchWrite"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = make_client(handler)
        await client.batch_set("uid-1", "people", {"p1": {"name": "A"}, "p2": {"name": "B"}})
        await client.close()

        body = json.loads(seen[0].content)
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/v1/users/uid-1/people:batchWrite"
        assert body == {
            "writes": [
                {"id": "p1", "fields": {"name": "A"}},
                {"id": "p2", "fields": {"name": "B"}},
            ]
        }

    @pytest.mark.asyncio
    async def test_batch_set_empty_skips_request(self) -> None:
        """빈 일괄 쓰기는 요청하지 않음"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        client = make_client(handler)
        await client.batch_set("uid-1", "people", {})
        await client.close()

        assert seen == []

    @pytest.mark.asyncio
    async def test_delete_document(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = make_client(handler)
        await client.delete_document("uid-1", "transactions", "t1")
        await client.close()

        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/v1/users/uid-1/transactions/t1"


class TestErrorMapping:
    """에러 분류 테스트"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [502, 503, 504])
    async def test_gateway_status_unavailable(self, status: int) -> None:
        client = make_client(lambda request: httpx.Response(status, text="down"))

        with pytest.raises(RemoteUnavailableError) as exc_info:
            await client.list_documents("uid-1", "people")
        await client.close()

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["NOT_FOUND", "UNAVAILABLE"])
    async def test_unprovisioned_code_unavailable(self, code: str) -> None:
        """미구성 DB 에러 코드 → 환경성"""
        client = make_client(
            lambda request: httpx.Response(
                404, json={"error": {"code": code, "message": "database missing"}}
            )
        )

        with pytest.raises(RemoteUnavailableError, match=code):
            await client.set_document("uid-1", "people", "p1", {})
        await client.close()

    @pytest.mark.asyncio
    async def test_permission_denied_is_remote_error(self) -> None:
        """기타 에러 → RemoteError (환경성 아님)"""
        client = make_client(
            lambda request: httpx.Response(
                403, json={"error": {"code": "PERMISSION_DENIED", "message": "nope"}}
            )
        )

        with pytest.raises(RemoteError) as exc_info:
            await client.set_document("uid-1", "people", "p1", {})
        await client.close()

        assert not isinstance(exc_info.value, RemoteUnavailableError)
        assert exc_info.value.status == 403
        assert "PERMISSION_DENIED" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        client = make_client(lambda request: httpx.Response(400, text="bad request"))

        with pytest.raises(RemoteError, match="bad request"):
            await client.delete_document("uid-1", "cards", "c1")
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_unavailable(self) -> None:
        """연결 실패 → RemoteUnavailableError"""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(RemoteUnavailableError):
            await client.list_documents("uid-1", "people")
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """전송 오류는 재시도 후 성공 가능"""
        attempts: list[int] = []

        async def no_sleep(delay: float) -> None:
            return None

        monkeypatch.setattr("adapters.mirror.rest_client.asyncio.sleep", no_sleep)

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) < 3:
                raise httpx.ReadTimeout("timeout", request=request)
            return httpx.Response(200, json={"documents": []})

        client = make_client(handler, max_retries=3)
        docs = await client.list_documents("uid-1", "people")
        await client.close()

        assert docs == []
        assert len(attempts) == 3


class TestMalformedResponses:
    """잘못된 응답 형식 처리"""

    @pytest.mark.asyncio
    async def test_non_object_fields_skipped(self) -> None:
        """fields가 객체가 아닌 문서만 건너뜀"""
        client = make_client(
            lambda request: httpx.Response(
                200,
                json={"documents": [{"id": "p1", "fields": [1, 2]}, {"id": "p2", "fields": {}}]},
            )
        )

        docs = await client.list_documents("uid-1", "people")
        await client.close()

        assert [d.id for d in docs] == ["p2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"documents": {"p1": {}}}, [1, 2]])
    async def test_malformed_listing_is_remote_error(self, body: object) -> None:
        client = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(RemoteError, match="Malformed"):
            await client.list_documents("uid-1", "people")
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json_body_is_remote_error(self) -> None:
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RemoteError, match="Invalid JSON") as exc_info:
            await client.list_documents("uid-1", "people")
        await client.close()

        assert not isinstance(exc_info.value, RemoteUnavailableError)


class TestSubscribe:
    """subscribe 테스트"""

    @pytest.mark.asyncio
    async def test_stream_url(self) -> None:
        """컬렉션별 :listen URL로 스트림 생성"""
        client = make_client(lambda request: httpx.Response(200))

        async def on_changes(changes: list) -> None:
            return None

        stream = await client.subscribe("uid 1", "people", on_changes)
        await stream.close()

        assert stream.url == "wss://mirror.test/v1/users/uid%201/people:listen"
        assert stream.collection == "people"
