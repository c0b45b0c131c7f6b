"""
원격 문서 미러 어댑터

httpx REST 클라이언트 + websockets 변경 스트림.
"""

from adapters.mirror.rest_client import RemoteMirrorClient
from adapters.mirror.ws_client import RemoteChangeStream, parse_changes

__all__ = [
    "RemoteMirrorClient",
    "RemoteChangeStream",
    "parse_changes",
]
