"""
어댑터 레이어

외부 서비스(로컬 DB, 원격 미러)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    ChangesCallback,
    ErrorCallback,
    IChangeSubscription,
    IRemoteMirror,
)
from adapters.models import (
    RemoteChange,
    RemoteDocument,
)

__all__ = [
    # Interfaces
    "IRemoteMirror",
    "IChangeSubscription",
    "ChangesCallback",
    "ErrorCallback",
    # Models
    "RemoteDocument",
    "RemoteChange",
]
