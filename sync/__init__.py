"""
동기화 레이어

로컬 Ledger 저장소와 원격 미러 사이의 다운로드/푸시/실시간 병합,
레코드 단위 미러링, 세션 생명주기.
"""

from sync.bootstrap import LedgerApp, create_remote_mirror
from sync.coordinator import SyncCoordinator
from sync.listener import ChangeListener
from sync.merger import ChangeMerger
from sync.mirrored_ledger import MirroredLedger
from sync.session import SessionLifecycle

__all__ = [
    "LedgerApp",
    "create_remote_mirror",
    "SyncCoordinator",
    "ChangeListener",
    "ChangeMerger",
    "MirroredLedger",
    "SessionLifecycle",
]
