"""
원격 변경 병합

원격 문서/변경 이벤트를 로컬 Ledger 저장소에 반영.

병합 정책:
- 다운로드 (세션 시작): 로컬에 없는 ID만 삽입 (충돌 시 로컬 우선)
- 실시간 변경:
  - people/cards added/modified: 없으면 삽입, 있으면 덮어쓰기 (원격 우선)
  - transactions added: 없으면 삽입. 상대방이 아직 없으면 보류 후 상대방 도착 시 재시도
  - transactions modified: 병합하지 않음 (debug 로그만)
  - removed: 있으면 삭제, 없으면 무시
"""

import logging
from typing import Any

from adapters.models import RemoteChange, RemoteDocument
from core.constants import RemoteCollections
from core.errors import LedgerError, NotFoundError
from core.ledger.models import Card, Person, Transaction
from core.ledger.store import LedgerStore
from core.types import ChangeType
from sync.serializer import card_from_fields, person_from_fields, transaction_from_fields

logger = logging.getLogger(__name__)


class ChangeMerger:
    """원격 → 로컬 병합기

    Args:
        store: Ledger 저장소
    """

    def __init__(self, store: LedgerStore):
        self.store = store

        # person_id -> {transaction_id -> Transaction}
        self._pending: dict[str, dict[str, Transaction]] = {}

        self._applied = 0
        self._ignored = 0
        self._errors = 0
        self._downloaded = 0

    # -------------------------------------------------------------------------
    # 다운로드 병합
    # -------------------------------------------------------------------------

    async def merge_download(
        self,
        collection: str,
        documents: list[RemoteDocument],
    ) -> int:
        """다운로드한 문서 중 로컬에 없는 것만 삽입

        개별 문서 실패는 로그만 남기고 계속 진행.
        상대방이 없는 거래는 건너뜀.

        Returns:
            삽입된 문서 수
        """
        inserted = 0

        for doc in documents:
            try:
                if await self._exists(collection, doc.id):
                    continue
                await self._insert(collection, doc.id, doc.fields)
                inserted += 1
            except NotFoundError as e:
                logger.warning(
                    "상대방 없는 거래 건너뜀",
                    extra={"collection": collection, "doc_id": doc.id, "error": str(e)},
                )
            except (LedgerError, ValueError) as e:
                self._errors += 1
                logger.error(
                    "원격 문서 병합 실패",
                    extra={"collection": collection, "doc_id": doc.id, "error": str(e)},
                )

        self._downloaded += inserted
        logger.info(
            "원격 문서 다운로드 병합 완료",
            extra={
                "collection": collection,
                "received": len(documents),
                "inserted": inserted,
            },
        )
        return inserted

    # -------------------------------------------------------------------------
    # 실시간 변경 병합
    # -------------------------------------------------------------------------

    async def apply(self, collection: str, change: RemoteChange) -> None:
        """변경 1건 적용

        병합 에러는 로그만 남기고 전파하지 않음.
        """
        try:
            if collection == RemoteCollections.TRANSACTIONS:
                await self._apply_transaction(change)
            elif collection in (RemoteCollections.PEOPLE, RemoteCollections.CARDS):
                await self._apply_upsertable(collection, change)
            else:
                self._ignored += 1
                logger.warning(f"Unknown collection: {collection}")
        except (LedgerError, ValueError) as e:
            self._errors += 1
            logger.error(
                "원격 변경 병합 실패",
                extra={
                    "collection": collection,
                    "change_type": change.type.value,
                    "doc_id": change.doc_id,
                    "error": str(e),
                },
            )

    async def _apply_upsertable(self, collection: str, change: RemoteChange) -> None:
        if change.type == ChangeType.REMOVED:
            await self._remove(collection, change.doc_id)
            return

        if await self._exists(collection, change.doc_id):
            await self._overwrite(collection, change.doc_id, change.fields)
        else:
            await self._insert(collection, change.doc_id, change.fields)
        self._applied += 1

        if collection == RemoteCollections.PEOPLE:
            await self._flush_pending(change.doc_id)

    async def _apply_transaction(self, change: RemoteChange) -> None:
        if change.type == ChangeType.REMOVED:
            self._discard_pending(change.doc_id)
            await self._remove(RemoteCollections.TRANSACTIONS, change.doc_id)
            return

        if change.type == ChangeType.MODIFIED:
            self._ignored += 1
            logger.debug(f"Transaction modified event not merged: {change.doc_id}")
            return

        if await self.store.get_transaction(change.doc_id) is not None:
            self._ignored += 1
            return

        transaction = transaction_from_fields(change.doc_id, change.fields)
        try:
            await self.store.insert_transaction(transaction)
        except NotFoundError:
            self._pending.setdefault(transaction.person_id, {})[transaction.id] = transaction
            logger.info(
                "상대방 도착 전 거래 보류",
                extra={"transaction_id": transaction.id, "person_id": transaction.person_id},
            )
            return
        self._applied += 1

    async def _flush_pending(self, person_id: str) -> None:
        """상대방 도착 후 보류된 거래 재시도"""
        parked = self._pending.pop(person_id, None)
        if not parked:
            return

        for transaction in parked.values():
            try:
                if await self.store.get_transaction(transaction.id) is not None:
                    continue
                await self.store.insert_transaction(transaction)
                self._applied += 1
            except LedgerError as e:
                self._errors += 1
                logger.error(
                    "보류된 거래 반영 실패",
                    extra={"transaction_id": transaction.id, "error": str(e)},
                )

        logger.info(
            "보류된 거래 반영",
            extra={"person_id": person_id, "count": len(parked)},
        )

    def _discard_pending(self, transaction_id: str) -> None:
        for person_id in list(self._pending):
            parked = self._pending[person_id]
            parked.pop(transaction_id, None)
            if not parked:
                del self._pending[person_id]

    # -------------------------------------------------------------------------
    # 컬렉션별 저장소 연산
    # -------------------------------------------------------------------------

    async def _exists(self, collection: str, doc_id: str) -> bool:
        record: Person | Transaction | Card | None
        if collection == RemoteCollections.PEOPLE:
            record = await self.store.get_person(doc_id)
        elif collection == RemoteCollections.TRANSACTIONS:
            record = await self.store.get_transaction(doc_id)
        elif collection == RemoteCollections.CARDS:
            record = await self.store.get_card(doc_id)
        else:
            raise ValueError(f"Unknown collection: {collection}")
        return record is not None

    async def _insert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        if collection == RemoteCollections.PEOPLE:
            await self.store.insert_person(person_from_fields(doc_id, fields))
        elif collection == RemoteCollections.TRANSACTIONS:
            await self.store.insert_transaction(transaction_from_fields(doc_id, fields))
        elif collection == RemoteCollections.CARDS:
            await self.store.insert_card(card_from_fields(doc_id, fields))
        else:
            raise ValueError(f"Unknown collection: {collection}")

    async def _overwrite(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        if collection == RemoteCollections.PEOPLE:
            person = person_from_fields(doc_id, fields)
            await self.store.update_person(
                doc_id,
                name=person.name,
                phone=person.phone or "",
                notes=person.notes or "",
            )
        elif collection == RemoteCollections.CARDS:
            card = card_from_fields(doc_id, fields)
            await self.store.update_card(
                doc_id,
                card_name=card.card_name,
                card_number=card.card_number,
                card_type=card.card_type,
                name_on_card=card.name_on_card,
                expiry=card.expiry,
                cvv=card.cvv,
                color=card.color,
            )
        else:
            raise ValueError(f"Cannot overwrite collection: {collection}")

    async def _remove(self, collection: str, doc_id: str) -> None:
        if not await self._exists(collection, doc_id):
            self._ignored += 1
            return

        if collection == RemoteCollections.PEOPLE:
            self._pending.pop(doc_id, None)
            await self.store.delete_person(doc_id)
        elif collection == RemoteCollections.TRANSACTIONS:
            await self.store.delete_transaction(doc_id)
        else:
            await self.store.delete_card(doc_id)
        self._applied += 1

    # -------------------------------------------------------------------------
    # 상태
    # -------------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        """보류 중인 거래 수"""
        return sum(len(parked) for parked in self._pending.values())

    def clear_pending(self) -> None:
        """세션 종료 시 보류 목록 비우기"""
        self._pending.clear()

    def get_stats(self) -> dict[str, int]:
        return {
            "downloaded": self._downloaded,
            "applied": self._applied,
            "ignored": self._ignored,
            "merge_errors": self._errors,
            "pending": self.pending_count,
        }
