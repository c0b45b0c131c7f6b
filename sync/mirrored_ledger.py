"""
미러링 Ledger 서비스

레코드 단위 변경 프로토콜:
1. 입력 검증 (ValidationError)
2. 로컬 저장소 쓰기 (실패 시 예외 전파, 원격 쓰기 없음)
3. 사용자 ID가 바인딩되어 있으면 원격 문서 쓰기
   - RemoteUnavailableError: 로그 후 흡수 (성공으로 보고)
   - RemoteError: 로컬 쓰기 성공 후에도 호출자에게 전파
"""

import logging
from datetime import datetime
from decimal import Decimal

from core.constants import RemoteCollections
from core.errors import NotFoundError
from core.ledger.balance import compute_ledger_balances
from core.ledger.models import GlobalBalance, PersonBalance
from core.ledger.store import LedgerStore
from core.ledger.validation import (
    validate_amount,
    validate_card_type,
    validate_direction,
    validate_name,
)
from core.types import CardType, TransactionDirection
from sync.coordinator import SyncCoordinator
from sync.serializer import card_to_fields, person_to_fields, transaction_to_fields

logger = logging.getLogger(__name__)


class MirroredLedger:
    """로컬 우선 쓰기 + 원격 미러링

    Args:
        store: Ledger 저장소
        coordinator: 동기화 코디네이터
    """

    def __init__(self, store: LedgerStore, coordinator: SyncCoordinator):
        self.store = store
        self.coordinator = coordinator

    # -------------------------------------------------------------------------
    # Person
    # -------------------------------------------------------------------------

    async def add_person(
        self,
        name: str,
        phone: str | None = None,
        notes: str | None = None,
    ) -> str:
        """상대방 추가

        Returns:
            생성된 person_id
        """
        person_id = await self.store.create_person(validate_name(name), phone, notes)
        await self._mirror_person(person_id)
        return person_id

    async def update_person(
        self,
        person_id: str,
        name: str | None = None,
        phone: str | None = None,
        notes: str | None = None,
    ) -> None:
        """상대방 수정 (None 필드는 유지)

        Raises:
            NotFoundError: 상대방이 없는 경우
        """
        if name is not None:
            name = validate_name(name)
        if await self.store.get_person(person_id) is None:
            raise NotFoundError("Person", person_id)

        await self.store.update_person(person_id, name=name, phone=phone, notes=notes)
        await self._mirror_person(person_id)

    async def delete_person(self, person_id: str) -> None:
        """상대방 삭제 (로컬은 거래/이력 연쇄 삭제)

        원격에서는 상대방 문서와 해당 거래 문서를 함께 삭제.
        """
        transactions = await self.store.get_transactions_by_person(person_id)
        await self.store.delete_person(person_id)
        logger.info(
            "Person deleted",
            extra={"person_id": person_id, "transactions": len(transactions)},
        )

        await self.coordinator.mirror_delete(RemoteCollections.PEOPLE, person_id)
        for transaction in transactions:
            await self.coordinator.mirror_delete(RemoteCollections.TRANSACTIONS, transaction.id)

    async def _mirror_person(self, person_id: str) -> None:
        person = await self.store.get_person(person_id)
        if person is not None:
            await self.coordinator.mirror_set(
                RemoteCollections.PEOPLE, person.id, person_to_fields(person)
            )

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        person_id: str,
        amount: Decimal | int | str,
        direction: TransactionDirection | str,
        date: datetime,
        note: str | None = None,
    ) -> str:
        """거래 추가

        Raises:
            ValidationError: 금액/방향 검증 실패
            NotFoundError: 상대방이 없는 경우
        """
        transaction_id = await self.store.create_transaction(
            person_id,
            validate_amount(amount),
            validate_direction(direction),
            date,
            note,
        )
        await self._mirror_transaction(transaction_id)
        return transaction_id

    async def update_transaction(
        self,
        transaction_id: str,
        amount: Decimal | int | str,
        direction: TransactionDirection | str,
        date: datetime,
        note: str | None = None,
    ) -> None:
        """거래 수정 (이력 스냅샷 후 덮어쓰기, 원격은 전체 문서 upsert)

        Raises:
            ValidationError: 금액/방향 검증 실패
            NotFoundError: 거래가 없는 경우
        """
        await self.store.update_transaction(
            transaction_id,
            validate_amount(amount),
            validate_direction(direction),
            date,
            note,
        )
        await self._mirror_transaction(transaction_id)

    async def delete_transaction(self, transaction_id: str) -> None:
        await self.store.delete_transaction(transaction_id)
        await self.coordinator.mirror_delete(RemoteCollections.TRANSACTIONS, transaction_id)

    async def _mirror_transaction(self, transaction_id: str) -> None:
        transaction = await self.store.get_transaction(transaction_id)
        if transaction is not None:
            await self.coordinator.mirror_set(
                RemoteCollections.TRANSACTIONS,
                transaction.id,
                transaction_to_fields(transaction),
            )

    # -------------------------------------------------------------------------
    # Card
    # -------------------------------------------------------------------------

    async def add_card(
        self,
        card_name: str,
        card_number: str,
        card_type: CardType | str,
        name_on_card: str,
        expiry: str,
        cvv: str,
        color: str,
    ) -> str:
        """카드 추가

        Returns:
            생성된 card_id
        """
        card_id = await self.store.create_card(
            validate_name(card_name, field="card_name"),
            validate_name(card_number, field="card_number"),
            validate_card_type(card_type),
            name_on_card,
            expiry,
            cvv,
            color,
        )
        await self._mirror_card(card_id)
        return card_id

    async def update_card(
        self,
        card_id: str,
        card_name: str,
        card_number: str,
        card_type: CardType | str,
        name_on_card: str,
        expiry: str,
        cvv: str,
        color: str,
    ) -> None:
        """카드 전체 필드 덮어쓰기

        Raises:
            NotFoundError: 카드가 없는 경우
        """
        card_name = validate_name(card_name, field="card_name")
        card_number = validate_name(card_number, field="card_number")
        card_type = validate_card_type(card_type)
        if await self.store.get_card(card_id) is None:
            raise NotFoundError("Card", card_id)

        await self.store.update_card(
            card_id, card_name, card_number, card_type, name_on_card, expiry, cvv, color
        )
        await self._mirror_card(card_id)

    async def delete_card(self, card_id: str) -> None:
        await self.store.delete_card(card_id)
        await self.coordinator.mirror_delete(RemoteCollections.CARDS, card_id)

    async def _mirror_card(self, card_id: str) -> None:
        card = await self.store.get_card(card_id)
        if card is not None:
            await self.coordinator.mirror_set(
                RemoteCollections.CARDS, card.id, card_to_fields(card)
            )

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def list_person_balances(self) -> list[PersonBalance]:
        """상대방별 잔액 (절댓값 큰 순)"""
        balances, _ = await compute_ledger_balances(self.store)
        return balances

    async def get_global_balance(self) -> GlobalBalance:
        _, global_balance = await compute_ledger_balances(self.store)
        return global_balance
