"""
잔액 계산 엔진

순잔액 = Σ(LENT) − Σ(BORROWED)

해석:
- 순잔액 > 0 → 내가 더 빌려줌 → 상대가 나에게 갚아야 함 (green)
- 순잔액 < 0 → 내가 더 빌림 → 내가 상대에게 갚아야 함 (red)
- 순잔액 = 0 → 정산 완료

Decimal로 계산하므로 정산 여부는 0과의 정확한 비교로 판단.
캐시 없음: 언제든 저장소의 현재 거래 집합에서 다시 계산.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from core.ledger.models import GlobalBalance, Person, PersonBalance, Transaction
from core.types import BalanceColor

if TYPE_CHECKING:
    from core.ledger.store import LedgerStore


ZERO = Decimal("0")


def calculate_person_balance(
    person: Person,
    transactions: Iterable[Transaction],
) -> PersonBalance:
    """상대방별 순잔액 계산

    Args:
        person: 상대방
        transactions: 해당 상대방의 거래 목록

    Returns:
        PersonBalance (owes_me / i_owe / settled 중 정확히 하나가 True)
    """
    net_balance = ZERO

    for transaction in transactions:
        net_balance += transaction.signed_amount

    return PersonBalance(
        person=person,
        net_balance=net_balance,
        owes_me=net_balance > 0,
        i_owe=net_balance < 0,
        settled=net_balance == 0,
        display_amount=abs(net_balance),
    )


def calculate_global_balance(balances: Iterable[PersonBalance]) -> GlobalBalance:
    """전체 순잔액 계산

    global_net = Σ net_balance
    total_lent = Σ net_balance (양수만)
    total_borrowed = Σ |net_balance| (음수만)
    """
    global_net = ZERO
    total_lent = ZERO
    total_borrowed = ZERO

    for balance in balances:
        global_net += balance.net_balance
        if balance.net_balance > 0:
            total_lent += balance.net_balance
        elif balance.net_balance < 0:
            total_borrowed += abs(balance.net_balance)

    if global_net < 0:
        message = f"You are in debt. Pay {abs(global_net):.2f} to be debt-free"
        color = BalanceColor.RED
    elif global_net == 0:
        message = "You are free of debt"
        color = BalanceColor.GREEN
    else:
        message = f"You will receive {global_net:.2f}"
        color = BalanceColor.GREEN

    return GlobalBalance(
        global_net=global_net,
        total_lent=total_lent,
        total_borrowed=total_borrowed,
        message=message,
        color=color.value,
    )


def sort_by_magnitude(balances: Iterable[PersonBalance]) -> list[PersonBalance]:
    """표시용 정렬: |순잔액| 큰 순 (저장 순서와 무관)"""
    return sorted(balances, key=lambda b: abs(b.net_balance), reverse=True)


async def compute_ledger_balances(
    store: LedgerStore,
) -> tuple[list[PersonBalance], GlobalBalance]:
    """저장소에서 전체 잔액을 새로 계산

    Returns:
        (|순잔액| 큰 순으로 정렬된 상대방별 잔액, 전체 잔액)
    """
    balances: list[PersonBalance] = []

    for person in await store.get_all_persons():
        transactions = await store.get_transactions_by_person(person.id)
        balances.append(calculate_person_balance(person, transactions))

    return sort_by_magnitude(balances), calculate_global_balance(balances)
