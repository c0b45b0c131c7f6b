"""
채무 장부 (Ledger) 시스템

누가 누구에게 얼마를 빚졌는지 추적하는 로컬 장부와 잔액 계산 엔진.

사용 예시:
```python
from core.ledger import LedgerStore, init_ledger_schema, compute_ledger_balances

# 초기화
await init_ledger_schema(db)
store = LedgerStore(db)

# 상대방과 거래 생성
person_id = await store.create_person("Alex")
await store.create_transaction(person_id, Decimal("500"), TransactionDirection.LENT, now_utc())

# 잔액 조회
balances, global_balance = await compute_ledger_balances(store)
```
"""

from core.ledger.balance import (
    calculate_global_balance,
    calculate_person_balance,
    compute_ledger_balances,
    sort_by_magnitude,
)
from core.ledger.models import (
    Card,
    GlobalBalance,
    Person,
    PersonBalance,
    Transaction,
    TransactionHistory,
)
from core.ledger.schema import LEDGER_TABLES, init_ledger_schema
from core.ledger.store import LedgerStore

__all__ = [
    # 핵심 클래스
    "LedgerStore",
    "init_ledger_schema",
    # 모델
    "Person",
    "Transaction",
    "TransactionHistory",
    "Card",
    "PersonBalance",
    "GlobalBalance",
    # 잔액 계산
    "calculate_person_balance",
    "calculate_global_balance",
    "sort_by_magnitude",
    "compute_ledger_balances",
    # 상수
    "LEDGER_TABLES",
]
