"""
원격 문서 직렬화

로컬 레코드 ↔ 원격 문서 필드 변환.
필드 이름은 로컬 컬럼과 동일 (Decimal은 문자열, datetime은 ISO 문자열).

원격 문서는 스키마가 없으므로 파싱 시 관대하게 처리:
- 시간: ISO 문자열 또는 epoch ms
- 금액: 문자열 또는 숫자
- phone/notes/note: 누락 또는 빈 문자열 → None
- 카드 필드: cardName 등 camelCase 키도 허용
"""

from datetime import datetime
from typing import Any

from core.ledger.models import Card, Person, Transaction
from core.ledger.validation import (
    validate_amount,
    validate_card_type,
    validate_direction,
    validate_name,
)
from core.utils.timezone import now_utc, parse_timestamp, to_iso


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _timestamp(fields: dict[str, Any], key: str) -> datetime:
    """시간 필드 파싱 (누락 시 현재 시간)"""
    raw = fields.get(key)
    if raw is None or raw == "":
        return now_utc()
    return parse_timestamp(raw)


def _pick(fields: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in fields and fields[key] is not None:
            return fields[key]
    return None


# =============================================================================
# 로컬 → 원격
# =============================================================================


def person_to_fields(person: Person) -> dict[str, Any]:
    return {
        "name": person.name,
        "phone": person.phone or "",
        "notes": person.notes or "",
        "created_at": to_iso(person.created_at),
    }


def transaction_to_fields(transaction: Transaction) -> dict[str, Any]:
    return {
        "person_id": transaction.person_id,
        "amount": str(transaction.amount),
        "direction": transaction.direction.value,
        "date": to_iso(transaction.date),
        "note": transaction.note or "",
        "created_at": to_iso(transaction.created_at),
    }


def card_to_fields(card: Card) -> dict[str, Any]:
    return {
        "card_name": card.card_name,
        "card_number": card.card_number,
        "card_type": card.card_type.value,
        "name_on_card": card.name_on_card,
        "expiry": card.expiry,
        "cvv": card.cvv,
        "color": card.color,
        "created_at": to_iso(card.created_at),
    }


# =============================================================================
# 원격 → 로컬
# =============================================================================


def person_from_fields(doc_id: str, fields: dict[str, Any]) -> Person:
    """원격 필드 → Person

    Raises:
        ValidationError: 이름이 비어 있는 경우
        ValueError: 시간 형식이 잘못된 경우
    """
    return Person(
        id=doc_id,
        name=validate_name(str(fields.get("name") or "")),
        phone=_optional_text(fields.get("phone")),
        notes=_optional_text(fields.get("notes")),
        created_at=_timestamp(fields, "created_at"),
    )


def transaction_from_fields(doc_id: str, fields: dict[str, Any]) -> Transaction:
    """원격 필드 → Transaction

    Raises:
        ValidationError: 금액/방향/person_id가 잘못된 경우
        ValueError: 시간 형식이 잘못된 경우
    """
    person_id = _pick(fields, "person_id", "personId")
    return Transaction(
        id=doc_id,
        person_id=validate_name(str(person_id or ""), field="person_id"),
        amount=validate_amount(fields.get("amount")),
        direction=validate_direction(fields.get("direction")),
        date=_timestamp(fields, "date"),
        note=_optional_text(fields.get("note")),
        created_at=_timestamp(fields, "created_at"),
    )


def card_from_fields(doc_id: str, fields: dict[str, Any]) -> Card:
    """원격 필드 → Card

    Raises:
        ValidationError: 카드 종류가 잘못된 경우
        ValueError: 시간 형식이 잘못된 경우
    """
    return Card(
        id=doc_id,
        card_name=str(_pick(fields, "card_name", "cardName") or ""),
        card_number=str(_pick(fields, "card_number", "cardNumber") or ""),
        card_type=validate_card_type(_pick(fields, "card_type", "cardType")),
        name_on_card=str(_pick(fields, "name_on_card", "nameOnCard") or ""),
        expiry=str(fields.get("expiry") or ""),
        cvv=str(fields.get("cvv") or ""),
        color=str(fields.get("color") or ""),
        created_at=_timestamp(fields, "created_at"),
    )
