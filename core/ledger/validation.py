"""
입력값 검증

호출자 계층(MirroredLedger)과 저장소에서 공통으로 사용.
"""

from decimal import Decimal, InvalidOperation

from core.errors import ValidationError
from core.types import CardType, TransactionDirection


def validate_name(name: str | None, field: str = "name") -> str:
    """필수 문자열 필드 검증 (앞뒤 공백 제거 후 비어 있으면 실패)"""
    if name is None or not name.strip():
        raise ValidationError(field, "must not be empty")
    return name.strip()


def validate_amount(amount: Decimal | int | str) -> Decimal:
    """금액 검증 → Decimal

    float는 이진 오차를 피하기 위해 문자열 경유로 변환.

    Raises:
        ValidationError: 숫자가 아니거나 0 이하
    """
    if isinstance(amount, bool):
        raise ValidationError("amount", f"not a number: {amount!r}")

    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError("amount", f"not a number: {amount!r}") from e

    if not value.is_finite():
        raise ValidationError("amount", f"must be finite: {amount!r}")
    if value <= 0:
        raise ValidationError("amount", f"must be positive: {amount!r}")
    return value


def validate_direction(direction: TransactionDirection | str) -> TransactionDirection:
    """거래 방향 검증"""
    try:
        return TransactionDirection(direction)
    except ValueError as e:
        valid = [d.value for d in TransactionDirection]
        raise ValidationError("direction", f"{direction!r} not in {valid}") from e


def validate_card_type(card_type: CardType | str) -> CardType:
    """카드 브랜드 검증"""
    try:
        return CardType(card_type)
    except ValueError as e:
        valid = [c.value for c in CardType]
        raise ValidationError("card_type", f"{card_type!r} not in {valid}") from e
