"""
도메인 예외 정의

로컬 저장소 예외는 항상 호출자에게 전파.
원격 예외 중 환경성(미구성/연결 불가) 예외는 동기화 경계에서 흡수.
"""


class LedgerError(Exception):
    """Ledger 예외 베이스"""

    pass


class ValidationError(LedgerError):
    """입력값 검증 실패

    빈 이름, 0 이하 금액 등 필드 제약 위반. 재시도하지 않음.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid {field}: {message}")


class NotFoundError(LedgerError):
    """참조한 레코드가 존재하지 않음"""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class StorageError(LedgerError):
    """로컬 저장소 사용 불가 또는 손상"""

    pass


class RemoteError(LedgerError):
    """원격 미러 에러 (권한, 잘못된 쓰기, 할당량 등)

    로컬 쓰기가 이미 성공한 뒤에도 호출자에게 전파됨.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Remote mirror error [{status}]: {message}")


class RemoteUnavailableError(RemoteError):
    """원격 미러 미구성/연결 불가 (환경성 에러)

    동기화 경계에서 로그만 남기고 흡수.
    """

    pass
