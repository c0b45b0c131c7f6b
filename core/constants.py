"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    LOG_LEVEL: str = "INFO"

    # 원격 미러 요청 타임아웃 (초)
    REMOTE_TIMEOUT_SEC: float = 10.0

    # 변경 스트림 재연결 대기 (초)
    RECONNECT_MIN_DELAY_SEC: float = 1.0
    RECONNECT_MAX_DELAY_SEC: float = 30.0


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "ledger.db"


class RemoteCollections:
    """원격 미러 컬렉션 이름

    사용자별 네임스페이스(users/{user_id}) 아래의 평면 컬렉션.
    """

    CARDS: str = "cards"
    PEOPLE: str = "people"
    TRANSACTIONS: str = "transactions"

    # 다운로드/푸시 순서 (사람 → 거래 순서로 외래 키 보장)
    DOWNLOAD_ORDER: tuple[str, ...] = (PEOPLE, TRANSACTIONS, CARDS)
    PUSH_ORDER: tuple[str, ...] = (CARDS, PEOPLE, TRANSACTIONS)
