"""
설정 로더

settings.yaml 로드 및 DB/원격 미러 설정 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths

VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseConfig:
    """로컬 DB 설정"""

    path: Path = Paths.LEDGER_DB


@dataclass(frozen=True)
class RemoteConfig:
    """원격 미러 연결 설정

    enabled=False이면 로컬 전용으로 동작.
    """

    enabled: bool = False
    base_url: str = ""
    ws_url: str = ""
    api_key: str = ""
    timeout: float = Defaults.REMOTE_TIMEOUT_SEC


@dataclass(frozen=True)
class Settings:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    log_level: str = Defaults.LOG_LEVEL


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _parse_database(data: dict[str, Any], base_dir: Path) -> DatabaseConfig:
    """database 섹션 파싱 (상대 경로는 설정 파일 기준)"""
    raw_path = data.get("path")
    if not raw_path:
        return DatabaseConfig()

    path = Path(raw_path)
    if not path.is_absolute():
        path = base_dir / path
    return DatabaseConfig(path=path)


def _parse_remote(data: dict[str, Any]) -> RemoteConfig:
    """remote 섹션 파싱"""
    enabled = bool(data.get("enabled", False))
    if not enabled:
        return RemoteConfig(enabled=False)

    base_url = data.get("base_url")
    ws_url = data.get("ws_url")
    api_key = data.get("api_key")

    if not base_url:
        raise SettingsLoadError("settings.yaml의 remote 섹션에 'base_url'이 없습니다")
    if not ws_url:
        raise SettingsLoadError("settings.yaml의 remote 섹션에 'ws_url'이 없습니다")
    if not api_key:
        raise SettingsLoadError("settings.yaml의 remote 섹션에 'api_key'가 없습니다")

    try:
        timeout = float(data.get("timeout", Defaults.REMOTE_TIMEOUT_SEC))
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(
            f"remote.timeout 값이 올바르지 않습니다: {data.get('timeout')!r}"
        ) from e

    return RemoteConfig(
        enabled=True,
        base_url=str(base_url).rstrip("/"),
        ws_url=str(ws_url).rstrip("/"),
        api_key=str(api_key),
        timeout=timeout,
    )


def load_settings(path: Path | None = None) -> Settings:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")

    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    database = _parse_database(data.get("database") or {}, path.parent)
    remote = _parse_remote(data.get("remote") or {})
    log_level = str(data.get("log_level", Defaults.LOG_LEVEL)).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise SettingsLoadError(
            f"log_level 값이 잘못되었습니다: {log_level} (허용: {', '.join(VALID_LOG_LEVELS)})"
        )

    return Settings(
        database=database,
        remote=remote,
        log_level=log_level,
    )
