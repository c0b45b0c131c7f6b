"""
설정 패키지

settings.yaml 로드
"""

from core.config.loader import (
    DatabaseConfig,
    RemoteConfig,
    Settings,
    SettingsLoadError,
    load_settings,
)

__all__ = [
    "DatabaseConfig",
    "RemoteConfig",
    "Settings",
    "SettingsLoadError",
    "load_settings",
]
