"""
pytest 공통 fixture 정의

임시 디렉토리, 설정 파일, 스키마가 초기화된 Ledger DB.
"""

import logging
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Iterator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.mock.mirror import MockRemoteMirror
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성 (원격 미러 활성화)"""
    settings_content = """# 테스트용 settings.yaml
log_level: debug

database:
  path: data/test_ledger.db

remote:
  enabled: true
  base_url: "https://mirror.test/v1/"
  ws_url: "wss://mirror.test/v1"
  api_key: "test_api_key_abcde"
  timeout: 5
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest.fixture
def temp_settings_file_local(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성 (로컬 전용)"""
    settings_content = """database:
  path: ledger.db

remote:
  enabled: false
"""
    settings_path = temp_dir / "settings_local.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest_asyncio.fixture
async def ledger_db(tmp_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """스키마가 초기화된 임시 Ledger DB"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db")
    await adapter.connect()
    await init_ledger_schema(adapter)

    yield adapter

    await adapter.close()


@pytest_asyncio.fixture
async def store(ledger_db: SQLiteAdapter) -> LedgerStore:
    """테스트용 LedgerStore"""
    return LedgerStore(ledger_db)


@pytest.fixture
def mock_mirror() -> MockRemoteMirror:
    """메모리 내 원격 미러"""
    return MockRemoteMirror()


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """테스트 후 루트 로거 핸들러/레벨 복원"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
