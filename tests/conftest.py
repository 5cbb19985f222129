"""全局 pytest 配置 -- 临时数据目录、固定时钟与固定项目名 fixture"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from tdl.core.store import StoreGroup, create_store_group

# 测试统一使用固定时区，翻日判断与系统时区无关
TZ = timezone(timedelta(hours=8))


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeResolver:
    """返回固定项目名；name=None 表示不在项目中，error 非空时抛异常"""

    def __init__(self, name: str | None = "tdl") -> None:
        self.name = name
        self.error: Exception | None = None
        self.calls = 0

    def __call__(self) -> str | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.name


@pytest.fixture
def clock() -> FakeClock:
    """2026-03-05 10:00（UTC+8）"""
    return FakeClock(datetime(2026, 3, 5, 10, 0, tzinfo=TZ))


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver("tdl")


@pytest.fixture
def todo_path(tmp_path: Path) -> Path:
    return tmp_path / "todos.json"


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "todos-history.json"


@pytest.fixture
def stores(todo_path: Path, history_path: Path, clock, resolver) -> StoreGroup:
    """绑定临时文件、固定时钟与固定项目名的 StoreGroup"""
    return create_store_group(todo_path, history_path, resolver=resolver, clock=clock)


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """通过 TDL_DATA_DIR 指向临时目录（CLI / MCP 工具测试使用）"""
    directory = tmp_path / ".tdl"
    monkeypatch.setenv("TDL_DATA_DIR", str(directory))
    for name in ("TDL_TODO_FILE", "TDL_HISTORY_FILE", "TDL_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)
    return directory
