"""全局 pytest 配置 -- 临时 SQLite 路径 + 可控时钟 fixture"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio


class StepClock:
    """每次调用前进固定步长的时钟，保证写入时间严格递增"""

    def __init__(self, start: datetime, step: timedelta) -> None:
        self.start = start
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime:
        now = self.start + self.step * self.calls
        self.calls += 1
        return now


@pytest.fixture
def step_clock() -> StepClock:
    """从 2026-01-01T00:00:00Z 开始、每次前进 1 秒的时钟"""
    return StepClock(datetime(2026, 1, 1, tzinfo=UTC), timedelta(seconds=1))


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"
