"""
日志查询网关测试基础配置

提供内存级假日志后端、独立的最慢调用跟踪器以及通过依赖覆盖接入它们的异步 HTTP 测试客户端。
所有测试不依赖真实的 RethinkDB / CrateDB。
"""
import os
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# 必须在导入 app 之前设置环境变量，避免启动后台订阅
os.environ["WORST_CALLS_ENABLED"] = "false"

from logquery.core.log_backend import LogBackend
from logquery.routers.logs import get_cratedb_backend, get_rethinkdb_backend
from logquery.services.log_reshaper import GroupedCount
from logquery.services.worst_calls import WorstCallsTracker, get_worst_calls_tracker


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ── 内存级假后端 ──────────────────────────────────────────────────────
class FakeLogBackend(LogBackend):
    """按真实后端语义在内存中执行四种查询，并记录调用次数。"""

    def __init__(self, entries=None, max_rows=None, healthy=True):
        super().__init__(max_rows)
        self.entries = list(entries or [])
        self.healthy = healthy
        self.calls: list[str] = []

    def _in_window(self, window):
        if window is None:
            return list(self.entries)
        return [e for e in self.entries if window.min_time <= e["time"] < window.max_time]

    async def raw_query(self, window, limit=None):
        self.calls.append("raw_query")
        return self._in_window(window)[: self._cap(limit)]

    async def filtered_query(self, window, level_code, limit=None):
        self.calls.append("filtered_query")
        matched = [e for e in self._in_window(window) if e["level"] == level_code]
        return matched[: self._cap(limit)]

    async def grouped_count_by_day_and_level(self, window):
        self.calls.append("grouped_count_by_day_and_level")
        counts: dict[tuple, int] = {}
        for e in self._in_window(window):
            key = (e["time"].day, e["time"].month, e["time"].year, e["level"])
            counts[key] = counts.get(key, 0) + 1
        return [GroupedCount(*key, count) for key, count in counts.items()]

    async def count_in_range(self, window, lower, upper):
        self.calls.append("count_in_range")
        total = 0
        for e in self._in_window(window):
            ms = float(e["ms"])
            if ms >= lower and (upper is None or ms < upper):
                total += 1
        return total

    async def health_check(self):
        return self.healthy


@pytest.fixture
def sample_entries():
    """跨两天的日志样本，ms 同时包含数值和字符串表示。"""
    return [
        {"id": "a", "time": utc(2020, 1, 1, 0, 0), "level": 30, "ms": 5, "msg": "boot"},
        {"id": "b", "time": utc(2020, 1, 1, 6, 0), "level": 50, "ms": "15", "msg": "db"},
        {"id": "c", "time": utc(2020, 1, 1, 12, 0), "level": 30, "ms": 95.5, "msg": "cache"},
        {"id": "d", "time": utc(2020, 1, 1, 23, 59), "level": 40, "ms": 150, "msg": "slow"},
        {"id": "e", "time": utc(2020, 1, 2, 0, 0), "level": 60, "ms": 1000, "msg": "crash"},
        {"id": "f", "time": utc(2020, 1, 2, 8, 0), "level": 30, "ms": 42, "msg": "next day"},
    ]


@pytest.fixture
def rethink_backend(sample_entries):
    return FakeLogBackend(sample_entries)


@pytest.fixture
def crate_backend(sample_entries):
    return FakeLogBackend(sample_entries)


@pytest.fixture
def tracker():
    return WorstCallsTracker(capacity=50)


@pytest_asyncio.fixture
async def client(rethink_backend, crate_backend, tracker) -> AsyncGenerator[AsyncClient, None]:
    """提供配置好依赖覆盖的异步 HTTP 测试客户端。"""
    from logquery.main import app

    app.dependency_overrides[get_rethinkdb_backend] = lambda: rethink_backend
    app.dependency_overrides[get_cratedb_backend] = lambda: crate_backend
    app.dependency_overrides[get_worst_calls_tracker] = lambda: tracker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
