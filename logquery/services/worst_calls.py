"""
最慢调用跟踪器 (Worst-Latency Tracker)

在内存中维护一个容量有限的集合，保存最近观察到的 ms 最高的日志条目，按 ms 降序排列。
启动时由一次后端扫描初始化，之后由后台任务根据变更流增量更新；请求直接读取内存快照，
不访问后端。集合不持久化，进程重启后丢失。

Holds a bounded, descending-by-ms set of the highest-latency entries observed.
Initialized once from a backend scan, then updated incrementally by a
background task from a change feed. Reads are served from memory without
touching the backend. Never persisted.

状态机 (State machine):
    BOOTSTRAPPING → LIVE → STALE
    STALE 表示变更流已断开，继续提供最后一次已知的集合。
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from logquery.core.config import settings

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    """跟踪器状态"""
    BOOTSTRAPPING = "bootstrapping"
    LIVE = "live"
    STALE = "stale"


def _latency(entry: Dict[str, Any]) -> float:
    try:
        return float(entry.get("ms") or 0)
    except (TypeError, ValueError):
        return 0.0


class WorstCallsTracker:
    """
    最慢调用集合 (Worst-Latency Set)

    只由后台任务写入（bootstrap / apply_change），请求处理只调用 snapshot()。
    在单线程事件循环中每次更新都是一次完整的同步操作，不需要加锁。
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity if capacity is not None else settings.worst_calls_size
        self._entries: List[Dict[str, Any]] = []
        self.state = TrackerState.BOOTSTRAPPING

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> List[Dict[str, Any]]:
        """返回当前集合的副本，立即返回，不阻塞。"""
        return list(self._entries)

    def bootstrap(self, entries: Iterable[Dict[str, Any]]) -> None:
        """用初始扫描结果替换当前集合并进入 LIVE 状态。"""
        self._entries = list(entries)
        self._normalize()
        self.state = TrackerState.LIVE
        logger.info(f"Worst-latency tracker bootstrapped with {len(self._entries)} entries")

    def apply_change(
        self,
        old_entry: Optional[Dict[str, Any]],
        new_entry: Optional[Dict[str, Any]],
    ) -> None:
        """
        应用一条变更事件 (Apply one change event)

        old_entry 存在时先移除 id 相同的条目，再加入 new_entry；
        随后按 ms 降序重排并裁剪到容量上限。
        """
        if old_entry is not None:
            old_id = old_entry.get("id")
            self._entries = [entry for entry in self._entries if entry.get("id") != old_id]
        if new_entry is not None:
            new_id = new_entry.get("id")
            # 同一条目在流中被更新时不重复保存
            self._entries = [entry for entry in self._entries if entry.get("id") != new_id]
            self._entries.append(new_entry)
        self._normalize()

    def mark_stale(self) -> None:
        self.state = TrackerState.STALE

    def _normalize(self) -> None:
        self._entries.sort(key=_latency, reverse=True)
        del self._entries[self.capacity:]


# 进程级共享实例
worst_calls_tracker = WorstCallsTracker()


def get_worst_calls_tracker() -> WorstCallsTracker:
    """FastAPI 依赖项：获取进程级最慢调用跟踪器。"""
    return worst_calls_tracker
