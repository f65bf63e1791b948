"""
最慢调用监听后台任务 (Worst-Latency Listener Task)

在 main.py lifespan 中被调用：先执行一次 ms 降序前 N 条的初始扫描，
再订阅同一视图的 RethinkDB 变更流并逐条更新内存集合。

变更流关闭或出错时只记录日志，跟踪器继续提供最后一次已知的集合，不自动重连。
"""
import asyncio
import logging

from logquery.core.log_backend import RethinkDBLogBackend
from logquery.services.worst_calls import WorstCallsTracker

logger = logging.getLogger(__name__)


async def worst_calls_listener_loop(backend: RethinkDBLogBackend, tracker: WorstCallsTracker):
    """后台任务入口：初始化最慢调用集合并持续应用变更事件。"""
    logger.info("Worst-latency listener task started")

    try:
        tracker.bootstrap(await backend.top_by_latency(tracker.capacity))
    except Exception:
        logger.exception("Worst-latency bootstrap failed, serving empty set")
        tracker.mark_stale()
        return

    try:
        async for old_entry, new_entry in backend.watch_top_by_latency(tracker.capacity):
            tracker.apply_change(old_entry, new_entry)
        logger.warning("Worst-latency change feed closed, serving last known set")
    except asyncio.CancelledError:
        logger.info("Worst-latency listener shutting down")
        raise
    except Exception:
        logger.exception("Worst-latency change feed failed, serving last known set")
    tracker.mark_stale()
