"""日志查询路由模块。

按时间窗口查询 RethinkDB / CrateDB 日志，提供原始条目、按级别过滤、按天级别统计、
延迟分桶统计，以及由内存跟踪器提供的最慢调用列表。
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from logquery.core.log_backend import LogBackend, LogBackendFactory, LogBackendType
from logquery.schemas.log_entry import LevelCount
from logquery.services.log_reshaper import latency_stats, level_stats
from logquery.services.severity import severity_code
from logquery.services.time_window import parse_time_window
from logquery.services.worst_calls import WorstCallsTracker, get_worst_calls_tracker

router = APIRouter(prefix="/logs", tags=["logs"])


def get_rethinkdb_backend() -> LogBackend:
    """FastAPI 依赖项：RethinkDB 后端。"""
    return LogBackendFactory.get_backend(LogBackendType.RETHINKDB)


def get_cratedb_backend() -> LogBackend:
    """FastAPI 依赖项：CrateDB 后端。"""
    return LogBackendFactory.get_backend(LogBackendType.CRATEDB)


# ── 视图实现，两个后端共用 ────────────────────────────────────────────
async def _entries_view(backend: LogBackend, min_time: Optional[str], max_time: Optional[str]):
    window = parse_time_window(min_time, max_time)
    return await backend.raw_query(window)


async def _level_view(
    backend: LogBackend,
    min_time: Optional[str],
    max_time: Optional[str],
    logtype: Optional[str],
):
    # 先校验级别：未知级别无论日期如何都返回 400
    level_code = severity_code(logtype)
    window = parse_time_window(min_time, max_time, required=False)
    return await backend.filtered_query(window, level_code)


async def _level_stats_view(backend: LogBackend, min_time: Optional[str], max_time: Optional[str]):
    window = parse_time_window(min_time, max_time, required=False)
    return level_stats(await backend.grouped_count_by_day_and_level(window))


async def _time_stats_view(backend: LogBackend, min_time: Optional[str], max_time: Optional[str]):
    window = parse_time_window(min_time, max_time)
    return await latency_stats(backend, window)


# ── RethinkDB ────────────────────────────────────────────────────────
@router.get("/rethinkdb")
async def rethinkdb_logs(
    min_time: Optional[str] = Query(None, alias="min", description="ISO 8601 lower bound (inclusive)"),
    max_time: Optional[str] = Query(None, alias="max", description="ISO 8601 upper bound (exclusive)"),
    backend: LogBackend = Depends(get_rethinkdb_backend),
):
    """查询时间窗口内的日志条目，最多返回 max_limit 条。"""
    return await _entries_view(backend, min_time, max_time)


@router.get("/rethinkdb/loglevel")
async def rethinkdb_loglevel(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    logtype: Optional[str] = Query(None, description="fatal, error, warn, info, debug or trace"),
    backend: LogBackend = Depends(get_rethinkdb_backend),
):
    """查询指定级别的日志条目；min/max 同时给出时才按时间过滤。"""
    return await _level_view(backend, min_time, max_time, logtype)


@router.get("/rethinkdb/loglevelstats", response_model=Dict[str, List[LevelCount]])
async def rethinkdb_loglevelstats(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    backend: LogBackend = Depends(get_rethinkdb_backend),
):
    """按天统计各日志级别的条目数，键为 "日/月/年"。"""
    return await _level_stats_view(backend, min_time, max_time)


@router.get("/rethinkdb/timestats", response_model=Dict[str, int])
async def rethinkdb_timestats(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    backend: LogBackend = Depends(get_rethinkdb_backend),
):
    """按 ms 延迟分桶统计时间窗口内的条目数，固定返回 11 个桶。"""
    return await _time_stats_view(backend, min_time, max_time)


@router.get("/rethinkdb/worstcalls")
async def rethinkdb_worstcalls(
    tracker: WorstCallsTracker = Depends(get_worst_calls_tracker),
):
    """返回内存中 ms 最高的日志条目（最多 worst_calls_size 条），不访问后端。"""
    return tracker.snapshot()


# ── CrateDB ──────────────────────────────────────────────────────────
@router.get("/cratedb")
async def cratedb_logs(
    min_time: Optional[str] = Query(None, alias="min", description="ISO 8601 lower bound (inclusive)"),
    max_time: Optional[str] = Query(None, alias="max", description="ISO 8601 upper bound (exclusive)"),
    backend: LogBackend = Depends(get_cratedb_backend),
):
    """查询时间窗口内的日志条目，最多返回 max_limit 条。"""
    return await _entries_view(backend, min_time, max_time)


@router.get("/cratedb/loglevel")
async def cratedb_loglevel(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    logtype: Optional[str] = Query(None, description="fatal, error, warn, info, debug or trace"),
    backend: LogBackend = Depends(get_cratedb_backend),
):
    return await _level_view(backend, min_time, max_time, logtype)


@router.get("/cratedb/loglevelstats", response_model=Dict[str, List[LevelCount]])
async def cratedb_loglevelstats(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    backend: LogBackend = Depends(get_cratedb_backend),
):
    return await _level_stats_view(backend, min_time, max_time)


@router.get("/cratedb/timestats", response_model=Dict[str, int])
async def cratedb_timestats(
    min_time: Optional[str] = Query(None, alias="min"),
    max_time: Optional[str] = Query(None, alias="max"),
    backend: LogBackend = Depends(get_cratedb_backend),
):
    return await _time_stats_view(backend, min_time, max_time)
