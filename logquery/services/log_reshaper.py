"""
结果整形 (Result Reshaper)

把各后端的原生结果转换为与后端无关的稳定响应结构：
- 原始/按级别过滤视图：扁平日志记录列表（去掉 CrateDB 的 cols/rows 包装）
- 级别统计视图："日/月/年" → [{level, count}, ...]
- 延迟统计视图：11 个固定延迟桶 → 计数

Maps each backend's native result format into a stable, backend-independent
response shape: flat record lists, a "D/M/Y" → [{level, count}] mapping, or a
bucket label → count mapping over eleven fixed latency buckets.
"""
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple, Optional

from logquery.services.severity import severity_name

if TYPE_CHECKING:
    from logquery.core.log_backend import LogBackend
    from logquery.services.time_window import TimeWindow


class GroupedCount(NamedTuple):
    """按 (日, 月, 年, 级别代码) 分组的计数"""
    day: int
    month: int
    year: int
    level: Any
    count: int


class LatencyBucket(NamedTuple):
    """延迟桶：lower <= ms < upper；upper 为 None 表示无上界"""
    label: str
    lower: float
    upper: Optional[float]


# 十个 10ms 宽的左闭右开区间加一个开放的 "> 100" 桶，整体覆盖 [0, ∞)
LATENCY_BUCKETS: List[LatencyBucket] = [
    LatencyBucket(f"{low} - {low + 10}", low, low + 10) for low in range(0, 100, 10)
] + [LatencyBucket(" > 100", 100, None)]


# ── 原生结果解包 (Native Result Unwrapping) ──────────────────────────

def unwrap_crate_rows(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """把 CrateDB `/_sql` 返回的 {cols, rows} 包装转换为记录列表。"""
    cols = payload.get("cols") or []
    return [dict(zip(cols, row)) for row in payload.get("rows") or []]


def groups_from_rethink(grouped: Dict[Any, int]) -> List[GroupedCount]:
    """RethinkDB group().count() 的结果为 {(day, month, year, level): count}。"""
    groups = []
    for key, count in grouped.items():
        day, month, year, level = tuple(key)
        groups.append(GroupedCount(day, month, year, level, count))
    return groups


def groups_from_crate(payload: Dict[str, Any]) -> List[GroupedCount]:
    """CrateDB 分组查询每行为 [day, month, year, level, count]。"""
    return [GroupedCount(*row) for row in payload.get("rows") or []]


def scalar_from_crate(payload: Dict[str, Any]) -> int:
    rows = payload.get("rows") or []
    if not rows:
        return 0
    return int(rows[0][0])


# ── 响应结构构建 (Response Shape Builders) ───────────────────────────

def level_stats(groups: List[GroupedCount]) -> Dict[str, List[Dict[str, Any]]]:
    """
    构建级别统计响应 (Build level-stats response)

    以 "day/month/year" 为键，值为按插入顺序排列的 {level: 名称, count: 数量} 列表。
    未定义的级别代码抛出 UnknownSeverityError，不会被丢弃或转换。
    """
    response: Dict[str, List[Dict[str, Any]]] = {}
    for group in groups:
        date = f"{group.day}/{group.month}/{group.year}"
        response.setdefault(date, []).append(
            {"level": severity_name(group.level), "count": group.count}
        )
    return response


async def latency_stats(backend: "LogBackend", window: "TimeWindow") -> Dict[str, int]:
    """
    构建延迟统计响应 (Build latency-stats response)

    按升序依次对每个延迟桶执行一次 count_in_range，共 11 次后端往返。
    所有桶都会出现在结果中，即使计数为 0。
    """
    stats: Dict[str, int] = {}
    for bucket in LATENCY_BUCKETS:
        stats[bucket.label] = await backend.count_in_range(window, bucket.lower, bucket.upper)
    return stats
