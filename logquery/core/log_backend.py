"""
日志后端抽象层 (Log Backend Abstraction Layer)

定义统一的只读日志查询接口，支持 RethinkDB 和 CrateDB 两种可互换的后端。
每个后端实现四种查询形态，并在查询层面（而不是取回后）施加全局行数上限。

支持的后端类型:
- rethinkdb: RethinkDB 时序日志存储（官方驱动，asyncio 模式）
- cratedb: CrateDB 日志存储（HTTP /_sql 端点）

Defines the unified read-only log query interface over two interchangeable
backends. Every backend implements the four query shapes and enforces the
global row cap at the query level rather than after fetching.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from rethinkdb.errors import ReqlError
from rethinkdb.net import Connection, Cursor

from logquery.core.config import settings
from logquery.core.exceptions import BackendUnavailableError
from logquery.core.rethinkdb import get_rethinkdb, r
from logquery.services.log_reshaper import (
    GroupedCount,
    groups_from_crate,
    groups_from_rethink,
    scalar_from_crate,
    unwrap_crate_rows,
)
from logquery.services.time_window import TimeWindow

logger = logging.getLogger(__name__)


class LogBackendType(str, Enum):
    """支持的日志后端类型"""
    RETHINKDB = "rethinkdb"
    CRATEDB = "cratedb"


class LogBackend(ABC):
    """日志后端抽象基类"""

    backend_type: LogBackendType

    def __init__(self, max_rows: Optional[int] = None):
        self.max_rows = max_rows if max_rows is not None else settings.max_limit

    def _cap(self, limit: Optional[int]) -> int:
        """返回实际使用的行数上限，永远不超过全局上限。"""
        if limit is None or limit <= 0:
            return self.max_rows
        return min(limit, self.max_rows)

    @abstractmethod
    async def raw_query(self, window: TimeWindow, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        查询时间窗口 [min, max) 内的全部日志条目

        按后端索引的自然顺序返回，截断到行数上限。
        """

    @abstractmethod
    async def filtered_query(
        self,
        window: Optional[TimeWindow],
        level_code: int,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        按级别代码过滤的日志查询

        window 为 None 时不限时间，仍受行数上限约束。
        """

    @abstractmethod
    async def grouped_count_by_day_and_level(self, window: Optional[TimeWindow]) -> List[GroupedCount]:
        """
        按 (日, 月, 年, 级别) 分组计数

        window 为 None 时对整张表分组。
        """

    @abstractmethod
    async def count_in_range(self, window: TimeWindow, lower: float, upper: Optional[float]) -> int:
        """
        统计时间窗口内 lower <= ms < upper 的条目数；upper 为 None 时只要求 ms >= lower

        ms 在存储中可能不是数值类型，比较前先转换为数值。
        """

    async def health_check(self) -> bool:
        """健康检查"""
        return True


class RethinkDBLogBackend(LogBackend):
    """RethinkDB 日志后端"""

    backend_type = LogBackendType.RETHINKDB

    def __init__(
        self,
        table: str = "logs",
        max_rows: Optional[int] = None,
        connect: Callable[[], Awaitable[Connection]] = get_rethinkdb,
    ):
        super().__init__(max_rows)
        self.table_name = table
        self._connect = connect

    def _table(self):
        return r.table(self.table_name)

    def _between(self, window: TimeWindow):
        # between 默认左闭右开，正好对应 [min, max)
        return self._table().between(window.min_time, window.max_time, index="time")

    async def _open(self, query):
        """在共享连接上执行查询，返回驱动的原始结果（游标、字典或标量）。"""
        conn = await self._connect()
        return await query.run(conn)

    async def _run(self, query):
        """执行查询并把游标读取为列表，驱动/网络错误统一转换为 BackendUnavailableError。"""
        try:
            result = await self._open(query)
            if isinstance(result, Cursor):
                items = []
                while await result.fetch_next():
                    items.append(await result.next())
                return items
            return result
        except (ReqlError, OSError) as e:
            logger.error(f"RethinkDB query failed: {e}")
            raise BackendUnavailableError("RethinkDB query failed", detail=str(e))

    async def raw_query(self, window: TimeWindow, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = self._between(window).limit(self._cap(limit))
        return await self._run(query)

    async def filtered_query(
        self,
        window: Optional[TimeWindow],
        level_code: int,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        selection = self._between(window) if window is not None else self._table()
        query = selection.filter({"level": level_code}).limit(self._cap(limit))
        return await self._run(query)

    async def grouped_count_by_day_and_level(self, window: Optional[TimeWindow]) -> List[GroupedCount]:
        selection = self._between(window) if window is not None else self._table()
        query = selection.group(
            lambda entry: entry["time"].day(),
            lambda entry: entry["time"].month(),
            lambda entry: entry["time"].year(),
            "level",
        ).count()
        grouped = await self._run(query)
        return groups_from_rethink(grouped or {})

    async def count_in_range(self, window: TimeWindow, lower: float, upper: Optional[float]) -> int:
        def in_bucket(entry):
            ms = entry["ms"].coerce_to("number")
            if upper is None:
                return ms.ge(lower)
            return ms.ge(lower).and_(ms.lt(upper))

        query = self._between(window).filter(in_bucket).count()
        return int(await self._run(query))

    # ── 最慢调用（变更订阅，仅 RethinkDB 支持） ─────────────────────────

    def _top_by_latency(self, limit: int):
        return self._table().order_by(index=r.desc("ms")).limit(limit)

    async def top_by_latency(self, limit: int) -> List[Dict[str, Any]]:
        """按 ms 降序取前 limit 条日志，用于最慢调用集合的初始化。"""
        return await self._run(self._top_by_latency(limit))

    async def watch_top_by_latency(
        self, limit: int
    ) -> AsyncIterator[Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]]:
        """
        订阅 ms 降序前 limit 条的变更流，逐条产出 (old_val, new_val)

        订阅长期保持；流关闭或出错时抛出 BackendUnavailableError，由调用方决定后续处理。
        """
        try:
            feed = await self._open(self._top_by_latency(limit).changes())
            while await feed.fetch_next():
                change = await feed.next()
                yield change.get("old_val"), change.get("new_val")
        except (ReqlError, OSError) as e:
            logger.error(f"RethinkDB change feed failed: {e}")
            raise BackendUnavailableError("RethinkDB change feed failed", detail=str(e))

    async def health_check(self) -> bool:
        """RethinkDB健康检查"""
        try:
            return await self._run(r.expr(1)) == 1
        except BackendUnavailableError:
            return False


class CrateDBLogBackend(LogBackend):
    """CrateDB 日志后端（HTTP /_sql 端点）"""

    backend_type = LogBackendType.CRATEDB

    def __init__(
        self,
        crate_url: str,
        table: str = "logs",
        max_rows: Optional[int] = None,
        timeout: float = 30.0,
    ):
        super().__init__(max_rows)
        self.base_url = crate_url.rstrip("/")
        self.table_name = table
        self.timeout = timeout

    async def _execute(self, stmt: str, args: List[Any]) -> Dict[str, Any]:
        """
        通过 `/_sql` 执行参数化语句，返回 {cols, rows, rowcount} 原始结果

        网络错误、非 200 响应都转换为 BackendUnavailableError。
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/_sql",
                    json={"stmt": stmt, "args": args},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"CrateDB request failed: {e}")
            raise BackendUnavailableError("CrateDB query failed", detail=str(e))

        if response.status_code != 200:
            logger.error(f"CrateDB query failed: {response.text}")
            raise BackendUnavailableError("CrateDB query failed", detail=response.text)
        return response.json()

    @staticmethod
    def _where(window: Optional[TimeWindow], conditions: List[str], args: List[Any]) -> str:
        if window is not None:
            conditions = ["time >= ?", "time < ?"] + conditions
            args[:0] = [window.min_time.isoformat(), window.max_time.isoformat()]
        return f" WHERE {' AND '.join(conditions)}" if conditions else ""

    async def raw_query(self, window: TimeWindow, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        args: List[Any] = []
        where = self._where(window, [], args)
        payload = await self._execute(
            f"SELECT * FROM {self.table_name}{where} LIMIT ?",
            args + [self._cap(limit)],
        )
        return unwrap_crate_rows(payload)

    async def filtered_query(
        self,
        window: Optional[TimeWindow],
        level_code: int,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        args: List[Any] = [level_code]
        where = self._where(window, ["level = ?"], args)
        payload = await self._execute(
            f"SELECT * FROM {self.table_name}{where} LIMIT ?",
            args + [self._cap(limit)],
        )
        return unwrap_crate_rows(payload)

    async def grouped_count_by_day_and_level(self, window: Optional[TimeWindow]) -> List[GroupedCount]:
        args: List[Any] = []
        where = self._where(window, [], args)
        day = "EXTRACT(DAY_OF_MONTH FROM time)"
        month = "EXTRACT(MONTH FROM time)"
        year = "EXTRACT(YEAR FROM time)"
        stmt = (
            f"SELECT {day}, {month}, {year}, level, COUNT(*) FROM {self.table_name}{where}"
            f" GROUP BY {day}, {month}, {year}, level"
            f" ORDER BY {day}, {month}, {year}, level"
        )
        return groups_from_crate(await self._execute(stmt, args))

    async def count_in_range(self, window: TimeWindow, lower: float, upper: Optional[float]) -> int:
        conditions = ["TRY_CAST(ms AS DOUBLE) >= ?"]
        args: List[Any] = [lower]
        if upper is not None:
            conditions.append("TRY_CAST(ms AS DOUBLE) < ?")
            args.append(upper)
        where = self._where(window, conditions, args)
        payload = await self._execute(f"SELECT COUNT(*) FROM {self.table_name}{where}", args)
        return scalar_from_crate(payload)

    async def health_check(self) -> bool:
        """CrateDB健康检查"""
        try:
            await self._execute("SELECT 1", [])
            return True
        except BackendUnavailableError:
            return False


class LogBackendFactory:
    """日志后端工厂类"""

    _backends: Dict[LogBackendType, LogBackend] = {}

    @classmethod
    def create_backend(cls, backend_type: LogBackendType, **kwargs) -> LogBackend:
        """
        创建日志后端实例

        Args:
            backend_type: 后端类型
            **kwargs: 后端特定的参数

        Returns:
            LogBackend: 后端实例
        """
        if backend_type == LogBackendType.RETHINKDB:
            return RethinkDBLogBackend(
                table=kwargs.get("table", settings.rethink_table),
                max_rows=kwargs.get("max_rows"),
                connect=kwargs.get("connect", get_rethinkdb),
            )

        elif backend_type == LogBackendType.CRATEDB:
            return CrateDBLogBackend(
                crate_url=kwargs.get("crate_url", settings.crate_url),
                table=kwargs.get("table", settings.crate_table),
                max_rows=kwargs.get("max_rows"),
                timeout=kwargs.get("timeout", settings.crate_timeout),
            )

        else:
            raise ValueError(f"Unsupported backend type: {backend_type}")

    @classmethod
    def get_backend(cls, backend_type: LogBackendType) -> LogBackend:
        """获取按全局配置创建的后端实例（进程内共享）"""
        if backend_type not in cls._backends:
            cls._backends[backend_type] = cls.create_backend(backend_type)
            logger.info(f"Log backend {backend_type.value} initialized")
        return cls._backends[backend_type]
