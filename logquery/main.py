"""
日志查询网关应用入口模块 (Log Query Gateway Application Entry Module)

负责 FastAPI 应用的完整生命周期管理：异常处理器与请求日志中间件注册、路由注册、
最慢调用跟踪后台任务的启动与取消，以及后端连接的释放。

Main application entry point, responsible for the FastAPI application
lifecycle: exception handlers, request logging middleware, routers, the
worst-latency tracker background task and backend connection cleanup.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from logquery import __version__
from logquery.core.config import settings
from logquery.core.exceptions import register_exception_handlers
from logquery.core.log_backend import LogBackend, LogBackendFactory, LogBackendType
from logquery.core.request_logging import RequestLoggingMiddleware
from logquery.core.rethinkdb import close_rethinkdb
from logquery.routers import logs
from logquery.routers.logs import get_cratedb_backend, get_rethinkdb_backend
from logquery.schemas.log_entry import HealthResponse, WorstCallsStatus
from logquery.services.worst_calls import WorstCallsTracker, get_worst_calls_tracker, worst_calls_tracker
from logquery.tasks.worst_calls_listener import worst_calls_listener_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理器 (Application Lifecycle Manager)

    启动时在后台开始最慢调用跟踪（初始扫描 + 变更订阅），关闭时取消任务并释放 RethinkDB 连接。
    """
    listener_task = None
    if settings.worst_calls_enabled:
        backend = LogBackendFactory.get_backend(LogBackendType.RETHINKDB)
        listener_task = asyncio.create_task(worst_calls_listener_loop(backend, worst_calls_tracker))

    yield

    if listener_task is not None:
        listener_task.cancel()
        try:
            await listener_task
        except asyncio.CancelledError:
            pass

    await close_rethinkdb()


# 创建 FastAPI 应用实例 (Create FastAPI application instance)
app = FastAPI(
    title="Log Query Gateway",
    description="Read-only date-range query gateway over RethinkDB and CrateDB log stores",
    version=__version__,
    lifespan=lifespan,
)

# 注册全局异常处理器 (Register global exception handlers)
register_exception_handlers(app)

# 请求日志中间件 (Request logging middleware)
app.add_middleware(RequestLoggingMiddleware)

# 注册路由 (Register routers)
app.include_router(logs.router)  # 日志查询 (Log queries)


@app.get("/health", response_model=HealthResponse)
async def health(
    rethinkdb_backend: LogBackend = Depends(get_rethinkdb_backend),
    cratedb_backend: LogBackend = Depends(get_cratedb_backend),
    tracker: WorstCallsTracker = Depends(get_worst_calls_tracker),
):
    """
    健康检查接口 (Health Check Endpoint)

    检查两个日志后端的连通性并报告最慢调用跟踪器的状态。
    任一后端不可用时返回 degraded，但 HTTP 状态码始终为 200。
    """
    checks = {"api": "ok"}
    checks["rethinkdb"] = "ok" if await rethinkdb_backend.health_check() else "error"
    checks["cratedb"] = "ok" if await cratedb_backend.health_check() else "error"

    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"

    return HealthResponse(
        status=status,
        checks=checks,
        worst_calls=WorstCallsStatus(state=tracker.state.value, size=len(tracker)),
        timestamp=datetime.now(timezone.utc),
    )
