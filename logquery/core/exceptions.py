"""
全局异常处理模块 (Global Exception Handling Module)

定义查询网关的业务异常类和 FastAPI 全局异常处理器，提供统一的错误响应格式。
参数错误在访问任何后端之前即返回 400；后端故障返回 502；数据异常返回 500。

Defines the gateway's business exception classes and FastAPI global exception
handlers, providing a unified error response format. Parameter errors return
400 before any backend is contacted; backend failures return 502; malformed
stored data returns 500.
"""
import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ============================================================
# 业务异常类 (Business Exception Classes)
# ============================================================

class BusinessError(Exception):
    """业务异常基类 (Base Business Exception)"""
    status_code: int = 400
    error: str = "business_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class MissingParameterError(BusinessError):
    """缺少必需的查询参数 (Required Query Parameter Missing)"""
    status_code = 400
    error = "missing_parameter"


class InvalidDateFormatError(BusinessError):
    """日期不是 ISO 8601 格式 (Date Is Not ISO 8601)"""
    status_code = 400
    error = "invalid_date_format"


class InvalidLogLevelError(BusinessError):
    """未知的日志级别名称 (Unknown Log Level Name)"""
    status_code = 400
    error = "invalid_log_level"


class UnknownSeverityError(BusinessError):
    """存储中出现未定义的级别代码 (Undefined Severity Code In Stored Data)"""
    status_code = 500
    error = "unknown_severity"


class BackendUnavailableError(BusinessError):
    """日志后端连接或查询失败 (Log Backend Connection Or Query Failure)"""
    status_code = 502
    error = "backend_unavailable"


# ============================================================
# 全局异常处理器注册 (Global Exception Handler Registration)
# ============================================================

def register_exception_handlers(app: FastAPI) -> None:
    """
    注册全局异常处理器到 FastAPI 应用 (Register global exception handlers to FastAPI app)

    处理优先级：
    1. BusinessError 子类 → 对应 HTTP 状态码 + 结构化响应
    2. HTTPException（含路由 404/405） → 保持状态码，包装为统一格式
    3. Exception → 500 + 完整 traceback 日志
    """

    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s on %s %s: %s (%s)",
                exc.error,
                request.method,
                request.url.path,
                exc.message,
                exc.detail,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error,
                "message": exc.message,
                "detail": exc.detail,
                "status_code": exc.status_code,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": str(exc.detail),
                "detail": None,
                "status_code": exc.status_code,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        # 记录完整 traceback 用于调试 (Log full traceback for debugging)
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(exc),
            traceback.format_exc(),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "服务器内部错误，请稍后重试 (Internal server error, please try again later)",
                "detail": None,
                "status_code": 500,
            },
        )
