"""
请求日志中间件 (Request Logging Middleware)

记录每个 HTTP 请求的进入与完成，包括方法、路径、状态码和耗时。

Logs every HTTP request on entry and on completion with method, path,
status code and elapsed time.
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("logquery.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志中间件 (Request Logging Middleware)"""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"

        logger.info("<-- %s %s", request.method, path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error("xxx %s %s %.0fms", request.method, path, elapsed_ms)
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("--> %s %s %d %.0fms", request.method, path, response.status_code, elapsed_ms)
        return response
