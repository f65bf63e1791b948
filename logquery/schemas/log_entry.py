"""
日志查询响应模型

定义级别统计、健康检查等 API 的数据结构。
原始日志条目按后端返回的字段原样透传，不经过模型校验。
"""
from datetime import datetime

from pydantic import BaseModel


class LevelCount(BaseModel):
    """某一天中某个日志级别的计数项。"""
    level: str
    count: int


class WorstCallsStatus(BaseModel):
    """最慢调用跟踪器状态。"""
    state: str
    size: int


class HealthResponse(BaseModel):
    """健康检查响应体。"""
    status: str
    checks: dict[str, str]
    worst_calls: WorstCallsStatus
    timestamp: datetime
