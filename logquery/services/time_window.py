"""
时间窗口解析 (Time Window Parser)

把查询参数 min / max 校验并规范化为 UTC 的左闭右开时间区间 [min, max)。
不检查 min <= max：倒置区间由后端自然返回空结果，而不是报错。

Validates the min / max query parameters and normalizes them into a UTC
half-open range [min, max). Ordering is not checked: an inverted range
naturally yields an empty backend result rather than an error.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import isoparse

from logquery.core.exceptions import InvalidDateFormatError, MissingParameterError

MISSING_BOUNDS_MESSAGE = "Must specify min and max in query string."
INVALID_DATE_MESSAGE = "Min and max must be ISO 8601 date strings"


@dataclass(frozen=True)
class TimeWindow:
    """UTC 时间窗口，下界包含、上界不包含 (UTC window, inclusive lower / exclusive upper)"""
    min_time: datetime
    max_time: datetime


def parse_iso8601(value: str) -> datetime:
    """
    解析 ISO 8601 扩展格式的日期/时间字符串并转换为 UTC (Parse ISO 8601 and normalize to UTC)

    不带时区的时间按 UTC 处理；带时区偏移的时间换算到 UTC。

    Raises:
        InvalidDateFormatError: 字符串不是合法的 ISO 8601 日期/时间
    """
    try:
        parsed = isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise InvalidDateFormatError(INVALID_DATE_MESSAGE, detail=f"{value!r}: {e}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_time_window(
    min_str: Optional[str],
    max_str: Optional[str],
    required: bool = True,
) -> Optional[TimeWindow]:
    """
    解析 min / max 查询参数 (Parse min / max query parameters)

    Args:
        min_str: 下界字符串，可为空
        max_str: 上界字符串，可为空
        required: 视图是否必须指定时间窗口。为 False 时，只有两个参数都给出才构成窗口，
                  否则返回 None 表示不限时间。

    Returns:
        TimeWindow 或 None（不限时间）

    Raises:
        MissingParameterError: required=True 且任一参数缺失
        InvalidDateFormatError: 参数存在但无法按 ISO 8601 解析
    """
    if not min_str or not max_str:
        if required:
            raise MissingParameterError(MISSING_BOUNDS_MESSAGE)
        return None

    return TimeWindow(min_time=parse_iso8601(min_str), max_time=parse_iso8601(max_str))
