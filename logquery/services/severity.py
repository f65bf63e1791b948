"""
日志级别映射 (Severity Mapping)

六个整数级别代码与名称之间的固定双向映射：
10 trace, 20 debug, 30 info, 40 warn, 50 error, 60 fatal。
非法名称或代码直接报错，从不静默转换。
"""
from logquery.core.exceptions import InvalidLogLevelError, UnknownSeverityError

SEVERITY_NAMES: dict[int, str] = {
    10: "trace",
    20: "debug",
    30: "info",
    40: "warn",
    50: "error",
    60: "fatal",
}

SEVERITY_CODES: dict[str, int] = {name: code for code, name in SEVERITY_NAMES.items()}

INVALID_LOG_LEVEL_MESSAGE = "Must specify logtype as (fatal, error, warn, info, debug, trace)"


def severity_code(name: str | None) -> int:
    """级别名称 → 代码，名称为空或未知时抛出 InvalidLogLevelError。"""
    if not name or name not in SEVERITY_CODES:
        raise InvalidLogLevelError(INVALID_LOG_LEVEL_MESSAGE, detail=f"logtype={name!r}")
    return SEVERITY_CODES[name]


def severity_name(code) -> str:
    """级别代码 → 名称，代码未定义时抛出 UnknownSeverityError。"""
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    # bool 是 int 的子类，不能当作级别代码
    if isinstance(code, bool) or not isinstance(code, int) or code not in SEVERITY_NAMES:
        raise UnknownSeverityError(
            "Stored log entry has an undefined severity code",
            detail=f"level={code!r}",
        )
    return SEVERITY_NAMES[code]
