"""
日志查询网关 (Log Query Gateway)

只读 HTTP 网关，按时间窗口查询 RethinkDB / CrateDB 日志存储并返回结构化结果。

Read-only HTTP gateway that queries RethinkDB / CrateDB log stores by time window
and returns structured results.
"""

__version__ = "0.1.0"
