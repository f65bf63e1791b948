"""
RethinkDB 连接模块

管理 RethinkDB 异步连接的创建和关闭，提供全局单例访问。
驱动以 asyncio 模式运行，查询在事件循环中挂起而不阻塞其他请求。
"""
import logging

from rethinkdb import RethinkDB
from rethinkdb.net import Connection

from logquery.core.config import settings

logger = logging.getLogger(__name__)

# 全局 ReQL 入口，所有查询均由它构造
r = RethinkDB()
r.set_loop_type("asyncio")

# 全局 RethinkDB 连接实例
rethink_conn: Connection | None = None


async def get_rethinkdb() -> Connection:
    """获取 RethinkDB 连接，首次调用或连接断开后自动重新建立。"""
    global rethink_conn
    if rethink_conn is None or not rethink_conn.is_open():
        options = {
            "host": settings.rethink_host,
            "port": settings.rethink_port,
            "db": settings.rethink_database,
            "user": settings.rethink_user,
            "password": settings.rethink_password,
            "timeout": settings.rethink_timeout,
        }
        if settings.rethink_ca_certs:
            options["ssl"] = {"ca_certs": settings.rethink_ca_certs}
        rethink_conn = await r.connect(**options)
        logger.info(
            f"Connected to RethinkDB {settings.rethink_host}:{settings.rethink_port}/{settings.rethink_database}"
        )
    return rethink_conn


async def close_rethinkdb() -> None:
    """关闭 RethinkDB 连接，释放资源。"""
    global rethink_conn
    if rethink_conn is not None:
        await rethink_conn.close(noreply_wait=False)
        rethink_conn = None
