"""
应用配置模块 (Application Configuration Module)

使用 Pydantic Settings 管理网关的所有配置项，支持从 .env 文件和环境变量读取。
提供 RethinkDB、CrateDB 连接参数、监听端口、查询上限等配置。

Uses Pydantic Settings to manage all gateway configuration items, supporting
.env files and environment variables. Covers RethinkDB and CrateDB connection
parameters, the listening port, the query row cap and tracker settings.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    应用全局配置类 (Application Global Configuration Class)

    字段名自动映射同名环境变量（不区分大小写），支持 .env 文件加载。

    Field names automatically map to same-named environment variables
    (case insensitive), supporting .env file loading.
    """

    # RethinkDB 配置 (RethinkDB Configuration)
    rethink_host: str = "databases-internal.hackathon.venom360.com"  # RethinkDB 主机地址 (RethinkDB Host)
    rethink_port: int = 28015  # RethinkDB 端口号 (RethinkDB Port)
    rethink_database: str = "hackathon"  # 数据库名称 (Database Name)
    rethink_table: str = "logs"  # 日志表名 (Log Table Name)
    rethink_user: str = "admin"  # 用户名 (Username)
    rethink_password: str = ""  # 密码 (Password)
    rethink_ca_certs: str = ""  # TLS CA 证书路径，为空则不启用 TLS (TLS CA Certificate Path, TLS Disabled When Empty)
    rethink_timeout: int = 20  # 连接超时（秒） (Connect Timeout in Seconds)

    # CrateDB 配置 (CrateDB Configuration)
    crate_host: str = "databases-internal.hackathon.venom360.com"  # CrateDB 主机地址 (CrateDB Host)
    crate_port: int = 4200  # CrateDB HTTP 端口 (CrateDB HTTP Port)
    crate_table: str = "logs"  # 日志表名 (Log Table Name)
    crate_timeout: float = 30.0  # HTTP 请求超时（秒） (HTTP Request Timeout in Seconds)

    # 服务配置 (Service Configuration)
    app_host: str = "0.0.0.0"  # 监听地址 (Listen Address)
    app_port: int = 8080  # 监听端口 (Listen Port)
    log_level: str = "INFO"  # 日志级别 (Log Level)

    # 查询配置 (Query Configuration)
    max_limit: int = 50000  # 单次查询返回行数上限 (Row Cap Per Query)
    worst_calls_size: int = 50  # 最慢调用集合容量 (Worst-Latency Set Capacity)
    worst_calls_enabled: bool = True  # 启动时是否开启最慢调用跟踪 (Start Worst-Latency Tracker on Startup)

    @property
    def crate_url(self) -> str:
        """
        构造 CrateDB HTTP 基础 URL (Build CrateDB HTTP Base URL)

        CrateDB 通过 HTTP `/_sql` 端点执行 SQL 语句。

        CrateDB executes SQL statements through its HTTP `/_sql` endpoint.
        """
        return f"http://{self.crate_host}:{self.crate_port}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}  # Pydantic 配置：自动加载 .env 文件 (Pydantic Config: Auto-load .env file)


# 全局配置实例 (Global Configuration Instance)
settings = Settings()
