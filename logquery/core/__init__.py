"""
核心模块包 (Core Module Package)

包含配置管理、异常处理、请求日志、后端连接和日志后端抽象层等基础组件。

Foundational components: configuration, exception handling, request logging,
backend connections and the log backend abstraction layer.
"""
