"""
结构化日志配置：structlog + contextvars 自动注入 request_id / operation

本项目的日志来源：
- TodoApi：提交成功时的 debug 行（失败走信封返回，不记日志）
- TodoSocket：监听者处理通知抛异常时的 error 行（带 traceback）
- TodoMirror：检测到序号缺口时的 warning 行
- RandomActionExecutor：启停 info 行，被丢弃的失败 debug 行

开发环境彩色文本输出；生产环境 JSON 输出，异常栈经 format_exc_info 展开为字段。
"""

import logging
import sys

import structlog


def setup_logging(env: str = "development", level: str = "INFO") -> None:
    """初始化结构化日志"""

    # 共享处理器链
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,  # 自动合并 request_id 等上下文
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(colors=True))

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
