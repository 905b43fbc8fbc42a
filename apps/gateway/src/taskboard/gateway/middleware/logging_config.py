"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
TASKBOARD_LOG_FILE 设置时额外写入滚动日志文件（5 MB 一个文件）。
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时降级为纯本地日志。

另外提供进程级兜底：未捕获异常与事件循环中未处理的异常都记为 fatal。
"""

import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5


def setup_logging() -> None:
    """初始化 structlog 配置

    根据 TASKBOARD_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出
    """
    log_format = os.environ.get("TASKBOARD_LOG_FORMAT", "dev")
    log_level = os.environ.get("TASKBOARD_LOG_LEVEL", "INFO")
    log_file = os.environ.get("TASKBOARD_LOG_FILE", "")

    # 基础处理器链
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if log_file:
        # 文件始终写 JSON，便于事后检索
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(ensure_ascii=False),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def setup_logfire() -> None:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 环境变量控制：
    - "true": 启用 Logfire APM（需要 LOGFIRE_TOKEN）
    - "false" (默认): 降级为纯本地日志
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire == "true":
        try:
            import logfire

            logfire.configure()
            logfire.instrument_fastapi()
        except Exception:
            structlog.get_logger().warning(
                "logfire_init_failed",
                message="Logfire 初始化失败，降级为纯本地日志",
            )


def _log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    structlog.get_logger().critical(
        "uncaught_exception",
        error=str(exc_value),
        error_type=exc_type.__name__,
        exc_info=(exc_type, exc_value, exc_traceback),
    )


def install_crash_handlers() -> None:
    """未捕获异常记为 fatal 后由解释器退出"""
    sys.excepthook = _log_uncaught


def loop_exception_handler(
    loop: asyncio.AbstractEventLoop, context: dict[str, Any]
) -> None:
    """事件循环兜底：未被 await 的任务异常只记录，不终止进程"""
    exc = context.get("exception")
    structlog.get_logger().critical(
        "unhandled_async_error",
        message=context.get("message", ""),
        error=str(exc) if exc else None,
        error_type=type(exc).__name__ if exc else None,
        exc_info=exc,
    )
