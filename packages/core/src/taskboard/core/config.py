"""配置常量模块 -- 可通过环境变量覆盖

包含快照文件路径、读/写两侧的重试退避参数、SSE 参数等可配置常量。
数值型环境变量非法时记录告警并回退默认值，不阻塞启动。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _env_number(name: str, default, cast, minimum=None):
    """读取数值型环境变量，非法值回退默认值，低于 minimum 时取 minimum"""
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning(
            "invalid_config_value",
            env_var=name,
            value=raw,
            fallback=default,
        )
        return default
    if minimum is not None and value < minimum:
        log.warning(
            "config_value_below_minimum",
            env_var=name,
            value=value,
            minimum=minimum,
        )
        return minimum
    return value


def get_data_dir() -> Path:
    """获取快照数据基础目录"""
    return Path(os.environ.get("TASKBOARD_DATA_DIR", "data"))


def get_tasks_path() -> Path:
    """获取 tasks 快照文件路径"""
    return Path(
        os.environ.get("TASKBOARD_TASKS_FILE", str(get_data_dir() / "tasks.json"))
    )


def get_users_path() -> Path:
    """获取 users 快照文件路径"""
    return Path(
        os.environ.get("TASKBOARD_USERS_FILE", str(get_data_dir() / "users.json"))
    )


# 读路径重试（客户端 GET）：3 次，500ms 起步，封顶 5s
READ_MAX_ATTEMPTS: int = _env_number("TASKBOARD_READ_MAX_ATTEMPTS", 3, int)
READ_INITIAL_DELAY_S: float = _env_number("TASKBOARD_READ_INITIAL_DELAY_S", 0.5, float)
READ_MAX_DELAY_S: float = _env_number("TASKBOARD_READ_MAX_DELAY_S", 5.0, float)

# 写队列重试：3 次，1s 起步，封顶 5s
WRITE_MAX_ATTEMPTS: int = _env_number("TASKBOARD_WRITE_MAX_ATTEMPTS", 3, int)
WRITE_INITIAL_DELAY_S: float = _env_number("TASKBOARD_WRITE_INITIAL_DELAY_S", 1.0, float)
WRITE_MAX_DELAY_S: float = _env_number("TASKBOARD_WRITE_MAX_DELAY_S", 5.0, float)

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = _env_number("TASKBOARD_SSE_HEARTBEAT_INTERVAL", 15, int)

# 每个订阅者的缓冲队列长度，写满视为失效订阅者；至少容纳一次全量回放（tasks + users）
SSE_QUEUE_MAXSIZE: int = _env_number(
    "TASKBOARD_SSE_QUEUE_MAXSIZE", 100, int, minimum=2
)
