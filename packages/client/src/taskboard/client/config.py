"""ClientConfig -- 看板客户端配置加载

从环境变量加载配置，不硬编码服务地址。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class ClientConfig(BaseModel):
    """客户端配置 -- 从环境变量加载

    环境变量:
        TASKBOARD_API_URL: 服务地址（默认 http://localhost:3000）
        TASKBOARD_API_TIMEOUT_S: 单次请求超时（秒，默认 10）
    """

    api_url: str = Field(
        default="http://localhost:3000",
        description="看板服务基础 URL",
    )
    timeout_s: float = Field(
        default=10.0,
        gt=0,
        description="HTTP 请求超时（秒）",
    )
    reconnect_initial_delay: float = Field(
        default=1.0,
        ge=0,
        description="实时通道断开后首次重连等待（秒）",
    )
    reconnect_max_delay: float = Field(
        default=5.0,
        ge=0,
        description="实时通道重连等待上限（秒）",
    )


def load_client_config() -> ClientConfig:
    """从环境变量加载客户端配置

    环境变量映射:
        TASKBOARD_API_URL -> api_url (默认 "http://localhost:3000")
        TASKBOARD_API_TIMEOUT_S -> timeout_s (默认 10)

    Returns:
        ClientConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKBOARD_API_URL"):
        kwargs["api_url"] = val.rstrip("/")

    if val := os.environ.get("TASKBOARD_API_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = float(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="TASKBOARD_API_TIMEOUT_S",
                value=val,
                fallback=10.0,
            )
            # 使用默认值，不阻塞启动

    return ClientConfig(**kwargs)
