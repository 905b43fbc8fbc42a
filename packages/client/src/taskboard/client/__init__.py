"""Taskboard Client -- 看板服务 HTTP 客户端与实时同步

packages/client 的公开接口导出。
"""

from .client import BoardClient

# 配置
from .config import ClientConfig, load_client_config

# 异常
from .exceptions import ApiResponseError, ApiUnreachableError, ClientError
from .sync import BoardState, BoardSync

__all__ = [
    "BoardClient",
    "BoardSync",
    "BoardState",
    "ClientConfig",
    "load_client_config",
    "ClientError",
    "ApiUnreachableError",
    "ApiResponseError",
]
