"""Client 异常体系"""


class ClientError(Exception):
    """Client 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ApiUnreachableError(ClientError):
    """看板服务不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, api_url: str, original_error: Exception) -> None:
        """
        Args:
            api_url: 尝试连接的服务地址
            original_error: 原始异常
        """
        super().__init__(
            f"看板服务不可达: {api_url} -- {original_error}",
            recoverable=True,
        )
        self.api_url = api_url
        self.original_error = original_error


class ApiResponseError(ClientError):
    """服务返回非 2xx 响应

    5xx 视为可恢复（如写入重试耗尽），4xx 是请求本身有误。
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(
            f"HTTP {status_code}: {message}",
            recoverable=status_code >= 500,
        )
        self.status_code = status_code
        self.error = message
