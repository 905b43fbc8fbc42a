"""Core 异常体系

存储层错误在 JsonSnapshotStore 边界被吞成 bool；
队列/重试层错误向原始写入调用方传播；
输入校验错误同步拒绝，对应 HTTP 400。
"""


class BoardError(Exception):
    """Core 包基础异常"""


class SnapshotValidationError(BoardError):
    """客户端提交的快照顶层结构非法（调用方契约违例，不做修复）"""

    def __init__(self, message: str, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class SnapshotWriteError(BoardError):
    """持久化失败 -- store.write 返回 False 时由写队列的 commit 抛出"""

    def __init__(self, collection: str) -> None:
        super().__init__(f"快照写入失败: {collection}")
        self.collection = collection


class WriteFailedError(BoardError):
    """写队列重试耗尽，或提交遇到不可重试的错误

    只通知提交该批次的调用方；队列自身已复位，不影响后续写入。
    """

    def __init__(
        self,
        collection: str,
        attempts: int,
        original_error: BaseException,
    ) -> None:
        """
        Args:
            collection: 集合名
            attempts: 实际尝试次数
            original_error: 最后一次失败的异常
        """
        super().__init__(
            f"{collection} 写入在 {attempts} 次尝试后失败: {original_error}"
        )
        self.collection = collection
        self.attempts = attempts
        self.original_error = original_error


class RecordNotFoundError(BoardError):
    """按 id 找不到记录"""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class PermissionDeniedError(BoardError):
    """用户角色不允许该操作（如在无权限的类别下建任务）"""
