"""Store Protocol 接口定义

定义 SnapshotStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing），
写队列和网关只依赖此接口，测试可注入内存实现。
"""

from typing import Any, Protocol, runtime_checkable

from ..models import Collection


@runtime_checkable
class SnapshotStore(Protocol):
    """整集合快照存储接口"""

    @property
    def collection(self) -> Collection:
        """所属集合"""
        ...

    async def read(self) -> dict[str, Any]:
        """读取完整文档；缺失时创建空默认，损坏时返回空默认"""
        ...

    async def read_records(self) -> list[dict[str, Any]]:
        """读取记录列表"""
        ...

    async def write(self, document: dict[str, Any]) -> bool:
        """原子写入完整文档，失败返回 False，不抛异常"""
        ...

    async def write_records(self, records: list[dict[str, Any]]) -> bool:
        """以记录列表写入"""
        ...

    async def check(self) -> str:
        """ok / missing / corrupted"""
        ...
