"""JsonSnapshotStore -- 整集合快照的原子读写

每个集合一个 JSON 文档（{"tasks": [...]} / {"users": [...]}），
只支持整体替换，不提供单条记录持久化接口。

写入流程（崩溃安全）：
1. live 文件存在时复制为 <file>.bak
2. 序列化到 <file>.tmp（flush + fsync）
3. 回读并重新解析 tmp，确认格式正确
4. os.replace(tmp, live) 原子替换
5. 删除 .bak
2-4 任一步失败：从 .bak 恢复、清理 .tmp，返回 False。
"""

import asyncio
import json
import os
import shutil
from pathlib import Path
from typing import Any

import structlog

from ..models import Collection

log = structlog.get_logger()

TMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"


class CorruptSnapshotError(ValueError):
    """快照文件内容不是合法的集合文档"""


def _parse_document(text: str, collection: Collection) -> dict[str, Any]:
    """解析并校验集合文档结构"""
    document = json.loads(text)
    if not isinstance(document, dict) or not isinstance(
        document.get(collection.root_key), list
    ):
        raise CorruptSnapshotError(
            f"expected an object with a '{collection.root_key}' array"
        )
    return document


def _unlink_quietly(path: Path, operation: str) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.error(
            "snapshot_cleanup_failed",
            path=str(path),
            operation=operation,
            error=str(e),
        )


class JsonSnapshotStore:
    """单个集合的持久化快照

    只允许持有写队列的一方调用 write；读可以随时进行，
    原子替换保证读方不会看到写了一半的文件。
    """

    def __init__(self, collection: Collection, path: str | Path) -> None:
        self._collection = collection
        self._path = Path(path)

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def path(self) -> Path:
        return self._path

    @property
    def tmp_path(self) -> Path:
        return self._path.with_name(self._path.name + TMP_SUFFIX)

    @property
    def backup_path(self) -> Path:
        return self._path.with_name(self._path.name + BACKUP_SUFFIX)

    async def read(self) -> dict[str, Any]:
        """读取当前快照

        文件不存在时原子创建空默认文档并返回；
        内容损坏时记录日志并返回空默认文档，不修复磁盘文件。
        """
        return await asyncio.to_thread(self._read_sync)

    async def read_records(self) -> list[dict[str, Any]]:
        """读取当前快照中的记录列表"""
        document = await self.read()
        return document[self._collection.root_key]

    async def write(self, document: dict[str, Any]) -> bool:
        """原子写入整集合快照

        Args:
            document: 完整集合文档，如 {"tasks": [...]}

        Returns:
            True 写入成功；False 写入失败（live 文件保持原样）

        注意: 此方法不抛出异常，所有错误在内部记录并转换为 False。
        """
        try:
            return await asyncio.to_thread(self._write_sync, document)
        except Exception as e:
            log.error(
                "snapshot_write_unexpected_error",
                collection=self._collection.value,
                path=str(self._path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def write_records(self, records: list[dict[str, Any]]) -> bool:
        """以记录列表写入，自动包上根键"""
        return await self.write({self._collection.root_key: records})

    async def recover(self) -> bool:
        """运维恢复：live 缺失或损坏且存在可解析的 .bak 时用其恢复

        read() 不会自动调用此方法。

        Returns:
            是否执行了恢复
        """
        return await asyncio.to_thread(self._recover_sync)

    async def check(self) -> str:
        """健康检查：ok / missing / corrupted（不创建、不修改文件）"""
        return await asyncio.to_thread(self._check_sync)

    # ---- 同步实现（在工作线程中执行） ----

    def _read_sync(self) -> dict[str, Any]:
        if not self._path.exists():
            default = self._collection.empty_document()
            if not self._write_sync(default):
                log.error(
                    "snapshot_default_create_failed",
                    collection=self._collection.value,
                    path=str(self._path),
                )
            return default

        try:
            return _parse_document(
                self._path.read_text(encoding="utf-8"), self._collection
            )
        except (OSError, ValueError) as e:
            # 损坏数据按缺失处理，但不覆盖磁盘上的原文件
            log.error(
                "snapshot_corrupted",
                collection=self._collection.value,
                path=str(self._path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._collection.empty_document()

    def _write_sync(self, document: dict[str, Any]) -> bool:
        tmp_path = self.tmp_path
        backup_path = self.backup_path
        backup_made = False

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._path.exists():
                shutil.copyfile(self._path, backup_path)
                backup_made = True

            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())

            _parse_document(tmp_path.read_text(encoding="utf-8"), self._collection)

            os.replace(tmp_path, self._path)
        except Exception as e:
            log.error(
                "snapshot_write_failed",
                collection=self._collection.value,
                path=str(self._path),
                error=str(e),
                error_type=type(e).__name__,
            )
            if backup_made:
                self._restore_backup()
            _unlink_quietly(tmp_path, "write_cleanup")
            return False

        _unlink_quietly(backup_path, "write_commit")
        log.debug(
            "snapshot_written",
            collection=self._collection.value,
            records=len(document.get(self._collection.root_key, [])),
        )
        return True

    def _restore_backup(self) -> None:
        backup_path = self.backup_path
        if not backup_path.exists():
            return
        try:
            shutil.copyfile(backup_path, self._path)
            backup_path.unlink()
        except OSError as e:
            log.error(
                "snapshot_restore_failed",
                collection=self._collection.value,
                path=str(self._path),
                error=str(e),
            )

    def _check_sync(self) -> str:
        if not self._path.exists():
            return "missing"
        try:
            _parse_document(self._path.read_text(encoding="utf-8"), self._collection)
        except (OSError, ValueError):
            return "corrupted"
        return "ok"

    def _recover_sync(self) -> bool:
        if self._check_sync() == "ok" or not self.backup_path.exists():
            return False
        try:
            _parse_document(
                self.backup_path.read_text(encoding="utf-8"), self._collection
            )
        except (OSError, ValueError) as e:
            log.error(
                "snapshot_backup_unusable",
                collection=self._collection.value,
                path=str(self.backup_path),
                error=str(e),
            )
            return False

        os.replace(self.backup_path, self._path)
        log.info(
            "snapshot_recovered_from_backup",
            collection=self._collection.value,
            path=str(self._path),
        )
        return True
