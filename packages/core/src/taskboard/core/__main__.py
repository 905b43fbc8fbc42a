"""CLI 入口模块 -- python -m taskboard.core <command>

支持的命令：
  check    检查 tasks / users 快照文件是否可解析
  recover  live 文件缺失或损坏时，从残留的 .bak 恢复
"""

import asyncio
import sys

from .store import create_store_group


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m taskboard.core <command>")
        print("命令:")
        print("  check    检查快照文件")
        print("  recover  从 .bak 恢复损坏的快照文件")
        sys.exit(1)

    command = sys.argv[1]

    if command == "check":
        sys.exit(asyncio.run(check_snapshots()))
    elif command == "recover":
        sys.exit(asyncio.run(recover_snapshots()))
    else:
        print(f"未知命令: {command}")
        print("可用命令: check, recover")
        sys.exit(1)


async def check_snapshots() -> int:
    """逐个集合报告快照状态，有损坏时返回非零退出码（缺失不算损坏）"""
    store_group = create_store_group()
    exit_code = 0

    for store in store_group.all():
        status = await store.check()
        line = f"{store.collection.value}: {status} ({store.path})"
        if status == "ok":
            records = await store.read_records()
            line += f" -- {len(records)} 条记录"
        elif status == "corrupted":
            exit_code = 1
        if store.backup_path.exists():
            line += f" [残留备份 {store.backup_path.name}]"
        print(line)

    return exit_code


async def recover_snapshots() -> int:
    """执行 .bak 恢复"""
    store_group = create_store_group()

    for store in store_group.all():
        if await store.recover():
            print(f"{store.collection.value}: 已从 {store.backup_path.name} 恢复")
        else:
            print(f"{store.collection.value}: {await store.check()}，无需恢复")

    return 0


if __name__ == "__main__":
    main()
