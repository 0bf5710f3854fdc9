"""CLI 入口模块 -- python -m chaintodo.core <command>

支持的命令：
  show-cursor <contract>            查看合约的同步游标
  reset-cursor <contract> <block>   重置同步游标（下次启动从 block+1 重新扫描）
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """用法: python -m chaintodo.core <command>
命令:
  show-cursor <contract>            查看合约的同步游标
  reset-cursor <contract> <block>   重置同步游标"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 3:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    contract = sys.argv[2]

    if command == "show-cursor":
        asyncio.run(show_cursor(contract))
    elif command == "reset-cursor":
        if len(sys.argv) < 4 or not sys.argv[3].lstrip("-").isdigit():
            print("reset-cursor 需要整数区块号")
            sys.exit(1)
        asyncio.run(reset_cursor(contract, int(sys.argv[3])))
    else:
        print(f"未知命令: {command}")
        print("可用命令: show-cursor, reset-cursor")
        sys.exit(1)


async def show_cursor(contract: str) -> int | None:
    """打印并返回合约的同步游标"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        last_block = await store_group.cursor_store.load_cursor(contract)
    finally:
        await store_group.conn.close()

    if last_block is None:
        print(f"{contract.lower()}: 尚无同步记录")
    else:
        print(f"{contract.lower()}: last_block={last_block}")
    return last_block


async def reset_cursor(contract: str, block: int) -> None:
    """重置同步游标；block < 0 表示删除游标（回到配置的起始区块）"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        if block < 0:
            await store_group.cursor_store.delete_cursor(contract)
            print(f"{contract.lower()}: 游标已删除")
        else:
            await store_group.cursor_store.save_cursor(contract, block)
            print(f"{contract.lower()}: last_block={block}")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
