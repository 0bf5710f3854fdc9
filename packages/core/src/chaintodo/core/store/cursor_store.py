"""同步游标存储

记录每个合约已完整对账的最后区块，重启后从该位置继续扫描。
"""

import asyncio
from datetime import UTC, datetime

import aiosqlite

from .transaction import atomic


class SqliteCursorStore:
    """CursorStore 的 SQLite 实现，自带提交"""

    def __init__(self, conn: aiosqlite.Connection, tx_lock: asyncio.Lock) -> None:
        self._conn = conn
        self._tx_lock = tx_lock

    async def load_cursor(self, contract_address: str) -> int | None:
        """读取最后已处理区块，不存在时返回 None"""
        cursor = await self._conn.execute(
            "SELECT last_block FROM sync_cursors WHERE contract_address = ?",
            (contract_address.lower(),),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def save_cursor(self, contract_address: str, last_block: int) -> None:
        """写入最后已处理区块（存在则覆盖）"""
        async with atomic(self._conn, self._tx_lock):
            await self._conn.execute(
                """
                INSERT INTO sync_cursors (contract_address, last_block, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(contract_address)
                DO UPDATE SET last_block = excluded.last_block,
                              updated_at = excluded.updated_at
                """,
                (
                    contract_address.lower(),
                    last_block,
                    datetime.now(UTC).isoformat(),
                ),
            )

    async def delete_cursor(self, contract_address: str) -> None:
        async with atomic(self._conn, self._tx_lock):
            await self._conn.execute(
                "DELETE FROM sync_cursors WHERE contract_address = ?",
                (contract_address.lower(),),
            )
