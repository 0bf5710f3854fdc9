"""UserStore SQLite 实现

username / email / wallet_address 的唯一性由数据库索引保证，
冲突时向调用方抛出 aiosqlite.IntegrityError。
"""

from datetime import datetime

import aiosqlite

from ..models.user import User

_COLUMNS = (
    "user_id, username, email, password_hash, wallet_address, created_at, updated_at"
)


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: User) -> None:
        """创建用户记录"""
        await self._conn.execute(
            f"INSERT INTO users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                user.user_id,
                user.username,
                user.email,
                user.password_hash,
                user.wallet_address,
                user.created_at.isoformat(),
                user.updated_at.isoformat(),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        return await self._fetch_one("user_id = ?", user_id)

    async def get_by_email(self, email: str) -> User | None:
        return await self._fetch_one("email = ?", email.lower())

    async def get_by_username(self, username: str) -> User | None:
        return await self._fetch_one("username = ?", username)

    async def get_by_wallet(self, wallet_address: str) -> User | None:
        return await self._fetch_one("wallet_address = ?", wallet_address.lower())

    async def set_wallet(
        self,
        user_id: str,
        wallet_address: str | None,
        updated_at: str,
    ) -> int:
        """设置或清除钱包地址，返回受影响的行数"""
        cursor = await self._conn.execute(
            "UPDATE users SET wallet_address = ?, updated_at = ? WHERE user_id = ?",
            (
                wallet_address.lower() if wallet_address else None,
                updated_at,
                user_id,
            ),
        )
        return cursor.rowcount

    async def _fetch_one(self, where: str, value: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM users WHERE {where}",
            (value,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        """将数据库行转换为 User 模型"""
        return User(
            user_id=row[0],
            username=row[1],
            email=row[2],
            password_hash=row[3],
            wallet_address=row[4],
            created_at=datetime.fromisoformat(row[5]),
            updated_at=datetime.fromisoformat(row[6]),
        )
