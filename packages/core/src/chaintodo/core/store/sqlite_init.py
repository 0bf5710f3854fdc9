"""SQLite schema

tasks（链上镜像 + 链下元数据）、users、sync_cursors 三张表。
所有语句幂等，每次启动都会执行。
"""

import aiosqlite

# WAL 允许 API 读取与对账写入并发；busy_timeout 覆盖 CLI 与服务同时打开数据库的情况
_PRAGMAS = (
    "PRAGMA journal_mode = WAL;",
    "PRAGMA busy_timeout = 5000;",
)

_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    owner       TEXT NOT NULL,
    task_id     INTEGER NOT NULL,
    content     TEXT NOT NULL DEFAULT '',
    completed   INTEGER NOT NULL DEFAULT 0,
    status      TEXT NOT NULL DEFAULT 'Pending',
    priority    TEXT NOT NULL DEFAULT 'Medium',
    tags        TEXT NOT NULL DEFAULT '[]',
    category    TEXT NOT NULL DEFAULT '',
    due_date    TEXT,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    # (owner, task_id) 全局唯一
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_owner_task ON tasks(owner, task_id);",
    # 仅按 task_id 查找（不携带 owner 的旧版事件）
    "CREATE INDEX IF NOT EXISTS idx_tasks_task_id ON tasks(task_id);",
]

_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id         TEXT PRIMARY KEY,
    username        TEXT NOT NULL,
    email           TEXT NOT NULL,
    password_hash   TEXT NOT NULL,
    wallet_address  TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
"""

_USERS_INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username ON users(username);",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email);",
    # 钱包唯一约束（仅对非 NULL 值生效）
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_wallet "
        "ON users(wallet_address) WHERE wallet_address IS NOT NULL;"
    ),
]

_SYNC_CURSORS_DDL = """
CREATE TABLE IF NOT EXISTS sync_cursors (
    contract_address  TEXT PRIMARY KEY,
    last_block        INTEGER NOT NULL,
    updated_at        TEXT NOT NULL
);
"""


async def init_db(conn: aiosqlite.Connection) -> None:
    """设置 PRAGMA 并创建表与索引"""
    for pragma in _PRAGMAS:
        await conn.execute(pragma)
    statements = (_TASKS_DDL, _USERS_DDL, _SYNC_CURSORS_DDL, *_TASKS_INDEXES, *_USERS_INDEXES)
    for statement in statements:
        await conn.execute(statement)
    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
