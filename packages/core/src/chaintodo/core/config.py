"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、SSE 心跳间隔、关闭时的排空超时等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("CHAINTODO_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "CHAINTODO_DB_PATH",
        str(_get_base_dir() / "sqlite" / "chaintodo.db"),
    )


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("CHAINTODO_SSE_HEARTBEAT_INTERVAL", "15")
)

# 关闭时等待在途对账完成的最长时间（秒）
DRAIN_TIMEOUT_S: float = float(os.environ.get("CHAINTODO_DRAIN_TIMEOUT_S", "10"))

# 链上整数字段允许的最大值（SQLite INTEGER 为 64 位有符号整数）
MAX_SAFE_INT: int = 2**63 - 1

# 实时通道唯一的消息类型
TASKS_UPDATED: str = "tasks_updated"
