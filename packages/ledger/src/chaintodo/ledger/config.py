"""LedgerConfig -- 链上事件源配置加载

从环境变量加载配置。CHAINTODO_CONTRACT_ADDRESS 为空时事件源不启动。
"""

import os

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

log = structlog.get_logger()


class LedgerConfig(BaseModel):
    """Ledger 包配置 -- 从环境变量加载

    环境变量:
        CHAINTODO_RPC_URL: JSON-RPC 节点地址
        CHAINTODO_CONTRACT_ADDRESS: 合约地址（为空则禁用事件源）
        CHAINTODO_POLL_INTERVAL_S: 轮询间隔（秒，默认 5）
        CHAINTODO_START_BLOCK: 首次启动的起始区块（默认从链头开始）
        CHAINTODO_CONFIRMATIONS: 确认区块数（默认 0）
        CHAINTODO_MAX_BLOCK_RANGE: 单次 eth_getLogs 最大区块跨度（默认 2000）
        CHAINTODO_RESCAN_BLOCKS: 传输错误恢复后回退重扫的区块数（默认 20）
        CHAINTODO_RPC_TIMEOUT_S: RPC 请求超时（秒，默认 30）
    """

    rpc_url: str = Field(
        default="https://data-seed-prebsc-1-s1.binance.org:8545/",
        description="JSON-RPC 节点地址",
    )
    contract_address: str = Field(default="", description="合约地址")
    poll_interval_s: float = Field(default=5.0, gt=0, description="轮询间隔（秒）")
    start_block: int | None = Field(default=None, ge=0, description="首次启动的起始区块")
    confirmations: int = Field(default=0, ge=0, description="确认区块数")
    max_block_range: int = Field(default=2000, ge=1, description="单次扫描最大区块跨度")
    rescan_blocks: int = Field(default=20, ge=0, description="恢复后回退重扫的区块数")
    max_backoff_s: float = Field(default=60.0, gt=0, description="退避上限（秒）")
    timeout_s: int = Field(default=30, ge=1, description="RPC 请求超时（秒）")

    @field_validator("contract_address")
    @classmethod
    def lower_address(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def enabled(self) -> bool:
        return bool(self.contract_address)


_INT_ENV = {
    "CHAINTODO_START_BLOCK": "start_block",
    "CHAINTODO_CONFIRMATIONS": "confirmations",
    "CHAINTODO_MAX_BLOCK_RANGE": "max_block_range",
    "CHAINTODO_RESCAN_BLOCKS": "rescan_blocks",
    "CHAINTODO_RPC_TIMEOUT_S": "timeout_s",
}


def load_ledger_config() -> LedgerConfig:
    """从环境变量加载 Ledger 配置

    数值类环境变量无法解析或越界时记录警告并使用默认值，不阻塞启动。

    Returns:
        LedgerConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("CHAINTODO_RPC_URL"):
        kwargs["rpc_url"] = val

    if val := os.environ.get("CHAINTODO_CONTRACT_ADDRESS"):
        kwargs["contract_address"] = val

    if val := os.environ.get("CHAINTODO_POLL_INTERVAL_S"):
        try:
            kwargs["poll_interval_s"] = float(val)
        except ValueError:
            log.warning(
                "invalid_ledger_config",
                env_var="CHAINTODO_POLL_INTERVAL_S",
                value=val,
            )

    for env_var, field in _INT_ENV.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = int(val)
            except ValueError:
                log.warning("invalid_ledger_config", env_var=env_var, value=val)

    try:
        return LedgerConfig(**kwargs)
    except ValidationError as e:
        # 越界值逐字段丢弃，回落默认值
        for field in {err["loc"][0] for err in e.errors() if err["loc"]}:
            log.warning("invalid_ledger_config", field=field, value=kwargs.pop(field, None))
        return LedgerConfig(**kwargs)
