"""LedgerClient -- JSON-RPC 节点调用封装

通过 web3.AsyncWeb3 访问节点，只暴露事件源需要的三个操作：
区块高度、按过滤条件拉取日志、健康检查。
"""

from collections.abc import Sequence
from typing import Any

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from .exceptions import LedgerError, LedgerUnreachableError

log = structlog.get_logger()

# 连接类异常类型集合（触发 LedgerUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
)


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误（节点不可达）"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    # aiohttp 的连接异常不继承 OSError
    error_name = type(e).__name__
    return error_name in (
        "ClientConnectorError",
        "ClientConnectionError",
        "ServerDisconnectedError",
        "ServerTimeoutError",
    )


class LedgerClient:
    """JSON-RPC 节点客户端"""

    def __init__(
        self,
        rpc_url: str,
        timeout_s: int = 30,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        """初始化节点客户端

        Args:
            rpc_url: JSON-RPC 节点地址
            timeout_s: 请求超时（秒）
            w3: 预先构造的 AsyncWeb3 实例（测试注入用）
        """
        self._rpc_url = rpc_url
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout_s})
        )

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def block_number(self) -> int:
        """查询最新区块高度

        Raises:
            LedgerUnreachableError: 节点不可达
            LedgerError: 节点返回错误
        """
        try:
            return int(await self._w3.eth.block_number)
        except Exception as e:
            raise self._wrap_error("eth_blockNumber", e) from e

    async def get_logs(
        self,
        address: str,
        topics: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[Any]:
        """按合约地址和 topic0 集合拉取 [from_block, to_block] 区间的日志

        Raises:
            LedgerUnreachableError: 节点不可达
            LedgerError: 节点返回错误
        """
        filter_params = {
            "address": AsyncWeb3.to_checksum_address(address),
            "topics": [list(topics)],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        try:
            logs = await self._w3.eth.get_logs(filter_params)
        except Exception as e:
            raise self._wrap_error("eth_getLogs", e) from e

        log.debug(
            "ledger_logs_fetched",
            from_block=from_block,
            to_block=to_block,
            count=len(logs),
        )
        return list(logs)

    async def health_check(self) -> bool:
        """检查节点是否可连通

        Returns:
            True 如果节点响应正常
        """
        try:
            return bool(await self._w3.is_connected())
        except Exception as e:
            log.warning("ledger_health_check_failed", error=str(e))
            return False

    def _wrap_error(self, method: str, e: Exception) -> LedgerError:
        if _is_connection_error(e):
            return LedgerUnreachableError(self._rpc_url, e)
        return LedgerError(f"{method} 调用失败: {type(e).__name__}: {e}")
