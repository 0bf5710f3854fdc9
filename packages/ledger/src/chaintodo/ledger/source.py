"""LedgerEventSource -- 轮询 eth_getLogs 并投递解码后的事件

生命周期显式：start(handler) / stop() 均幂等，重复 start 只替换处理函数，
不会重复订阅。投递语义为至少一次：
- 每批事件的处理任务全部完成后才推进同步游标，重启后从游标继续
- 传输错误后下一次扫描回退 rescan_blocks 个区块，重复投递由对账层幂等吸收
"""

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from chaintodo.core.models import LedgerEvent
from chaintodo.core.store.protocols import CursorStore

from .client import LedgerClient
from .config import LedgerConfig
from .decoder import EventDecoder
from .exceptions import LedgerDecodeError, LedgerError

log = structlog.get_logger()

EventHandler = Callable[[LedgerEvent], Awaitable[Any] | None]


class LedgerEventSource:
    """链上事件源"""

    def __init__(
        self,
        client: LedgerClient,
        decoder: EventDecoder,
        config: LedgerConfig,
        cursor_store: CursorStore | None = None,
    ) -> None:
        self._client = client
        self._decoder = decoder
        self._config = config
        self._cursor_store = cursor_store
        self._handler: EventHandler | None = None
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()
        self._next_block: int | None = None
        self._rewound = False
        self._failures = 0
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def next_block(self) -> int | None:
        """下一次扫描的起始区块；尚未初始化时为 None"""
        return self._next_block

    def start(self, handler: EventHandler) -> None:
        """启动轮询循环；已在运行时只替换处理函数"""
        self._handler = handler
        if self.running:
            log.info("ledger_source_handler_replaced")
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="ledger-event-source")
        log.info(
            "ledger_source_started",
            contract=self._decoder.contract_address,
            rpc_url=self._client.rpc_url,
        )

    async def stop(self) -> None:
        """停止轮询循环；已投递的对账任务不受影响"""
        task, self._task = self._task, None
        if task is None:
            return
        self._stopping.set()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log.info("ledger_source_stopped", next_block=self._next_block)

    async def poll_once(self, handler: EventHandler | None = None) -> int:
        """执行一次扫描

        Returns:
            投递给处理函数的事件数

        Raises:
            LedgerError: 节点调用失败
        """
        handler = handler or self._handler
        if handler is None:
            raise RuntimeError("no event handler registered")

        head = await self._client.block_number()
        safe_head = head - self._config.confirmations
        if self._next_block is None:
            self._next_block = await self._initial_block(safe_head)
        from_block = self._next_block
        if from_block > safe_head:
            return 0
        to_block = min(safe_head, from_block + self._config.max_block_range - 1)

        raw_logs = await self._client.get_logs(
            self._decoder.contract_address,
            self._decoder.topics,
            from_block,
            to_block,
        )

        delivered = 0
        pending: list[asyncio.Future] = []
        for raw_log in raw_logs:
            try:
                event = self._decoder.decode(raw_log)
            except LedgerDecodeError as e:
                log.warning(
                    "ledger_decode_failed",
                    event_name=e.event_name,
                    error=str(e),
                    block_number=raw_log.get("blockNumber"),
                )
                continue
            if event is None:
                continue
            result = handler(event)
            delivered += 1
            if inspect.isawaitable(result):
                pending.append(asyncio.ensure_future(result))

        # asyncio.wait 不会在取消时连带取消处理任务
        if pending:
            await asyncio.wait(pending)

        await self._checkpoint(to_block)
        self._next_block = to_block + 1
        if delivered:
            log.info(
                "ledger_batch_delivered",
                from_block=from_block,
                to_block=to_block,
                events=delivered,
            )
        return delivered

    async def _initial_block(self, safe_head: int) -> int:
        if self._cursor_store is not None:
            last = await self._cursor_store.load_cursor(self._decoder.contract_address)
            if last is not None:
                log.info("ledger_cursor_resumed", last_block=last)
                return last + 1
        if self._config.start_block is not None:
            return self._config.start_block
        return max(safe_head, 0)

    async def _checkpoint(self, last_block: int) -> None:
        if self._cursor_store is None:
            return
        await self._cursor_store.save_cursor(self._decoder.contract_address, last_block)

    def _rewind(self) -> None:
        """传输错误后回退扫描起点（连续失败只回退一次）"""
        if self._rewound or self._next_block is None:
            return
        rewound_to = max(self._next_block - self._config.rescan_blocks, 0)
        log.info("ledger_rescan_scheduled", from_block=rewound_to, previous=self._next_block)
        self._next_block = rewound_to
        self._rewound = True

    def _backoff_delay(self) -> float:
        delay = self._config.poll_interval_s * (2 ** min(self._failures, 16))
        return min(delay, self._config.max_backoff_s)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except LedgerError as e:
                self._failures += 1
                self.last_error = str(e)
                self._rewind()
                delay = self._backoff_delay()
                log.warning(
                    "ledger_poll_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    failures=self._failures,
                    retry_in_s=delay,
                )
            except Exception:
                self._failures += 1
                self.last_error = "unexpected error"
                delay = self._backoff_delay()
                log.exception("ledger_poll_unexpected_error", retry_in_s=delay)
            else:
                if self._failures:
                    log.info("ledger_poll_recovered", failures=self._failures)
                self._failures = 0
                self._rewound = False
                self.last_error = None
                delay = self._config.poll_interval_s

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
