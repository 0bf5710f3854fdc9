"""FastAPI 应用主文件

app 创建 + lifespan 管理：
- 启动：DB 初始化 -> SSEHub -> Reconciler -> 链上事件源（配置了合约地址时）
- 关闭：事件源 stop() -> Reconciler close() + drain() -> 关闭数据库连接
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from chaintodo.core.config import DRAIN_TIMEOUT_S, get_db_path
from chaintodo.core.locks import KeyedLocks
from chaintodo.core.reconciler import Reconciler
from chaintodo.core.store import StoreGroup, create_store_group
from chaintodo.ledger import (
    EventDecoder,
    LedgerClient,
    LedgerConfig,
    LedgerEventSource,
    load_ledger_config,
)
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import GatewayConfig, load_gateway_config
from .errors import ApiError, api_error_handler, validation_error_handler
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import auth, health, stream, tasks, user
from .services.sse_hub import SSEHub

log = structlog.get_logger()


def init_app_state(
    app: FastAPI,
    store_group: StoreGroup,
    gateway_config: GatewayConfig,
) -> Reconciler:
    """挂载共享实例到 app.state（lifespan 与测试共用）"""
    sse_hub = SSEHub()
    locks = KeyedLocks()
    reconciler = Reconciler(store_group, notifier=sse_hub, locks=locks)

    app.state.store_group = store_group
    app.state.gateway_config = gateway_config
    app.state.sse_hub = sse_hub
    app.state.locks = locks
    app.state.reconciler = reconciler
    app.state.ledger_client = None
    app.state.ledger_source = None
    return reconciler


def start_ledger_source(
    app: FastAPI,
    reconciler: Reconciler,
    ledger_config: LedgerConfig,
    client: LedgerClient | None = None,
) -> LedgerEventSource:
    """构造并启动事件源，每个解码事件交给 Reconciler.submit"""
    client = client or LedgerClient(
        ledger_config.rpc_url, timeout_s=ledger_config.timeout_s
    )
    source = LedgerEventSource(
        client,
        EventDecoder(ledger_config.contract_address),
        ledger_config,
        cursor_store=app.state.store_group.cursor_store,
    )
    source.start(reconciler.submit)
    app.state.ledger_client = client
    app.state.ledger_source = source
    return source


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    store_group = await create_store_group(get_db_path())
    reconciler = init_app_state(app, store_group, app.state.gateway_config)

    ledger_config = load_ledger_config()
    if ledger_config.enabled:
        start_ledger_source(app, reconciler, ledger_config)
        log.info(
            "ledger_source_enabled",
            contract=ledger_config.contract_address,
            rpc_url=ledger_config.rpc_url,
        )
    else:
        log.info("ledger_source_disabled", reason="CHAINTODO_CONTRACT_ADDRESS not set")

    yield

    # 关闭顺序：先停止事件源，再排空在途对账，最后关闭连接
    if app.state.ledger_source is not None:
        await app.state.ledger_source.stop()
    reconciler.close()
    await reconciler.drain(timeout=DRAIN_TIMEOUT_S)
    await store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="ChainTodo Gateway",
        version="0.1.0",
        description="链上任务镜像 API",
        lifespan=lifespan,
    )

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    gateway_config = load_gateway_config()
    app.state.gateway_config = gateway_config

    # 注册中间件（顺序：先 Trace 后 Logging，CORS 最外层）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=gateway_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # 注册路由
    app.include_router(auth.router, tags=["auth"])
    app.include_router(user.router, tags=["user"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
