"""structlog 配置

CHAINTODO_LOG_FORMAT=json 输出一行一个 JSON 对象（生产），默认 dev 为彩色控制台输出。
uvicorn / web3 / aiosqlite 的标准库日志经 ProcessorFormatter 走同一条渲染链。
Logfire APM 由 LOGFIRE_SEND_TO_LOGFIRE 控制，需安装 apm extra。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 这些库在 DEBUG 下会逐条打印 RPC 请求 / SQL 语句
_NOISY_LOGGERS = ("web3", "aiosqlite", "urllib3")


def _parse_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _build_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging() -> None:
    """按 CHAINTODO_LOG_FORMAT / CHAINTODO_LOG_LEVEL 配置 structlog 与 root logger"""
    log_format = os.environ.get("CHAINTODO_LOG_FORMAT", "dev").lower()
    level = _parse_level(os.environ.get("CHAINTODO_LOG_LEVEL", "INFO"))

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        # JSON 模式下异常栈作为字段输出；console 渲染器自带栈格式化
        pre_chain.append(structlog.processors.format_exc_info)
    pre_chain.append(structlog.processors.UnicodeDecoder())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_build_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def setup_logfire(app: FastAPI) -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时启用 Logfire 并接入 FastAPI；失败只告警"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="chaintodo-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire 初始化失败，降级为纯本地日志",
        )
