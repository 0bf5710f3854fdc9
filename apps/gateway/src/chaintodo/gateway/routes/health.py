"""健康检查路由

GET /health: 存活探针，永远 200。
GET /ready: 就绪探针。core 只检查 SQLite 与磁盘；
            profile=ledger/full 额外探测 RPC 节点与事件源循环。
"""

import shutil
from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()

_LEDGER_PROFILES = ("ledger", "full")

Check = tuple[Any, bool]


async def _check_sqlite(request: Request) -> Check:
    try:
        cursor = await request.app.state.store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
    except Exception as e:
        return f"error: {e}", False
    return "ok", True


def _check_disk() -> Check:
    try:
        return shutil.disk_usage("/").free // (1024 * 1024), True
    except OSError:
        return 0, False


async def _check_ledger_client(request: Request) -> Check:
    client = getattr(request.app.state, "ledger_client", None)
    if client is None:
        return "disabled", True
    if await client.health_check():
        return "ok", True
    return "unreachable", False


def _check_ledger_source(request: Request) -> Check:
    source = getattr(request.app.state, "ledger_source", None)
    if source is None:
        return "disabled", True
    if not source.running:
        return "stopped", False
    # 轮询失败但循环仍在退避重试：降级但就绪
    return ("running" if source.last_error is None else "degraded"), True


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="core（默认）| ledger | full；后两者探测 RPC 节点与事件源",
    ),
):
    """Readiness 检查，任一检查失败返回 503"""
    profile = profile or "core"

    results: dict[str, Check] = {
        "sqlite": await _check_sqlite(request),
        "disk_space_mb": _check_disk(),
    }
    if profile in _LEDGER_PROFILES:
        results["ledger"] = await _check_ledger_client(request)
        results["ledger_source"] = _check_ledger_source(request)
    else:
        results["ledger"] = ("skipped", True)

    checks = {name: value for name, (value, _) in results.items()}
    healthy = all(ok for _, ok in results.values())
    if not healthy:
        log.warning("readiness_check_failed", profile=profile, checks=checks)

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "profile": profile,
            "checks": checks,
        },
    )
