"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、服务与当前用户

共享实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from chaintodo.core.locks import KeyedLocks
from chaintodo.core.models import User
from chaintodo.core.store import StoreGroup
from fastapi import Depends, Header, Request

from .config import GatewayConfig
from .errors import ApiError
from .services.sse_hub import SSEHub
from .services.task_service import TaskService
from .services.user_service import UserService, UserServiceError


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_sse_hub(request: Request) -> SSEHub:
    """从 app.state 获取 SSEHub 实例"""
    return request.app.state.sse_hub


def get_locks(request: Request) -> KeyedLocks:
    """与 Reconciler 共享的键级锁"""
    return request.app.state.locks


def get_gateway_config(request: Request) -> GatewayConfig:
    return request.app.state.gateway_config


def get_user_service(
    store_group: StoreGroup = Depends(get_store_group),
    config: GatewayConfig = Depends(get_gateway_config),
) -> UserService:
    return UserService(store_group, config)


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    locks: KeyedLocks = Depends(get_locks),
    sse_hub: SSEHub = Depends(get_sse_hub),
) -> TaskService:
    return TaskService(store_group, locks, notifier=sse_hub)


def _extract_token(x_auth_token: str | None, authorization: str | None) -> str | None:
    if x_auth_token:
        return x_auth_token.strip()
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return None


async def get_current_user(
    x_auth_token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    service: UserService = Depends(get_user_service),
) -> User:
    """从 x-auth-token 或 Authorization: Bearer 解析当前用户"""
    token = _extract_token(x_auth_token, authorization)
    if token is None:
        raise ApiError(401, "UNAUTHORIZED", "missing auth token")
    try:
        return await service.resolve_token(token)
    except UserServiceError as e:
        raise ApiError(e.status_code, e.code, str(e)) from e
