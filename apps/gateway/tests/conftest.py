"""apps/gateway 测试配置 -- httpx AsyncClient + 临时数据库 + 认证辅助"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest_asyncio
from chaintodo.core.store import create_store_group
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, monkeypatch):
    """创建测试用 FastAPI app（绕过 lifespan，手动挂载共享实例）"""
    monkeypatch.setenv("CHAINTODO_DB_PATH", str(tmp_path / "sqlite" / "test.db"))
    monkeypatch.setenv("CHAINTODO_JWT_SECRET", "test-secret-key-with-enough-length")
    monkeypatch.setenv("CHAINTODO_BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.delenv("CHAINTODO_CONTRACT_ADDRESS", raising=False)

    from chaintodo.gateway.main import create_app, init_app_state

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    init_app_state(app, store_group, app.state.gateway_config)

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def signup(client) -> Callable[..., Awaitable[dict[str, str]]]:
    """注册并登录，返回带 x-auth-token 的请求头"""

    async def _signup(username: str = "alice", password: str = "secret123") -> dict[str, str]:
        email = f"{username}@example.com"
        resp = await client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": email,
                "password": password,
                "confirm_password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        resp = await client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert resp.status_code == 200, resp.text
        return {"x-auth-token": resp.json()["token"]}

    return _signup
