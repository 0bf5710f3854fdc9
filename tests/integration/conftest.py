"""集成测试共享 fixture -- 完整 app + 可编程的假节点"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from chaintodo.core.store import create_store_group
from chaintodo.ledger import LedgerUnreachableError
from chaintodo.ledger.abi import topic_for
from eth_abi import encode
from httpx import ASGITransport, AsyncClient

CONTRACT = "0x" + "5f" * 20


class FakeChain:
    """内存中的链：按区块保存原始日志，get_logs 按区块范围过滤"""

    rpc_url = "http://fake-node"

    def __init__(self) -> None:
        self.head = 0
        self.logs: list[dict[str, Any]] = []
        self.fail_next = 0

    def emit(self, name: str, types: list[str], values: list[Any], **indexed: str) -> None:
        """在新区块中产生一条事件日志"""
        self.head += 1
        topics = [bytes.fromhex(topic_for(name)[2:])]
        topics += [encode(["address"], [addr]) for addr in indexed.values()]
        self.logs.append(
            {
                "address": CONTRACT,
                "topics": topics,
                "data": encode(types, values),
                "blockNumber": self.head,
                "transactionHash": self.head.to_bytes(32, "big"),
                "logIndex": 0,
            }
        )

    async def block_number(self) -> int:
        if self.fail_next:
            self.fail_next -= 1
            raise LedgerUnreachableError(self.rpc_url, ConnectionError("connection refused"))
        return self.head

    async def get_logs(self, address, topics, from_block, to_block) -> list[dict[str, Any]]:
        return [log for log in self.logs if from_block <= log["blockNumber"] <= to_block]

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def contract() -> str:
    return CONTRACT


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch):
    """集成测试用 FastAPI app（绕过 lifespan）"""
    db_path = str(tmp_path / "sqlite" / "integration.db")
    monkeypatch.setenv("CHAINTODO_DB_PATH", db_path)
    monkeypatch.setenv("CHAINTODO_JWT_SECRET", "integration-secret-0123456789abcdef")
    monkeypatch.setenv("CHAINTODO_BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from chaintodo.gateway.main import create_app, init_app_state

    app = create_app()
    store_group = await create_store_group(db_path)
    init_app_state(app, store_group, app.state.gateway_config)

    yield app

    if app.state.ledger_source is not None:
        await app.state.ledger_source.stop()
    app.state.reconciler.close()
    await app.state.reconciler.drain(timeout=5.0)
    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def linked_user(client: AsyncClient) -> Callable[..., Any]:
    """注册、登录并关联钱包，返回请求头"""

    async def _linked(username: str, wallet: str) -> dict[str, str]:
        email = f"{username}@example.com"
        await client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": email,
                "password": "secret123",
                "confirm_password": "secret123",
            },
        )
        resp = await client.post(
            "/api/auth/login", json={"email": email, "password": "secret123"}
        )
        headers = {"x-auth-token": resp.json()["token"]}
        resp = await client.post(
            "/api/user/link-wallet", json={"wallet_address": wallet}, headers=headers
        )
        assert resp.status_code == 200, resp.text
        return headers

    return _linked
