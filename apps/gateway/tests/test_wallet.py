"""钱包关联测试

测试内容：
1. 地址格式校验
2. 关联一次；同一地址重复关联幂等
3. 关联其他地址需先重置
4. 同一地址不能被两个用户关联
"""

from httpx import AsyncClient

WALLET = "0x" + "c3" * 20
OTHER_WALLET = "0x" + "d4" * 20


class TestLinkWallet:
    async def test_link_and_profile(self, client: AsyncClient, signup):
        headers = await signup()
        resp = await client.post(
            "/api/user/link-wallet",
            json={"wallet_address": WALLET.upper().replace("0X", "0x")},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["wallet_address"] == WALLET

        me = await client.get("/api/user/me", headers=headers)
        assert me.json()["wallet_address"] == WALLET

    async def test_relink_same_is_idempotent(self, client: AsyncClient, signup):
        headers = await signup()
        for _ in range(2):
            resp = await client.post(
                "/api/user/link-wallet", json={"wallet_address": WALLET}, headers=headers
            )
            assert resp.status_code == 200

    async def test_different_wallet_requires_reset(self, client: AsyncClient, signup):
        headers = await signup()
        await client.post(
            "/api/user/link-wallet", json={"wallet_address": WALLET}, headers=headers
        )

        resp = await client.post(
            "/api/user/link-wallet", json={"wallet_address": OTHER_WALLET}, headers=headers
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "WALLET_CONFLICT"

        resp = await client.delete("/api/user/wallet", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["wallet_address"] is None

        resp = await client.post(
            "/api/user/link-wallet", json={"wallet_address": OTHER_WALLET}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["wallet_address"] == OTHER_WALLET

    async def test_wallet_owned_by_another_user(self, client: AsyncClient, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await client.post(
            "/api/user/link-wallet", json={"wallet_address": WALLET}, headers=alice
        )

        resp = await client.post(
            "/api/user/link-wallet", json={"wallet_address": WALLET}, headers=bob
        )
        assert resp.status_code == 409

    async def test_invalid_address(self, client: AsyncClient, signup):
        headers = await signup()
        for bad in ["not-an-address", "0x1234", "0x" + "zz" * 20]:
            resp = await client.post(
                "/api/user/link-wallet", json={"wallet_address": bad}, headers=headers
            )
            assert resp.status_code == 400, bad
            assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_requires_auth(self, client: AsyncClient):
        resp = await client.post("/api/user/link-wallet", json={"wallet_address": WALLET})
        assert resp.status_code == 401

    async def test_reset_without_wallet_is_noop(self, client: AsyncClient, signup):
        headers = await signup()
        resp = await client.delete("/api/user/wallet", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["wallet_address"] is None
