"""Tests for avatar endpoints and the four flows over HTTP."""

import pytest
from httpx import AsyncClient

from armory.models.db import AvatarDB

OWNER = {"X-Principal": "owner"}
ALICE = {"X-Principal": "alice"}


@pytest.fixture
async def market(client: AsyncClient) -> dict[str, str]:
    """
    A shop selling Axes (1000, 2 in stock) and Swords (800, 1 in stock), and
    an avatar of alice's funded with 5000 gold.
    """
    treasury_id = (await client.post("/treasury", headers=OWNER)).json()["treasury_id"]
    shop = (await client.post("/shops", headers=OWNER)).json()
    cap = shop["capability_id"]
    url = f"/shops/{shop['shop_id']}"
    for kind, price, count in (("Axe", 1000, 2), ("Sword", 800, 1)):
        await client.post(
            f"{url}/kinds", json={"capability_id": cap, "kind": kind, "price": price}, headers=OWNER
        )
        await client.post(
            f"{url}/forge", json={"capability_id": cap, "kind": kind, "count": count}, headers=OWNER
        )

    await client.post(
        f"/treasury/{treasury_id}/mint",
        json={"amount": 5000, "recipient": "alice"},
        headers=OWNER,
    )
    coins = (await client.get("/principals/alice/assets", headers=ALICE)).json()["coins"]
    avatar = await client.post(
        "/avatars",
        json={"name": "Brunhild", "coin_ids": [c["coin_id"] for c in coins]},
        headers=ALICE,
    )
    assert avatar.status_code == 201

    return {
        "shop_id": shop["shop_id"],
        "capability_id": cap,
        "treasury_id": treasury_id,
        "avatar_id": avatar.json()["avatar_id"],
    }


async def stock(client: AsyncClient, shop_id: str) -> dict[str, int]:
    data = (await client.get(f"/shops/{shop_id}")).json()
    return {inv["kind"]: inv["stock"] for inv in data["inventories"]}


class TestAvatars:
    async def test_avatar_funded_by_coins(self, client: AsyncClient, market) -> None:
        """The coins are spent into the avatar's purse."""
        assets = (await client.get("/principals/alice/assets", headers=ALICE)).json()

        assert assets["coins"] == []
        assert assets["avatars"][0]["gold"] == 5000
        assert assets["avatars"][0]["avatar_id"] == market["avatar_id"]

    async def test_get_avatar(self, client: AsyncClient, market) -> None:
        response = await client.get(f"/avatars/{market['avatar_id']}", headers=ALICE)

        assert response.status_code == 200
        assert response.json()["name"] == "Brunhild"
        assert response.json()["weapon_id"] is None

    async def test_reading_does_not_write(
        self, client: AsyncClient, market, session_factory
    ) -> None:
        """A read leaves the avatar row untouched, so it never races a flow."""
        async with session_factory() as session:
            before = (await session.get(AvatarDB, market["avatar_id"])).version

        response = await client.get(f"/avatars/{market['avatar_id']}", headers=ALICE)

        assert response.status_code == 200
        async with session_factory() as session:
            assert (await session.get(AvatarDB, market["avatar_id"])).version == before

    async def test_other_principal_cannot_read(self, client: AsyncClient, market) -> None:
        response = await client.get(f"/avatars/{market['avatar_id']}", headers=OWNER)

        assert response.status_code == 403

    async def test_cannot_spend_someone_elses_coin(self, client: AsyncClient, market) -> None:
        await client.post(
            f"/treasury/{market['treasury_id']}/mint", json={"amount": 10}, headers=OWNER
        )
        coin = (await client.get("/principals/owner/assets", headers=OWNER)).json()["coins"][0]

        response = await client.post(
            "/avatars", json={"name": "Thief", "coin_ids": [coin["coin_id"]]}, headers=ALICE
        )

        assert response.status_code == 403

    async def test_repeated_coin_is_rejected(self, client: AsyncClient, market) -> None:
        """Listing a coin twice is a malformed request, and the coin stays unspent."""
        await client.post(
            f"/treasury/{market['treasury_id']}/mint",
            json={"amount": 10, "recipient": "alice"},
            headers=OWNER,
        )
        assets = (await client.get("/principals/alice/assets", headers=ALICE)).json()
        coin_id = assets["coins"][0]["coin_id"]

        response = await client.post(
            "/avatars", json={"name": "Twin", "coin_ids": [coin_id, coin_id]}, headers=ALICE
        )

        assert response.status_code == 422
        assert response.json()["failure"]["kind"] == "invalid_input"
        assets = (await client.get("/principals/alice/assets", headers=ALICE)).json()
        assert [c["coin_id"] for c in assets["coins"]] == [coin_id]
        assert len(assets["avatars"]) == 1

    async def test_missing_avatar(self, client: AsyncClient, market) -> None:
        response = await client.get("/avatars/no-such-avatar", headers=ALICE)

        assert response.status_code == 404
        assert response.json()["failure"]["kind"] == "not_found"

    async def test_mint_into_avatar(self, client: AsyncClient, market) -> None:
        """Minting can credit an avatar directly, but only the treasury owner's."""
        response = await client.post(
            f"/treasury/{market['treasury_id']}/mint",
            json={"amount": 10, "avatar_id": market["avatar_id"]},
            headers=OWNER,
        )

        assert response.status_code == 403


class TestFlows:
    async def test_buy(self, client: AsyncClient, market) -> None:
        response = await client.post(
            f"/avatars/{market['avatar_id']}/buy",
            json={"shop_id": market["shop_id"], "kind": "Axe", "amount": 1000},
            headers=ALICE,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["flow"] == "buy"
        assert data["paid"] == 1000
        assert data["avatar"]["gold"] == 4000
        assert data["avatar"]["weapon_kind"] == "Axe"
        assert data["avatar"]["weapon_id"] == data["weapon_id"]
        assert await stock(client, market["shop_id"]) == {"Axe": 1, "Sword": 1}

    async def test_failed_buy_changes_nothing(self, client: AsyncClient, market) -> None:
        """A refused purchase is rolled back entirely."""
        response = await client.post(
            f"/avatars/{market['avatar_id']}/buy",
            json={"shop_id": market["shop_id"], "kind": "Axe", "amount": 999},
            headers=ALICE,
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "amount_mismatch"
        avatar = (await client.get(f"/avatars/{market['avatar_id']}", headers=ALICE)).json()
        assert avatar["gold"] == 5000
        assert avatar["weapon_id"] is None
        assert await stock(client, market["shop_id"]) == {"Axe": 2, "Sword": 1}

    async def test_buy_sell_trade_rent(self, client: AsyncClient, market) -> None:
        """Each flow commits its own effects on top of the previous ones."""
        avatar_url = f"/avatars/{market['avatar_id']}"
        shop_id = market["shop_id"]

        bought = await client.post(
            f"{avatar_url}/buy",
            json={"shop_id": shop_id, "kind": "Axe", "amount": 1000},
            headers=ALICE,
        )
        traded = await client.post(
            f"{avatar_url}/trade",
            json={"shop_id": shop_id, "old_kind": "Axe", "new_kind": "Sword", "amount": 50},
            headers=ALICE,
        )
        sold = await client.post(
            f"{avatar_url}/sell", json={"shop_id": shop_id, "kind": "Sword"}, headers=ALICE
        )
        rented = await client.post(
            f"{avatar_url}/rent",
            json={"shop_id": shop_id, "kind": "Axe", "amount": 250},
            headers=ALICE,
        )

        assert [r.status_code for r in (bought, traded, sold, rented)] == [200, 200, 200, 200]
        assert traded.json()["avatar"]["weapon_kind"] == "Sword"
        assert sold.json()["received"] == 400
        assert len(rented.json()["swings"]) == 1
        assert rented.json()["swings"][0]["kind"] == "Axe"
        assert rented.json()["avatar"]["weapon_id"] is None
        assert rented.json()["avatar"]["gold"] == 5000 - 1000 - 50 + 400 - 250

        shop = (await client.get(f"/shops/{shop_id}")).json()
        assert shop["earnings"] == 1000 + 50 - 400 + 250
        assert {i["kind"]: i["stock"] for i in shop["inventories"]} == {"Axe": 2, "Sword": 1}

    async def test_sell_unarmed(self, client: AsyncClient, market) -> None:
        response = await client.post(
            f"/avatars/{market['avatar_id']}/sell",
            json={"shop_id": market["shop_id"], "kind": "Axe"},
            headers=ALICE,
        )

        assert response.status_code == 409
        assert response.json()["failure"]["kind"] == "not_wielding"

    async def test_out_of_stock(self, client: AsyncClient, market) -> None:
        avatar_url = f"/avatars/{market['avatar_id']}"
        body = {"shop_id": market["shop_id"], "kind": "Sword", "amount": 800}
        await client.post(f"{avatar_url}/buy", json=body, headers=ALICE)

        response = await client.post(
            f"{avatar_url}/rent",
            json={"shop_id": market["shop_id"], "kind": "Sword", "amount": 200},
            headers=ALICE,
        )

        assert response.status_code == 409
        assert response.json()["failure"]["kind"] == "out_of_stock"

    async def test_insolvent_shop(self, client: AsyncClient, market) -> None:
        """After the owner withdraws everything, the shop cannot buy back."""
        avatar_url = f"/avatars/{market['avatar_id']}"
        await client.post(
            f"{avatar_url}/buy",
            json={"shop_id": market["shop_id"], "kind": "Axe", "amount": 1000},
            headers=ALICE,
        )
        withdrawn = await client.post(
            f"/shops/{market['shop_id']}/withdraw",
            json={"capability_id": market["capability_id"]},
            headers=OWNER,
        )
        assert withdrawn.json()["amount"] == 1000

        response = await client.post(
            f"{avatar_url}/sell", json={"shop_id": market["shop_id"], "kind": "Axe"}, headers=ALICE
        )

        assert response.status_code == 409
        assert response.json()["failure"]["kind"] == "shop_insolvent"
        avatar = (await client.get(avatar_url, headers=ALICE)).json()
        assert avatar["weapon_kind"] == "Axe"
