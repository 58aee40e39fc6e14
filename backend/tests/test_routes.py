"""
Tests for API route endpoints.

Tests: health, wallets, NFTs/collections, trial mint, error envelope.
The app runs over ASGITransport with the DB session and minting client
overridden; lifespan startup is not triggered.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from database import get_db
from deps import get_minting_client
from conftest import make_ss58_address


@pytest_asyncio.fixture(scope="function")
async def client(db_session, mint_stub):
    """Test client bound to the in-memory session and the minting stub."""
    from main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_minting_client] = mint_stub.client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


class TestHealthEndpoint:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database_connected"] is True


class TestWalletRoutes:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_link_wallet(self, client, sample_user, sample_wallet):
        resp = await client.post(f"/users/{sample_user.id}/wallets", json={"walletAddress": sample_wallet})
        assert resp.status_code == 200
        assert resp.json()["walletAddress"] == sample_wallet
        assert resp.json()["userId"] == sample_user.id

        listed = await client.get(f"/users/{sample_user.id}/wallets")
        assert [w["walletAddress"] for w in listed.json()] == [sample_wallet]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_invalid_address_is_400(self, client, sample_user):
        resp = await client.post(f"/users/{sample_user.id}/wallets", json={"walletAddress": "not-an-address"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_link_for_unknown_user_is_404(self, client, sample_wallet):
        resp = await client.post("/users/9999/wallets", json={"walletAddress": sample_wallet})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "notfound"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_wallet_is_404(self, client):
        resp = await client.get(f"/wallets/{make_ss58_address('nobody')}")
        assert resp.status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_sync_and_inventory(self, client, sample_user, sample_wallet):
        cols = await client.post(
            f"/wallets/{sample_wallet}/collections/sync",
            params={"user_id": sample_user.id},
            json=[{"externalId": "u421", "name": "Harbor"}],
        )
        assert cols.status_code == 200
        assert cols.json()["inserted"] == 1

        feed = [
            {"externalId": "u421-10", "name": "Blue Hour", "metadata": "Harbor at dusk"},
            {"externalId": "999-5", "name": "Loose"},
        ]
        first = await client.post(
            f"/wallets/{sample_wallet}/nfts/sync", params={"user_id": sample_user.id}, json=feed
        )
        assert first.status_code == 200
        assert first.json()["inserted"] == 2
        assert first.json()["items"][0]["externalId"] == "u421-10"
        assert first.json()["items"][0]["outcome"] == "inserted"

        second = await client.post(f"/wallets/{sample_wallet}/nfts/sync", json=feed)
        assert second.json()["inserted"] == 0
        assert second.json()["skipped"] == 2
        assert {i["reason"] for i in second.json()["items"]} == {"already_stored"}

        page = await client.get(f"/wallets/{sample_wallet}/nfts", params={"limit": 1})
        body = page.json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        assert body["meta"]["total"] == 2
        assert body["meta"]["hasMore"] is True

        detail = await client.get(f"/wallets/{sample_wallet}")
        assert detail.status_code == 200
        assert detail.json()["userId"] == sample_user.id
        nfts = {n["metadata"]["id"]: n for n in detail.json()["nfts"]}
        col_id = detail.json()["collections"][0]["id"]
        assert nfts["u421-10"]["collectionId"] == col_id
        assert nfts["u421-10"]["metadata"]["description"] == "Harbor at dusk"
        assert nfts["999-5"]["collectionId"] is None

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_sync_rejects_malformed_feed(self, client, sample_wallet):
        resp = await client.post(f"/wallets/{sample_wallet}/nfts/sync", json=[{"name": "no id"}])
        assert resp.status_code == 422


class TestNFTRoutes:

    async def _seed(self, client, wallet):
        resp = await client.post(
            f"/wallets/{wallet}/nfts/sync",
            json=[{"externalId": "u1-1", "name": "one"}, {"externalId": "u1-2", "name": "two"}],
        )
        return [i["entityId"] for i in resp.json()["items"]]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_and_update_metadata(self, client, sample_wallet):
        nft_id, _ = await self._seed(client, sample_wallet)

        resp = await client.get(f"/nfts/{nft_id}")
        assert resp.json()["metadata"]["name"] == "one"
        assert resp.json()["walletAddress"] == sample_wallet

        updated = await client.put(
            f"/nfts/{nft_id}/metadata",
            json={"id": "u1-1", "name": "renamed", "description": "new", "image": "https://img"},
        )
        assert updated.status_code == 200
        assert updated.json()["metadata"]["name"] == "renamed"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_to_taken_id_is_409(self, client, sample_wallet):
        nft_id, _ = await self._seed(client, sample_wallet)

        resp = await client.put(f"/nfts/{nft_id}/metadata", json={"id": "u1-2"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "constraintviolation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_change_owner(self, client, sample_wallet, other_wallet):
        nft_id, _ = await self._seed(client, sample_wallet)
        await client.post(f"/wallets/{other_wallet}/nfts/sync", json=[])

        resp = await client.post(f"/nfts/{nft_id}/owner", json={"walletAddress": other_wallet})
        assert resp.status_code == 200
        assert resp.json()["walletAddress"] == other_wallet

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_change_owner_to_untracked_wallet_is_404(self, client, sample_wallet):
        nft_id, _ = await self._seed(client, sample_wallet)

        resp = await client.post(
            f"/nfts/{nft_id}/owner", json={"walletAddress": make_ss58_address("nobody")}
        )
        assert resp.status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_remove_nft(self, client, sample_wallet):
        nft_id, _ = await self._seed(client, sample_wallet)

        resp = await client.delete(f"/nfts/{nft_id}")
        assert resp.json() == {"success": True, "data": {"id": nft_id, "removed": True}}
        assert (await client.get(f"/nfts/{nft_id}")).status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_link_nft_to_artwork(self, client, sample_wallet, sample_artwork):
        nft_id, _ = await self._seed(client, sample_wallet)

        resp = await client.post(f"/nfts/{nft_id}/artwork/{sample_artwork.id}")
        assert resp.status_code == 200
        assert resp.json()["artworkId"] == sample_artwork.id

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_collection_get_and_remove(self, client, sample_wallet):
        resp = await client.post(f"/wallets/{sample_wallet}/collections/sync", json=[{"externalId": "u421"}])
        col_id = resp.json()["items"][0]["entityId"]

        got = await client.get(f"/collections/{col_id}")
        assert got.json()["metadata"]["id"] == "u421"

        assert (await client.delete(f"/collections/{col_id}")).status_code == 200
        assert (await client.get(f"/collections/{col_id}")).status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_collection_with_nfts_cannot_be_removed(self, client, sample_wallet):
        resp = await client.post(f"/wallets/{sample_wallet}/collections/sync", json=[{"externalId": "u421"}])
        col_id = resp.json()["items"][0]["entityId"]
        await client.post(f"/wallets/{sample_wallet}/nfts/sync", json=[{"externalId": "u421-10"}])

        resp = await client.delete(f"/collections/{col_id}")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "constraintviolation"
        assert (await client.get(f"/collections/{col_id}")).status_code == 200


class TestTrialMintRoutes:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_mint_then_pay(self, client, sample_user, sample_artwork):
        resp = await client.post(f"/users/{sample_user.id}/trial-mint", json={"artworkId": sample_artwork.id})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "Success"
        assert body["nft"]["metadata"]["id"] == "u421-10"
        assert body["nft"]["walletAddress"] == "5Houseaddr"
        assert body["nft"]["metadata"]["image"] == "https://gateway.test/ipfs/cidY"

        state = await client.get(f"/users/{sample_user.id}/trial-mint")
        assert state.json()["state"] == "claimed"
        assert state.json()["claimed"] is True
        assert state.json()["nft"]["metadata"]["id"] == "u421-10"

        paid = await client.post(f"/users/{sample_user.id}/trial-mint/pay")
        assert paid.status_code == 200
        assert paid.json()["paid"] is True

        again = await client.post(f"/users/{sample_user.id}/trial-mint", json={"artworkId": sample_artwork.id})
        assert again.json() == {"status": "MintedAlready", "nft": None}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_failed_mint_reports_failed(self, client, sample_user, sample_artwork, mint_stub):
        mint_stub.failing_paths.add("/trial/mint")

        resp = await client.post(f"/users/{sample_user.id}/trial-mint", json={"artworkId": sample_artwork.id})
        assert resp.status_code == 200
        assert resp.json()["status"] == "Failed"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_pay_before_claim_is_409(self, client, sample_user):
        resp = await client.post(f"/users/{sample_user.id}/trial-mint/pay")
        assert resp.status_code == 409

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_status_for_unknown_user_is_404(self, client):
        resp = await client.get("/users/9999/trial-mint")
        assert resp.status_code == 404
