"""Connection, recommendation and feed endpoints."""

from __future__ import annotations

from httpx import AsyncClient


class TestConnectionsApi:
    async def test_request_and_list(self, client: AsyncClient, alice: dict, bob: dict):
        response = await client.post(
            "/api/v1/connections", json={"receiver_id": bob["user"]["id"]}, headers=alice["headers"]
        )
        assert response.status_code == 201
        conn = response.json()
        assert conn["status"] == "pending"
        assert 0 <= conn["ai_match_score"] <= 100

        listed = (await client.get("/api/v1/connections", headers=bob["headers"])).json()
        assert [c["id"] for c in listed] == [conn["id"]]
        assert listed[0]["user"]["username"] == "alice"

    async def test_duplicate_request_is_409(self, client: AsyncClient, alice: dict, bob: dict):
        body = {"receiver_id": bob["user"]["id"]}
        await client.post("/api/v1/connections", json=body, headers=alice["headers"])
        response = await client.post(
            "/api/v1/connections", json={"receiver_id": alice["user"]["id"]}, headers=bob["headers"]
        )
        assert response.status_code == 409

    async def test_self_request_is_400(self, client: AsyncClient, alice: dict):
        response = await client.post(
            "/api/v1/connections", json={"receiver_id": alice["user"]["id"]}, headers=alice["headers"]
        )
        assert response.status_code == 400

    async def test_accept_flow_and_status_filter(self, client: AsyncClient, alice: dict, bob: dict, connected: int):
        accepted = await client.get("/api/v1/connections", params={"status": "accepted"}, headers=alice["headers"])
        pending = await client.get("/api/v1/connections", params={"status": "pending"}, headers=alice["headers"])
        assert [c["id"] for c in accepted.json()] == [connected]
        assert pending.json() == []

    async def test_unknown_status_filter_is_422(self, client: AsyncClient, alice: dict):
        response = await client.get("/api/v1/connections", params={"status": "blocked"}, headers=alice["headers"])
        assert response.status_code == 422

    async def test_sender_cannot_accept(self, client: AsyncClient, alice: dict, bob: dict):
        conn = (
            await client.post(
                "/api/v1/connections", json={"receiver_id": bob["user"]["id"]}, headers=alice["headers"]
            )
        ).json()
        response = await client.patch(
            f"/api/v1/connections/{conn['id']}", json={"status": "accepted"}, headers=alice["headers"]
        )
        assert response.status_code == 403

    async def test_terminal_transition_is_409(self, client: AsyncClient, bob: dict, connected: int):
        response = await client.patch(
            f"/api/v1/connections/{connected}", json={"status": "rejected"}, headers=bob["headers"]
        )
        assert response.status_code == 409

    async def test_invalid_status_is_400(self, client: AsyncClient, alice: dict, bob: dict):
        conn = (
            await client.post(
                "/api/v1/connections", json={"receiver_id": bob["user"]["id"]}, headers=alice["headers"]
            )
        ).json()
        response = await client.patch(
            f"/api/v1/connections/{conn['id']}", json={"status": "maybe"}, headers=bob["headers"]
        )
        assert response.status_code == 400

    async def test_unknown_connection_is_404(self, client: AsyncClient, bob: dict):
        response = await client.patch("/api/v1/connections/999", json={"status": "accepted"}, headers=bob["headers"])
        assert response.status_code == 404


class TestRecommendationsApi:
    async def test_excludes_connected_users(self, client: AsyncClient, alice: dict, bob: dict, carol: dict, connected: int):
        response = await client.get("/api/v1/recommendations", headers=alice["headers"])
        assert response.status_code == 200
        assert [r["user"]["username"] for r in response.json()] == ["carol"]

    async def test_limit(self, client: AsyncClient, alice: dict, bob: dict, carol: dict):
        response = await client.get("/api/v1/recommendations", params={"limit": 1}, headers=alice["headers"])
        assert len(response.json()) == 1


class TestFeedAndAchievementsApi:
    async def test_catalog_is_public(self, client: AsyncClient):
        response = await client.get("/api/v1/achievements")
        assert response.status_code == 200
        assert {a["name"] for a in response.json()} == {"Early Adopter", "Network Starter", "Crypto Enthusiast"}

    async def test_user_achievements(self, client: AsyncClient, bob: dict):
        response = await client.get("/api/v1/user-achievements", headers=bob["headers"])
        assert [g["achievement"]["name"] for g in response.json()] == ["Early Adopter"]

    async def test_activity_feed(self, client: AsyncClient, alice: dict, bob: dict, connected: int):
        response = await client.get("/api/v1/activities", headers=alice["headers"])
        assert response.status_code == 200
        feed = response.json()
        assert feed[0]["type"] == "connection_accepted"
        assert feed[0]["receiver"]["username"] == "bob"

    async def test_feed_requires_identity(self, client: AsyncClient):
        assert (await client.get("/api/v1/activities")).status_code == 401
