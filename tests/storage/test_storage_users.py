"""User storage behavior, run against every backend."""

from __future__ import annotations

import pytest

from stayx.exceptions import ConflictError
from stayx.storage.schemas import UserCreate, UserUpdate


class TestCreateUser:
    async def test_assigns_id_and_defaults(self, storage):
        user = await storage.create_user(
            UserCreate(email="a@example.com", username="alice", display_name="Alice")
        )
        assert user.id >= 1
        assert user.level == 1
        assert user.achievement_points == 0
        assert user.interests == []
        assert user.created_at.tzinfo is not None
        assert user.last_active >= user.created_at

    async def test_ids_are_distinct(self, make_user):
        a = await make_user("alice")
        b = await make_user("bob")
        assert a.id != b.id

    async def test_round_trip_through_lookups(self, storage, make_user):
        created = await make_user("alice", ["Bitcoin", "AI"], bio="Builder")
        assert await storage.get_user(created.id) == created
        assert await storage.get_user_by_username("alice") == created
        assert await storage.get_user_by_email("alice@example.com") == created
        assert await storage.get_user_by_external_id("ext-alice") == created

    async def test_duplicate_username_conflicts(self, storage, make_user):
        await make_user("alice")
        with pytest.raises(ConflictError) as exc_info:
            await make_user("alice", email="other@example.com", external_id="ext-other")
        assert exc_info.value.field == "username"
        assert await storage.count_users() == 1

    async def test_duplicate_email_conflicts(self, storage, make_user):
        await make_user("alice")
        with pytest.raises(ConflictError) as exc_info:
            await make_user("alice2", email="alice@example.com")
        assert exc_info.value.field == "email"
        assert await storage.count_users() == 1

    async def test_duplicate_external_id_conflicts(self, storage, make_user):
        await make_user("alice")
        with pytest.raises(ConflictError) as exc_info:
            await make_user("alice2", external_id="ext-alice")
        assert exc_info.value.field == "external_id"
        assert await storage.count_users() == 1

    async def test_users_without_external_id_coexist(self, make_user):
        a = await make_user("alice", external_id=None)
        b = await make_user("bob", external_id=None)
        assert a.external_id is None and b.external_id is None


class TestLookups:
    async def test_missing_user_is_none(self, storage):
        assert await storage.get_user(999) is None
        assert await storage.get_user_by_username("nobody") is None
        assert await storage.get_user_by_email("nobody@example.com") is None
        assert await storage.get_user_by_external_id("nobody") is None

    async def test_returned_record_is_a_copy(self, storage, make_user):
        user = await make_user("alice", ["AI"])
        user.interests.append("Mutated")
        assert (await storage.get_user(user.id)).interests == ["AI"]

    async def test_count_users(self, storage, make_user):
        assert await storage.count_users() == 0
        await make_user("alice")
        await make_user("bob")
        assert await storage.count_users() == 2


class TestUpdateUser:
    async def test_merges_only_supplied_fields(self, storage, make_user):
        user = await make_user("alice", ["AI"], bio="Old bio")
        updated = await storage.update_user(user.id, UserUpdate(bio="New bio"))
        assert updated.bio == "New bio"
        assert updated.interests == ["AI"]
        assert updated.display_name == user.display_name
        assert updated.last_active >= user.last_active

    async def test_can_clear_nullable_field(self, storage, make_user):
        user = await make_user("alice", bio="Something")
        updated = await storage.update_user(user.id, UserUpdate(bio=None))
        assert updated.bio is None

    async def test_missing_user_returns_none(self, storage):
        assert await storage.update_user(42, UserUpdate(bio="x")) is None

    async def test_username_taken_by_other_user_conflicts(self, storage, make_user):
        await make_user("alice")
        bob = await make_user("bob")
        with pytest.raises(ConflictError):
            await storage.update_user(bob.id, UserUpdate(username="alice"))

    async def test_keeping_own_username_is_fine(self, storage, make_user):
        alice = await make_user("alice")
        updated = await storage.update_user(alice.id, UserUpdate(username="alice", display_name="A"))
        assert updated.display_name == "A"

    async def test_update_is_persisted(self, storage, make_user):
        user = await make_user("alice")
        await storage.update_user(user.id, UserUpdate(interests=["DeFi", "defi", " NFTs "]))
        assert (await storage.get_user(user.id)).interests == ["DeFi", "NFTs"]


class TestSearchUsers:
    async def test_matches_username_display_name_and_bio(self, storage, make_user):
        a = await make_user("satoshi", bio="Peer to peer cash")
        b = await make_user("vitalik", display_name="Ethereum Founder")
        c = await make_user("hal", bio="Running bitcoin")
        await make_user("nobody")

        assert [u.id for u in await storage.search_users("SATO")] == [a.id]
        assert [u.id for u in await storage.search_users("founder")] == [b.id]
        assert [u.id for u in await storage.search_users("bitcoin")] == [c.id]

    async def test_orders_by_id_and_respects_limit(self, storage, make_user):
        users = [await make_user(f"dev_{i}") for i in range(5)]
        results = await storage.search_users("dev_", limit=3)
        assert [u.id for u in results] == [u.id for u in users[:3]]

    async def test_like_wildcards_are_literal(self, storage, make_user):
        await make_user("plain")
        percent = await make_user("has_percent", bio="100% legit")
        assert [u.id for u in await storage.search_users("%")] == [percent.id]

    async def test_no_match_is_empty(self, storage, make_user):
        await make_user("alice")
        assert await storage.search_users("zzz") == []
