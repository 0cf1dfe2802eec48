"""Achievement catalog, grants and the activity log."""

from __future__ import annotations

import pytest

from stayx.exceptions import ConflictError, ValidationError
from stayx.social.seed import EARLY_ADOPTER
from stayx.storage.schemas import (
    ACHIEVEMENT_EARNED,
    CONNECTION_REQUEST,
    AchievementCreate,
    ActivityCreate,
    UserAchievementCreate,
)


def _achievement(name="Whale", points=400):
    return AchievementCreate(name=name, description="Big", icon="ri-star-line", points=points, category="crypto")


class TestAchievementCatalog:
    async def test_create_and_lookup(self, storage):
        created = await storage.create_achievement(_achievement())
        assert await storage.get_achievement(created.id) == created
        assert await storage.get_achievement_by_name("Whale") == created
        assert await storage.get_achievement_by_name("Shrimp") is None

    async def test_duplicate_name_conflicts(self, storage):
        await storage.create_achievement(_achievement())
        with pytest.raises(ConflictError):
            await storage.create_achievement(_achievement())

    async def test_list_all_in_id_order(self, seeded_storage):
        names = [a.name for a in await seeded_storage.get_all_achievements()]
        assert names == ["Early Adopter", "Network Starter", "Crypto Enthusiast"]


class TestUserAchievements:
    async def test_grant_credits_points_and_level(self, storage, make_user):
        user = await make_user("alice")
        big = await storage.create_achievement(_achievement(points=1200))

        grant = await storage.create_user_achievement(
            UserAchievementCreate(user_id=user.id, achievement_id=big.id)
        )

        assert grant.user_id == user.id
        assert grant.achievement_id == big.id
        refreshed = await storage.get_user(user.id)
        assert refreshed.achievement_points == 1200
        assert refreshed.level == 2
        assert await storage.get_user_achievement(user.id, big.id) == grant

    async def test_repeat_grant_is_idempotent(self, seeded_storage, make_user):
        storage = seeded_storage
        user = await make_user("alice")
        early = await storage.get_achievement_by_name(EARLY_ADOPTER)
        data = UserAchievementCreate(user_id=user.id, achievement_id=early.id)

        first = await storage.create_user_achievement(data)
        second = await storage.create_user_achievement(data)

        assert second.id == first.id
        assert len(await storage.get_user_achievements(user.id)) == 1
        assert (await storage.get_user(user.id)).achievement_points == early.points

    async def test_grant_reports_whether_it_created(self, seeded_storage, make_user):
        storage = seeded_storage
        user = await make_user("alice")
        early = await storage.get_achievement_by_name(EARLY_ADOPTER)
        data = UserAchievementCreate(user_id=user.id, achievement_id=early.id)

        first, created = await storage.grant_user_achievement(data)
        assert created is True
        again, created = await storage.grant_user_achievement(data)
        assert created is False
        assert again.id == first.id

    async def test_points_accumulate_across_achievements(self, seeded_storage, make_user):
        storage = seeded_storage
        user = await make_user("alice")
        for achievement in await storage.get_all_achievements():
            await storage.create_user_achievement(
                UserAchievementCreate(user_id=user.id, achievement_id=achievement.id)
            )
        refreshed = await storage.get_user(user.id)
        assert refreshed.achievement_points == 300
        assert refreshed.level == 1
        assert [g.achievement_id for g in await storage.get_user_achievements(user.id)] == [1, 2, 3]

    async def test_unknown_user_or_achievement(self, storage, make_user):
        user = await make_user("alice")
        achievement = await storage.create_achievement(_achievement())
        with pytest.raises(ValidationError):
            await storage.create_user_achievement(UserAchievementCreate(user_id=999, achievement_id=achievement.id))
        with pytest.raises(ValidationError):
            await storage.create_user_achievement(UserAchievementCreate(user_id=user.id, achievement_id=999))

    async def test_missing_grant_is_none(self, storage):
        assert await storage.get_user_achievement(1, 1) is None
        assert await storage.get_user_achievements(1) == []


class TestActivities:
    async def test_create_and_fetch(self, storage, make_user):
        user = await make_user("alice")
        activity = await storage.create_activity(
            ActivityCreate(user_id=user.id, type=ACHIEVEMENT_EARNED, data={"achievement_id": 1})
        )
        assert activity.data == {"achievement_id": 1}
        assert await storage.get_activity(activity.id) == activity
        assert await storage.get_activity(activity.id + 100) is None

    async def test_newest_first_with_limit(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        created = [
            await storage.create_activity(
                ActivityCreate(user_id=alice.id, type=CONNECTION_REQUEST, data={"sender_id": bob.id, "n": i})
            )
            for i in range(4)
        ]
        await storage.create_activity(ActivityCreate(user_id=bob.id, type=ACHIEVEMENT_EARNED))

        feed = await storage.get_user_activities(alice.id, limit=3)
        assert [a.id for a in feed] == [created[3].id, created[2].id, created[1].id]
        assert all(a.user_id == alice.id for a in feed)
