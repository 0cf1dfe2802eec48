"""Achievement catalog seeding."""

from __future__ import annotations

from stayx.social.seed import ACHIEVEMENT_SEED_DATA, seed_achievements


class TestSeedAchievements:
    async def test_seeds_catalog(self, storage):
        seeded = await seed_achievements(storage)
        assert [(a.name, a.points, a.category) for a in seeded] == [
            ("Early Adopter", 150, "profile"),
            ("Network Starter", 50, "social"),
            ("Crypto Enthusiast", 100, "crypto"),
        ]

    async def test_idempotent(self, storage):
        first = await seed_achievements(storage)
        second = await seed_achievements(storage)
        assert [a.id for a in first] == [a.id for a in second]
        assert len(await storage.get_all_achievements()) == len(ACHIEVEMENT_SEED_DATA)
