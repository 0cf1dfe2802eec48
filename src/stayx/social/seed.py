"""Achievement catalog seed data."""

from __future__ import annotations

import structlog

from stayx.exceptions import ConflictError
from stayx.storage.base import Storage
from stayx.storage.schemas import Achievement, AchievementCreate

logger = structlog.get_logger()

EARLY_ADOPTER = "Early Adopter"
NETWORK_STARTER = "Network Starter"
CRYPTO_ENTHUSIAST = "Crypto Enthusiast"

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "name": EARLY_ADOPTER,
        "description": "Joined StayX in its early days",
        "icon": "ri-rocket-line",
        "points": 150,
        "category": "profile",
    },
    {
        "name": NETWORK_STARTER,
        "description": "Made your first connection",
        "icon": "ri-user-add-line",
        "points": 50,
        "category": "social",
    },
    {
        "name": CRYPTO_ENTHUSIAST,
        "description": "Added crypto-related interests to your profile",
        "icon": "ri-bitcoin-line",
        "points": 100,
        "category": "crypto",
    },
]


async def seed_achievements(storage: Storage) -> list[Achievement]:
    """Insert missing catalog entries. Safe to run on every startup."""
    seeded: list[Achievement] = []
    for entry in ACHIEVEMENT_SEED_DATA:
        existing = await storage.get_achievement_by_name(entry["name"])
        if existing is not None:
            seeded.append(existing)
            continue
        try:
            seeded.append(await storage.create_achievement(AchievementCreate(**entry)))
        except ConflictError:
            # Another worker seeded it between the lookup and the insert.
            seeded.append(await storage.get_achievement_by_name(entry["name"]))
    logger.info("achievements_seeded", count=len(seeded))
    return seeded
