"""Initial schema: users, connections, messages, activities, achievements.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            external_id VARCHAR(128) UNIQUE,
            email VARCHAR(320) UNIQUE NOT NULL,
            username VARCHAR(32) UNIQUE NOT NULL,
            display_name VARCHAR(64) NOT NULL,
            photo_url TEXT,
            bio VARCHAR(160),
            interests JSONB NOT NULL DEFAULT '[]'::jsonb,
            level INTEGER NOT NULL DEFAULT 1,
            achievement_points INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_active TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_level_positive CHECK (level >= 1),
            CONSTRAINT ck_users_points_non_negative CHECK (achievement_points >= 0)
        )
    """)

    # --- Connections ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS connections (
            id BIGSERIAL PRIMARY KEY,
            sender_id BIGINT NOT NULL REFERENCES users(id),
            receiver_id BIGINT NOT NULL REFERENCES users(id),
            user_low_id BIGINT NOT NULL,
            user_high_id BIGINT NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            ai_match_score INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_connections_pair UNIQUE (user_low_id, user_high_id),
            CONSTRAINT ck_connections_distinct_users CHECK (sender_id <> receiver_id),
            CONSTRAINT ck_connections_score_range CHECK (ai_match_score BETWEEN 0 AND 100)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_connections_sender ON connections(sender_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_connections_receiver ON connections(receiver_id)")

    # --- Messages ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id BIGSERIAL PRIMARY KEY,
            sender_id BIGINT NOT NULL REFERENCES users(id),
            receiver_id BIGINT NOT NULL REFERENCES users(id),
            content TEXT NOT NULL,
            read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_messages_pair_created
        ON messages(sender_id, receiver_id, created_at)
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_messages_receiver ON messages(receiver_id)")

    # --- Activities ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activities (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id),
            type VARCHAR(64) NOT NULL,
            data JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_activities_user_created
        ON activities(user_id, created_at DESC)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(64) NOT NULL,
            points INTEGER NOT NULL,
            category VARCHAR(32) NOT NULL,
            CONSTRAINT ck_achievements_points_positive CHECK (points > 0)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id),
            achievement_id BIGINT NOT NULL REFERENCES achievements(id),
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)


def downgrade() -> None:
    for table in ("user_achievements", "achievements", "activities", "messages", "connections", "users"):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
