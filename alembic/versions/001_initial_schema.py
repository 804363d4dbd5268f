"""Initial schema: profiles, validatable content, references, gamification.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            total_xp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            is_banned BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_profiles_total_xp
        ON profiles(total_xp DESC)
    """)

    # --- Organizations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS organizations (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(200) NOT NULL,
            description TEXT,
            website_url VARCHAR(512),
            status VARCHAR(16) NOT NULL DEFAULT 'published',
            is_validated BOOLEAN NOT NULL DEFAULT false,
            author_id BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            version INTEGER NOT NULL DEFAULT 1
        )
    """)

    # --- Expeditions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS expeditions (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            summary TEXT,
            description TEXT,
            organization_id VARCHAR(36) REFERENCES organizations(id) ON DELETE SET NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'published',
            is_validated BOOLEAN NOT NULL DEFAULT false,
            author_id BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            version INTEGER NOT NULL DEFAULT 1
        )
    """)

    # --- Quests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quests (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            summary TEXT,
            description TEXT,
            link_url VARCHAR(512),
            thumbnail_url VARCHAR(512),
            xp_reward INTEGER NOT NULL DEFAULT 100,
            order_index INTEGER NOT NULL DEFAULT 0,
            organization_id VARCHAR(36) REFERENCES organizations(id) ON DELETE SET NULL,
            expedition_id VARCHAR(36) REFERENCES expeditions(id) ON DELETE SET NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'draft',
            is_validated BOOLEAN NOT NULL DEFAULT false,
            draft_data JSONB,
            edit_reason TEXT,
            rejection_reason TEXT,
            archived_at TIMESTAMPTZ,
            author_id BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            version INTEGER NOT NULL DEFAULT 1
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_quests_pending
        ON quests(created_at)
        WHERE is_validated = false OR draft_data IS NOT NULL
    """)

    # --- References to content ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            quest_id VARCHAR(36) NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            xp_earned INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT uq_quest_progress_user_quest UNIQUE(user_id, quest_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS saved_quests (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            quest_id VARCHAR(36) NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_saved_quests_user_quest UNIQUE(user_id, quest_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_exercises (
            id VARCHAR(36) PRIMARY KEY,
            quest_id VARCHAR(36) NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            requirements TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS saved_expeditions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            expedition_id VARCHAR(36) NOT NULL REFERENCES expeditions(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_saved_expeditions_user_expedition UNIQUE(user_id, expedition_id)
        )
    """)

    # --- Edit requests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS edit_requests (
            id VARCHAR(36) PRIMARY KEY,
            resource_type VARCHAR(16) NOT NULL,
            resource_id VARCHAR(36) NOT NULL,
            data JSONB NOT NULL DEFAULT '{}',
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            rejection_reason TEXT,
            requested_by BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            reviewed_by BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            reviewed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_edit_requests_pending
        ON edit_requests(created_at)
        WHERE status = 'pending'
    """)

    # --- Gamification ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_xp_ledger_user
        ON xp_ledger(user_id, created_at DESC)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS level_celebrations (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            old_level INTEGER NOT NULL,
            new_level INTEGER NOT NULL,
            celebrated BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            celebrated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            subtype VARCHAR(64) NOT NULL,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            action_url VARCHAR(256),
            read BOOLEAN NOT NULL DEFAULT false,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_notifications_user_unread
        ON notifications(user_id, created_at DESC)
        WHERE read = false
    """)


def downgrade() -> None:
    for table in (
        "notifications",
        "level_celebrations",
        "xp_ledger",
        "edit_requests",
        "saved_expeditions",
        "quest_exercises",
        "saved_quests",
        "quest_progress",
        "quests",
        "expeditions",
        "organizations",
        "profiles",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
