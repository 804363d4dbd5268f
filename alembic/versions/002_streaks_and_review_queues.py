"""Daily streaks, notification expiry, admin-role requests, exercise submissions.

Revision ID: 002_streaks_and_review_queues
Revises: 001_initial_schema
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_streaks_and_review_queues"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Streaks ---
    op.execute("ALTER TABLE profiles ADD COLUMN IF NOT EXISTS streak_days INTEGER NOT NULL DEFAULT 0")
    op.execute("ALTER TABLE profiles ADD COLUMN IF NOT EXISTS last_streak_at TIMESTAMPTZ")

    # --- Notification expiry (NULL never expires) ---
    op.execute("ALTER TABLE notifications ADD COLUMN IF NOT EXISTS expires_at TIMESTAMPTZ")

    # --- Admin-role requests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS admin_requests (
            id VARCHAR(36) PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            reason TEXT NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            reviewed_by BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            reviewed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_admin_requests_status CHECK (status IN ('pending', 'approved', 'rejected'))
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_admin_requests_user_pending
        ON admin_requests(user_id)
        WHERE status = 'pending'
    """)

    # --- Exercise submissions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS exercise_submissions (
            id VARCHAR(36) PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            exercise_id VARCHAR(36) NOT NULL REFERENCES quest_exercises(id) ON DELETE CASCADE,
            submission_type VARCHAR(16) NOT NULL,
            file_url VARCHAR(512),
            drive_url VARCHAR(512),
            github_repo_url VARCHAR(512),
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            feedback TEXT,
            reviewed_by BIGINT REFERENCES profiles(id) ON DELETE SET NULL,
            reviewed_at TIMESTAMPTZ,
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_exercise_submissions_type
                CHECK (submission_type IN ('text', 'zip', 'drive', 'github')),
            CONSTRAINT ck_exercise_submissions_status
                CHECK (status IN ('pending', 'approved', 'rejected'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_exercise_submissions_pending
        ON exercise_submissions(submitted_at)
        WHERE status = 'pending'
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_exercise_submissions_user
        ON exercise_submissions(user_id, submitted_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS exercise_submissions CASCADE")
    op.execute("DROP TABLE IF EXISTS admin_requests CASCADE")
    op.execute("ALTER TABLE notifications DROP COLUMN IF EXISTS expires_at")
    op.execute("ALTER TABLE profiles DROP COLUMN IF EXISTS last_streak_at")
    op.execute("ALTER TABLE profiles DROP COLUMN IF EXISTS streak_days")
