"""Rewards tables.

Creates user_rewards, user_stats, quiz_attempts, points_ledger, achievements,
user_achievements, user_milestones, daily_challenges, user_daily_challenges,
reward_catalog, user_redemptions and notifications.

Revision ID: 001_rewards_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_rewards_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Per-user state ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_rewards (
            user_id UUID PRIMARY KEY,
            total_points INTEGER NOT NULL DEFAULT 0 CHECK (total_points >= 0),
            current_level INTEGER NOT NULL DEFAULT 1 CHECK (current_level >= 1),
            consecutive_correct INTEGER NOT NULL DEFAULT 0,
            max_consecutive_correct INTEGER NOT NULL DEFAULT 0,
            total_time_seconds INTEGER NOT NULL DEFAULT 0,
            last_session_date DATE,
            version INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id UUID PRIMARY KEY,
            total_quizzes INTEGER NOT NULL DEFAULT 0,
            total_correct INTEGER NOT NULL DEFAULT 0,
            total_questions INTEGER NOT NULL DEFAULT 0,
            streak_days INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            attempt_id VARCHAR(128) NOT NULL,
            correct_answers INTEGER NOT NULL,
            total_questions INTEGER NOT NULL CHECK (total_questions > 0),
            time_spent_seconds INTEGER NOT NULL,
            consecutive_correct INTEGER NOT NULL,
            category VARCHAR(128),
            points_earned INTEGER NOT NULL DEFAULT 0,
            outcome JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_quiz_attempts_user_attempt UNIQUE (user_id, attempt_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_quiz_attempts_user_id ON quiz_attempts(user_id)")

    # --- Points Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_points_ledger_user_id ON points_ledger(user_id)")

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(32) NOT NULL DEFAULT 'trophy',
            points_reward INTEGER NOT NULL DEFAULT 0,
            tier VARCHAR(16) NOT NULL DEFAULT 'bronze',
            requirement_type VARCHAR(32) NOT NULL,
            requirement_value INTEGER NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            achievement_id INTEGER NOT NULL REFERENCES achievements(id),
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id ON user_achievements(user_id)")

    # --- Milestones ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_milestones (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            milestone_type VARCHAR(16) NOT NULL,
            milestone_value INTEGER NOT NULL,
            achieved_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            notification_shown BOOLEAN NOT NULL DEFAULT false,
            shown_at TIMESTAMPTZ,
            CONSTRAINT uq_user_milestones_user_type_value UNIQUE (user_id, milestone_type, milestone_value)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_milestones_user_id ON user_milestones(user_id)")

    # --- Daily Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_challenges (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(32) NOT NULL DEFAULT 'target',
            challenge_type VARCHAR(32) NOT NULL,
            target_value INTEGER NOT NULL,
            points_reward INTEGER NOT NULL,
            difficulty VARCHAR(16) NOT NULL DEFAULT 'normal',
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_daily_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            challenge_id INTEGER NOT NULL REFERENCES daily_challenges(id),
            challenge_date DATE NOT NULL,
            current_progress INTEGER NOT NULL DEFAULT 0,
            is_completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            points_claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            CONSTRAINT uq_user_daily_challenges_user_challenge_date UNIQUE (user_id, challenge_id, challenge_date),
            CONSTRAINT ck_claim_after_completion CHECK (NOT points_claimed OR is_completed)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_daily_challenges_user_id ON user_daily_challenges(user_id)")

    # --- Redemption ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reward_catalog (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            points_cost INTEGER NOT NULL CHECK (points_cost > 0),
            reward_type VARCHAR(32) NOT NULL,
            reward_value JSONB NOT NULL DEFAULT '{}',
            available_for_tier VARCHAR(16) NOT NULL DEFAULT 'free',
            is_active BOOLEAN NOT NULL DEFAULT true,
            max_redemptions INTEGER
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_redemptions (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            reward_id INTEGER NOT NULL REFERENCES reward_catalog(id),
            points_spent INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            redeemed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_redemptions_user_id ON user_redemptions(user_id)")

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id UUID NOT NULL,
            type VARCHAR(32) NOT NULL,
            title VARCHAR(256) NOT NULL,
            message TEXT,
            icon VARCHAR(32),
            data JSONB NOT NULL DEFAULT '{}',
            is_read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_notifications_user_unread
        ON notifications(user_id, created_at DESC) WHERE NOT is_read
    """)


def downgrade() -> None:
    for table in (
        "notifications",
        "user_redemptions",
        "reward_catalog",
        "user_daily_challenges",
        "daily_challenges",
        "user_milestones",
        "user_achievements",
        "achievements",
        "points_ledger",
        "quiz_attempts",
        "user_stats",
        "user_rewards",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table}")
