"""Initial schema: accounts, coin ledger, content, quizzes, gamification, chat.

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
    # --- Accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            password_hash VARCHAR(256) NOT NULL,
            role VARCHAR(16) NOT NULL,
            wisdom_coins INTEGER NOT NULL DEFAULT 0,
            selected_expert_id BIGINT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_login TIMESTAMPTZ,
            login_count INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_role ON users(role)")

    # --- Wisdom-coin ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS token_transactions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            reason VARCHAR(32) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_token_transactions_user_created
        ON token_transactions(user_id, created_at)
    """)

    # --- Leaderboard & achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_entries (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            score INTEGER NOT NULL DEFAULT 0,
            quiz_count INTEGER NOT NULL DEFAULT 0,
            correct_answers INTEGER NOT NULL DEFAULT 0,
            total_answers INTEGER NOT NULL DEFAULT 0,
            last_reset_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_leaderboard_score
        ON leaderboard_entries(score DESC, user_id)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id BIGSERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(16) NOT NULL DEFAULT '',
            condition VARCHAR(32) NOT NULL,
            threshold INTEGER NOT NULL DEFAULT 1,
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id BIGINT NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)

    # --- Learning content ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS subjects (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            description TEXT,
            icon VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS lessons (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            content TEXT NOT NULL,
            key_points JSONB NOT NULL DEFAULT '[]',
            difficulty VARCHAR(16) NOT NULL,
            subject_id BIGINT NOT NULL REFERENCES subjects(id) ON DELETE RESTRICT,
            creator_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            is_flagged BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_lessons_creator ON lessons(creator_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS lesson_shares (
            id BIGSERIAL PRIMARY KEY,
            lesson_id BIGINT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            learner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            shared_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_lesson_share UNIQUE (lesson_id, learner_id)
        )
    """)

    # --- Quizzes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quizzes (
            id BIGSERIAL PRIMARY KEY,
            lesson_id BIGINT UNIQUE NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS questions (
            id BIGSERIAL PRIMARY KEY,
            quiz_id BIGINT NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            type VARCHAR(16) NOT NULL,
            text TEXT NOT NULL,
            correct_answer JSONB NOT NULL,
            options JSONB,
            "order" INTEGER NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id BIGSERIAL PRIMARY KEY,
            quiz_id BIGINT NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            started_at TIMESTAMPTZ NOT NULL,
            completed_at TIMESTAMPTZ,
            score INTEGER,
            is_perfect BOOLEAN NOT NULL DEFAULT false
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_quiz_attempts_user_perfect
        ON quiz_attempts(user_id, is_perfect)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_answers (
            id BIGSERIAL PRIMARY KEY,
            attempt_id BIGINT NOT NULL REFERENCES quiz_attempts(id) ON DELETE CASCADE,
            question_id BIGINT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            answer JSONB,
            is_correct BOOLEAN NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_attempt_question UNIQUE (attempt_id, question_id)
        )
    """)

    # --- Experts & chat ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS experts (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(128) NOT NULL,
            personality TEXT NOT NULL,
            communication_style TEXT NOT NULL,
            appearance VARCHAR(32) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_messages (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            expert_id BIGINT NOT NULL REFERENCES experts(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            is_from_user BOOLEAN NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_chat_messages_user_expert
        ON chat_messages(user_id, expert_id, created_at)
    """)


def downgrade() -> None:
    for table in (
        "chat_messages",
        "experts",
        "user_answers",
        "quiz_attempts",
        "questions",
        "quizzes",
        "lesson_shares",
        "lessons",
        "subjects",
        "user_achievements",
        "achievements",
        "leaderboard_entries",
        "token_transactions",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
