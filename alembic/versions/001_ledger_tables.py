"""Ledger tables.

Creates the hub registry (hubs, creation_credits, hub_spaces), capabilities,
spaces with space_points, journeys with journey_progress and
journey_completions, quests with quest_progress, rewards, the ledger_events
log and the value_transfers audit trail.

Revision ID: 001_ledger_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_ledger_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Hub registry ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS hubs (
            id VARCHAR(36) PRIMARY KEY,
            version INTEGER NOT NULL,
            treasury_balance BIGINT NOT NULL DEFAULT 0,
            fee_journey_creation BIGINT NOT NULL DEFAULT 0,
            fee_quest_start BIGINT NOT NULL DEFAULT 0,
            verifier_address VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS creation_credits (
            hub_id VARCHAR(36) NOT NULL REFERENCES hubs(id) ON DELETE CASCADE,
            address VARCHAR(128) NOT NULL,
            remaining INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (hub_id, address)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS hub_spaces (
            seq SERIAL PRIMARY KEY,
            hub_id VARCHAR(36) NOT NULL REFERENCES hubs(id) ON DELETE CASCADE,
            space_id VARCHAR(36) UNIQUE NOT NULL
        )
    """)

    # --- Spaces ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS spaces (
            id VARCHAR(36) PRIMARY KEY,
            version INTEGER NOT NULL,
            name VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            image_url TEXT NOT NULL DEFAULT '',
            website_url TEXT NOT NULL DEFAULT '',
            twitter_url TEXT NOT NULL DEFAULT '',
            creator VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS space_points (
            id SERIAL PRIMARY KEY,
            space_id VARCHAR(36) NOT NULL REFERENCES spaces(id) ON DELETE CASCADE,
            user_address VARCHAR(128) NOT NULL,
            points BIGINT NOT NULL DEFAULT 0,
            UNIQUE(space_id, user_address)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_space_points_rank
        ON space_points(space_id, points DESC)
    """)

    # --- Capabilities ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS capabilities (
            id VARCHAR(36) PRIMARY KEY,
            kind VARCHAR(16) NOT NULL,
            space_id VARCHAR(36) REFERENCES spaces(id) ON DELETE CASCADE,
            space_name VARCHAR(256),
            holder VARCHAR(128) NOT NULL,
            token_prefix VARCHAR(32) NOT NULL,
            token_hash VARCHAR(256) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_capabilities_prefix ON capabilities(token_prefix)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_capabilities_space ON capabilities(space_id)")

    # --- Journeys ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS journeys (
            id VARCHAR(36) PRIMARY KEY,
            space_id VARCHAR(36) NOT NULL REFERENCES spaces(id) ON DELETE CASCADE,
            reward_type VARCHAR(16) NOT NULL,
            reward_required_points BIGINT NOT NULL,
            reward_image_url TEXT NOT NULL DEFAULT '',
            name VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            start_time BIGINT NOT NULL,
            end_time BIGINT NOT NULL,
            total_completed INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_journeys_space ON journeys(space_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS journey_progress (
            id SERIAL PRIMARY KEY,
            journey_id VARCHAR(36) NOT NULL REFERENCES journeys(id) ON DELETE CASCADE,
            user_address VARCHAR(128) NOT NULL,
            points BIGINT NOT NULL DEFAULT 0,
            completed_quests INTEGER NOT NULL DEFAULT 0,
            UNIQUE(journey_id, user_address)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS journey_completions (
            id SERIAL PRIMARY KEY,
            journey_id VARCHAR(36) NOT NULL REFERENCES journeys(id) ON DELETE CASCADE,
            user_address VARCHAR(128) NOT NULL,
            reward_id VARCHAR(36) NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(journey_id, user_address)
        )
    """)

    # --- Quests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quests (
            id VARCHAR(36) PRIMARY KEY,
            journey_id VARCHAR(36) NOT NULL REFERENCES journeys(id) ON DELETE CASCADE,
            points_amount BIGINT NOT NULL,
            name VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            call_to_action_url TEXT NOT NULL DEFAULT '',
            target_program_id VARCHAR(128) NOT NULL DEFAULT '',
            module_name VARCHAR(128) NOT NULL DEFAULT '',
            function_name VARCHAR(128) NOT NULL DEFAULT '',
            arguments JSON NOT NULL DEFAULT '[]',
            requires_start BOOLEAN NOT NULL DEFAULT false,
            total_completed INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_quests_journey ON quests(journey_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_progress (
            id SERIAL PRIMARY KEY,
            quest_id VARCHAR(36) NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            user_address VARCHAR(128) NOT NULL,
            state VARCHAR(16) NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(quest_id, user_address)
        )
    """)

    # --- Rewards (no FK: rewards outlive their journey) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            id VARCHAR(36) PRIMARY KEY,
            variant VARCHAR(16) NOT NULL,
            owner VARCHAR(128) NOT NULL,
            claimer VARCHAR(128) NOT NULL,
            space_id VARCHAR(36) NOT NULL,
            journey_id VARCHAR(36) NOT NULL,
            name VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            image_url TEXT NOT NULL DEFAULT '',
            minted_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_rewards_owner ON rewards(owner)")

    # --- Event log and treasury audit trail ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ledger_events (
            id SERIAL PRIMARY KEY,
            event_type VARCHAR(32) NOT NULL,
            space_id VARCHAR(36),
            journey_id VARCHAR(36),
            quest_id VARCHAR(36),
            user_address VARCHAR(128),
            reward_id VARCHAR(36),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_ledger_events_type ON ledger_events(event_type)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_ledger_events_space ON ledger_events(space_id, id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS value_transfers (
            id SERIAL PRIMARY KEY,
            kind VARCHAR(16) NOT NULL,
            recipient VARCHAR(128),
            amount BIGINT NOT NULL,
            memo VARCHAR(256) NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)


def downgrade() -> None:
    for table in (
        "value_transfers",
        "ledger_events",
        "rewards",
        "quest_progress",
        "quests",
        "journey_completions",
        "journey_progress",
        "journeys",
        "capabilities",
        "space_points",
        "spaces",
        "hub_spaces",
        "creation_credits",
        "hubs",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
