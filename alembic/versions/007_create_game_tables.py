"""007: create game_sessions and game_settings tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE game_settings (
            game            VARCHAR(32)     PRIMARY KEY,
            cost            BIGINT          NOT NULL,
            payout_win      BIGINT          NOT NULL,
            payout_lose     BIGINT          NOT NULL,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_game_settings_cost_gt_0   CHECK (cost > 0),
            CONSTRAINT ck_game_settings_payouts     CHECK (payout_win >= 0 AND payout_lose >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_game_settings_updated_at
            BEFORE UPDATE ON game_settings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        INSERT INTO game_settings (game, cost, payout_win, payout_lose)
        VALUES ('monty', 100, 118, 40);
    """)
    op.execute("""
        CREATE TABLE game_sessions (
            id              UUID            PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            game            VARCHAR(32)     NOT NULL,
            stake           BIGINT          NOT NULL,
            stake_entry_id  BIGINT          REFERENCES ledger_entries (id),
            is_settled      BOOLEAN         NOT NULL DEFAULT FALSE,
            won             BOOLEAN,
            payout          BIGINT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            settled_at      TIMESTAMPTZ,
            CONSTRAINT uq_game_sessions_stake_entry UNIQUE (stake_entry_id),
            CONSTRAINT ck_game_sessions_settled CHECK (
                is_settled = FALSE OR (payout IS NOT NULL AND settled_at IS NOT NULL)
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_game_sessions_open
        ON game_sessions (user_id, created_at DESC)
        WHERE is_settled = FALSE;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS game_sessions CASCADE;")
    op.execute("DROP TABLE IF EXISTS game_settings CASCADE;")
