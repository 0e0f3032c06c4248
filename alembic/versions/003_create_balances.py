"""003: create balances table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE balances (
            user_id             VARCHAR(64) PRIMARY KEY,
            purchased_credits   BIGINT      NOT NULL DEFAULT 0,
            winnings_credits    BIGINT      NOT NULL DEFAULT 0,
            bonus_credits       BIGINT      NOT NULL DEFAULT 0,
            version             BIGINT      NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_balances_purchased_gte_0  CHECK (purchased_credits >= 0),
            CONSTRAINT ck_balances_winnings_gte_0   CHECK (winnings_credits >= 0),
            CONSTRAINT ck_balances_bonus_gte_0      CHECK (bonus_credits >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_balances_updated_at
            BEFORE UPDATE ON balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE balances IS 'Per-user credit buckets; written only by the ledger';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS balances CASCADE;")
