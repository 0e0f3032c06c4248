"""004: create ledger_entries table

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            delta               BIGINT          NOT NULL,
            purchased_delta     BIGINT          NOT NULL DEFAULT 0,
            winnings_delta      BIGINT          NOT NULL DEFAULT 0,
            bonus_delta         BIGINT          NOT NULL DEFAULT 0,
            balance_after       BIGINT          NOT NULL,
            reason              VARCHAR(128)    NOT NULL,
            idempotency_key     VARCHAR(200),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_delta_sum CHECK (
                delta = purchased_delta + winnings_delta + bonus_delta
            ),
            CONSTRAINT ck_ledger_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_ledger_idempotency_key
        ON ledger_entries (idempotency_key)
        WHERE idempotency_key IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_ledger_user_id ON ledger_entries (user_id, id DESC);")
    op.execute("CREATE INDEX idx_ledger_reason ON ledger_entries (reason, created_at);")
    op.execute("COMMENT ON TABLE ledger_entries IS 'Credit audit log: append-only, never updated or deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
