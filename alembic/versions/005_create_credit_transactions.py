"""005: create credit_transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_transactions (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id             VARCHAR(64)     NOT NULL,
            tx_hash             VARCHAR(64)     NOT NULL,
            transaction_type    VARCHAR(16)     NOT NULL DEFAULT 'purchase',
            credits             BIGINT          NOT NULL,
            bonus_credits       BIGINT          NOT NULL DEFAULT 0,
            amount_lovelace     BIGINT          NOT NULL,
            wallet_address      VARCHAR(255)    NOT NULL,
            ledger_entry_id     BIGINT          REFERENCES ledger_entries (id),
            balance_after       BIGINT          NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_credit_transactions_tx_hash   UNIQUE (tx_hash),
            CONSTRAINT ck_credit_transactions_type      CHECK (transaction_type IN ('purchase')),
            CONSTRAINT ck_credit_transactions_credits   CHECK (credits > 0),
            CONSTRAINT ck_credit_transactions_bonus     CHECK (bonus_credits >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_credit_tx_user ON credit_transactions (user_id, created_at DESC);")
    op.execute("COMMENT ON TABLE credit_transactions IS 'One row per on-chain payment that funded credits';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE;")
