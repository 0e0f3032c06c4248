"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id                      UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            wallet_address          VARCHAR(255)    NOT NULL,
            username                VARCHAR(64)     NOT NULL,
            is_active               BOOLEAN         NOT NULL DEFAULT TRUE,
            is_admin                BOOLEAN         NOT NULL DEFAULT FALSE,
            welcome_bonus_claimed   BOOLEAN         NOT NULL DEFAULT FALSE,
            total_credits_purchased BIGINT          NOT NULL DEFAULT 0,
            total_credits_withdrawn BIGINT          NOT NULL DEFAULT 0,
            last_purchase_at        TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_wallet_address  UNIQUE (wallet_address),
            CONSTRAINT ck_users_wallet_len      CHECK (LENGTH(wallet_address) >= 50)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Wallet-keyed users, created on first interaction';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
