"""006: create withdrawal_requests table

Revision ID: 006
Revises: 005
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE withdrawal_requests (
            id                      UUID            PRIMARY KEY,
            user_id                 VARCHAR(64)     NOT NULL,
            credits                 BIGINT          NOT NULL,
            destination_address     VARCHAR(255)    NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'pending',
            gross_lovelace          BIGINT          NOT NULL,
            platform_fee_lovelace   BIGINT          NOT NULL,
            network_fee_lovelace    BIGINT          NOT NULL,
            net_lovelace            BIGINT          NOT NULL,
            drawn_winnings          BIGINT          NOT NULL DEFAULT 0,
            drawn_purchased         BIGINT          NOT NULL DEFAULT 0,
            ledger_entry_id         BIGINT          REFERENCES ledger_entries (id),
            payment_tx_hash         VARCHAR(64),
            admin_notes             TEXT,
            processed_at            TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_withdrawal_status CHECK (
                status IN ('pending', 'processing', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_withdrawal_credits_gt_0 CHECK (credits > 0),
            CONSTRAINT ck_withdrawal_drawn_sum CHECK (drawn_winnings + drawn_purchased = credits),
            CONSTRAINT ck_withdrawal_completed_proof CHECK (
                status <> 'completed' OR payment_tx_hash IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_withdrawal_user ON withdrawal_requests (user_id, created_at DESC);")
    op.execute("CREATE INDEX idx_withdrawal_status ON withdrawal_requests (status, created_at);")
    op.execute("""
        CREATE TRIGGER trg_withdrawal_requests_updated_at
            BEFORE UPDATE ON withdrawal_requests
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS withdrawal_requests CASCADE;")
