"""CreditTransactionRepository: the permanent transaction log, one row per tx hash.

The UNIQUE(tx_hash) constraint is what makes a hash fund at most one credit
event even when two requests race past the read-side duplicate check.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.errors import DuplicateTransactionError, InternalError
from src.mb_purchase.domain.models import CreditTransaction

_COLUMNS = """id, user_id, tx_hash, transaction_type, credits, bonus_credits,
           amount_lovelace, wallet_address, ledger_entry_id, balance_after, created_at"""

_GET_BY_TX_HASH_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM credit_transactions
    WHERE tx_hash = :tx_hash
""")

_INSERT_SQL = text(f"""
    INSERT INTO credit_transactions
        (user_id, tx_hash, transaction_type, credits, bonus_credits,
         amount_lovelace, wallet_address, ledger_entry_id, balance_after)
    VALUES
        (:user_id, :tx_hash, :transaction_type, :credits, :bonus_credits,
         :amount_lovelace, :wallet_address, :ledger_entry_id, :balance_after)
    RETURNING {_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM credit_transactions
    WHERE user_id = :user_id
    ORDER BY created_at DESC
    LIMIT :limit
""")


def _row_to_tx(row: object) -> CreditTransaction:
    return CreditTransaction(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        tx_hash=row.tx_hash,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        credits=row.credits,  # type: ignore[attr-defined]
        bonus_credits=row.bonus_credits,  # type: ignore[attr-defined]
        amount_lovelace=row.amount_lovelace,  # type: ignore[attr-defined]
        wallet_address=row.wallet_address,  # type: ignore[attr-defined]
        ledger_entry_id=row.ledger_entry_id,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class CreditTransactionRepository:
    async def get_by_tx_hash(
        self, db: AsyncSession, tx_hash: str
    ) -> CreditTransaction | None:
        result = await db.execute(_GET_BY_TX_HASH_SQL, {"tx_hash": tx_hash})
        row = result.fetchone()
        return _row_to_tx(row) if row else None

    async def insert(self, db: AsyncSession, tx: CreditTransaction) -> CreditTransaction:
        try:
            result = await db.execute(
                _INSERT_SQL,
                {
                    "user_id": tx.user_id,
                    "tx_hash": tx.tx_hash,
                    "transaction_type": tx.transaction_type,
                    "credits": tx.credits,
                    "bonus_credits": tx.bonus_credits,
                    "amount_lovelace": tx.amount_lovelace,
                    "wallet_address": tx.wallet_address,
                    "ledger_entry_id": tx.ledger_entry_id,
                    "balance_after": tx.balance_after,
                },
            )
        except IntegrityError as exc:
            raise DuplicateTransactionError(tx.tx_hash) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Credit transaction insert returned no rows")
        return _row_to_tx(row)

    async def list_by_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[CreditTransaction]:
        result = await db.execute(_LIST_BY_USER_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_tx(row) for row in result.fetchall()]
