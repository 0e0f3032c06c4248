"""BalanceRepository — concrete implementation of BalanceRepositoryProtocol.

Per-user serialization comes from `SELECT ... FOR UPDATE` on the balances row;
the CHECK (>= 0) constraints on each bucket are the last line of defence.

Transaction ownership: The CALLER (application service or another module's
service) is responsible for starting and committing the transaction.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.errors import IdempotencyConflictError, InternalError
from src.mb_ledger.domain.models import Balance, BucketDelta, LedgerEntry

# ---------------------------------------------------------------------------
# SQL: balances
# ---------------------------------------------------------------------------

_ENSURE_BALANCE_SQL = text("""
    INSERT INTO balances (user_id)
    VALUES (:user_id)
    ON CONFLICT (user_id) DO NOTHING
""")

_GET_BALANCE_SQL = text("""
    SELECT user_id, purchased_credits, winnings_credits, bonus_credits, version, updated_at
    FROM balances
    WHERE user_id = :user_id
""")

_LOCK_BALANCE_SQL = text("""
    SELECT user_id, purchased_credits, winnings_credits, bonus_credits, version, updated_at
    FROM balances
    WHERE user_id = :user_id
    FOR UPDATE
""")

_SAVE_BALANCE_SQL = text("""
    UPDATE balances
    SET purchased_credits = :purchased,
        winnings_credits  = :winnings,
        bonus_credits     = :bonus,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING user_id, purchased_credits, winnings_credits, bonus_credits, version, updated_at
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries (append-only)
# ---------------------------------------------------------------------------

_FIND_ENTRY_BY_KEY_SQL = text("""
    SELECT id, user_id, delta, purchased_delta, winnings_delta, bonus_delta,
           balance_after, reason, idempotency_key, created_at
    FROM ledger_entries
    WHERE idempotency_key = :key
""")

_INSERT_ENTRY_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, delta, purchased_delta, winnings_delta, bonus_delta,
         balance_after, reason, idempotency_key)
    VALUES
        (:user_id, :delta, :purchased_delta, :winnings_delta, :bonus_delta,
         :balance_after, :reason, :idempotency_key)
    RETURNING id, user_id, delta, purchased_delta, winnings_delta, bonus_delta,
              balance_after, reason, idempotency_key, created_at
""")

_LIST_ENTRIES_SQL = text("""
    SELECT id, user_id, delta, purchased_delta, winnings_delta, bonus_delta,
           balance_after, reason, idempotency_key, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:reason AS VARCHAR) IS NULL OR reason = :reason)
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_balance(row: object) -> Balance:
    return Balance(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        purchased_credits=row.purchased_credits,  # type: ignore[attr-defined]
        winnings_credits=row.winnings_credits,  # type: ignore[attr-defined]
        bonus_credits=row.bonus_credits,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        delta=row.delta,  # type: ignore[attr-defined]
        purchased_delta=row.purchased_delta,  # type: ignore[attr-defined]
        winnings_delta=row.winnings_delta,  # type: ignore[attr-defined]
        bonus_delta=row.bonus_delta,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reason=row.reason,  # type: ignore[attr-defined]
        idempotency_key=row.idempotency_key,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class BalanceRepository:
    """Concrete repository — raw SQL, caller-owned transaction."""

    async def ensure_balance(self, db: AsyncSession, user_id: str) -> None:
        await db.execute(_ENSURE_BALANCE_SQL, {"user_id": user_id})

    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def lock_balance(self, db: AsyncSession, user_id: str) -> Balance:
        result = await db.execute(_LOCK_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Balance row missing after ensure for user {user_id}")
        return _row_to_balance(row)

    async def save_balance(self, db: AsyncSession, balance: Balance) -> Balance:
        result = await db.execute(
            _SAVE_BALANCE_SQL,
            {
                "user_id": balance.user_id,
                "purchased": balance.purchased_credits,
                "winnings": balance.winnings_credits,
                "bonus": balance.bonus_credits,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Balance update returned no rows")
        return _row_to_balance(row)

    async def find_entry_by_key(
        self, db: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None:
        result = await db.execute(_FIND_ENTRY_BY_KEY_SQL, {"key": idempotency_key})
        row = result.fetchone()
        return _row_to_entry(row) if row else None

    async def insert_entry(
        self,
        db: AsyncSession,
        user_id: str,
        delta: BucketDelta,
        balance_after: int,
        reason: str,
        idempotency_key: str | None,
    ) -> LedgerEntry:
        try:
            result = await db.execute(
                _INSERT_ENTRY_SQL,
                {
                    "user_id": user_id,
                    "delta": delta.total,
                    "purchased_delta": delta.purchased,
                    "winnings_delta": delta.winnings,
                    "bonus_delta": delta.bonus,
                    "balance_after": balance_after,
                    "reason": reason,
                    "idempotency_key": idempotency_key,
                },
            )
        except IntegrityError as exc:
            if idempotency_key is None:
                raise
            raise IdempotencyConflictError(idempotency_key) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_entry(row)

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        reason: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "reason": reason,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]
