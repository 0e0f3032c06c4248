"""IdempotentLedger — the only writer of the balances table.

Every call runs inside the caller's transaction and performs, in order:

  1. ensure the balance row exists, then lock it (FOR UPDATE)
  2. if an idempotency key is given and already committed, return the recorded
     result without touching the balance (at-most-once)
  3. compute the new buckets, rejecting any that would go negative
  4. write the balance and append exactly one ledger entry

Because the key check happens after the row lock, two same-user calls with the
same key serialize and the second always observes the first's entry. A
cross-user key collision surfaces as IdempotencyConflictError from the unique
index; the transaction must then be rolled back by the owner.
"""

import logging
from collections.abc import Callable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.database import store_errors
from src.mb_common.enums import Bucket
from src.mb_ledger.domain.models import ApplyResult, Balance, BucketDelta
from src.mb_ledger.domain.repository import BalanceRepositoryProtocol
from src.mb_ledger.domain.rules import apply_delta, normalize_reason, plan_ordered_debit

logger = logging.getLogger(__name__)

WITHDRAWAL_ORDER: tuple[Bucket, ...] = (Bucket.WINNINGS, Bucket.PURCHASED)
STAKE_ORDER: tuple[Bucket, ...] = (Bucket.BONUS, Bucket.PURCHASED, Bucket.WINNINGS)


class IdempotentLedger:
    def __init__(self, repo: BalanceRepositoryProtocol) -> None:
        self._repo = repo

    async def apply(
        self,
        db: AsyncSession,
        user_id: str,
        delta: BucketDelta,
        reason: str,
        idempotency_key: str | None = None,
    ) -> ApplyResult:
        """Apply a fixed per-bucket delta."""
        return await self._apply_locked(db, user_id, reason, idempotency_key, lambda _b: delta)

    async def apply_with(
        self,
        db: AsyncSession,
        user_id: str,
        compute: Callable[[Balance], BucketDelta],
        reason: str,
        idempotency_key: str | None = None,
    ) -> ApplyResult:
        """Apply a delta computed from the locked pre-image of the balance row.

        Used when the amount depends on the current balance (welcome bonus
        eligibility) and must not race with other writers.
        """
        return await self._apply_locked(db, user_id, reason, idempotency_key, compute)

    async def debit_ordered(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        order: Sequence[Bucket],
        reason: str,
        idempotency_key: str | None = None,
    ) -> ApplyResult:
        """Debit ``amount`` draining buckets in ``order``, atomically across buckets."""
        return await self._apply_locked(
            db,
            user_id,
            reason,
            idempotency_key,
            lambda balance: plan_ordered_debit(balance, amount, order),
        )

    async def _apply_locked(
        self,
        db: AsyncSession,
        user_id: str,
        reason: str,
        idempotency_key: str | None,
        compute: Callable[[Balance], BucketDelta],
    ) -> ApplyResult:
        reason = normalize_reason(reason)
        async with store_errors():
            await self._repo.ensure_balance(db, user_id)
            current = await self._repo.lock_balance(db, user_id)

            if idempotency_key is not None:
                existing = await self._repo.find_entry_by_key(db, idempotency_key)
                if existing is not None:
                    logger.info(
                        "Ledger idempotency hit: key=%s user=%s balance_after=%d",
                        idempotency_key,
                        existing.user_id,
                        existing.balance_after,
                    )
                    return ApplyResult(balance=current, entry=existing, replayed=True)

            delta = compute(current)
            updated = apply_delta(current, delta)
            saved = await self._repo.save_balance(db, updated)
            entry = await self._repo.insert_entry(
                db, user_id, delta, saved.total, reason, idempotency_key
            )

        logger.info(
            "Ledger applied: user=%s delta=%+d (p=%+d w=%+d b=%+d) reason=%s balance=%d",
            user_id,
            delta.total,
            delta.purchased,
            delta.winnings,
            delta.bonus,
            reason,
            saved.total,
        )
        return ApplyResult(balance=saved, entry=entry, replayed=False)
