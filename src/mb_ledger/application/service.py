"""LedgerApplicationService — thin composition layer over IdempotentLedger.

Owns the transaction for standalone ledger calls (the RPC boundary). Other
modules embed IdempotentLedger in their own transactions instead.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.credits import parse_int_string
from src.mb_common.database import store_errors
from src.mb_common.errors import IdempotencyConflictError, UserNotFoundError
from src.mb_gateway.user.service import UserService
from src.mb_ledger.application.schemas import (
    ApplyAndLogRequest,
    ApplyAndLogResponse,
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    cursor_decode,
    cursor_encode,
)
from src.mb_ledger.domain.ledger import IdempotentLedger
from src.mb_ledger.domain.models import Balance, BucketDelta
from src.mb_ledger.domain.repository import BalanceRepositoryProtocol
from src.mb_ledger.infrastructure.persistence import BalanceRepository

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(
        self,
        repo: BalanceRepositoryProtocol | None = None,
        users: UserService | None = None,
    ) -> None:
        self._repo: BalanceRepositoryProtocol = repo or BalanceRepository()
        self._ledger = IdempotentLedger(self._repo)
        self._users = users or UserService()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        async with store_errors():
            balance = await self._repo.get_balance(db, user_id)
        if balance is None:
            balance = Balance(user_id=user_id)
        return BalanceResponse(
            user_id=user_id,
            purchased_credits=balance.purchased_credits,
            winnings_credits=balance.winnings_credits,
            bonus_credits=balance.bonus_credits,
            total_credits=balance.total,
            withdrawable_credits=balance.withdrawable,
        )

    async def apply_and_log(
        self, db: AsyncSession, body: ApplyAndLogRequest
    ) -> ApplyAndLogResponse:
        delta = BucketDelta.of(body.bucket, parse_int_string(body.delta))
        async with store_errors():
            known = await self._users.exists(db, body.user_id)
        if not known:
            raise UserNotFoundError(body.user_id)
        try:
            result = await self._ledger.apply(
                db, body.user_id, delta, body.reason, body.idempotency_key
            )
            await db.commit()
        except IdempotencyConflictError as exc:
            await db.rollback()
            async with store_errors():
                existing = await self._repo.find_entry_by_key(db, exc.key)
            if existing is None:
                raise
            logger.info("Ledger RPC key raced, returning committed entry: key=%s", exc.key)
            return ApplyAndLogResponse(
                resulting_balance=str(existing.balance_after),
                replayed=True,
                ledger_entry_id=existing.id,
            )
        except Exception:
            await db.rollback()
            raise
        return ApplyAndLogResponse(
            resulting_balance=str(result.new_balance),
            replayed=result.replayed,
            ledger_entry_id=result.entry.id,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        reason: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        async with store_errors():
            entries = await self._repo.list_entries(db, user_id, cursor_id, limit + 1, reason)
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                delta=e.delta,
                purchased_delta=e.purchased_delta,
                winnings_delta=e.winnings_delta,
                bonus_delta=e.bonus_delta,
                balance_after=e.balance_after,
                reason=e.reason,
                idempotency_key=e.idempotency_key,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
