"""WithdrawalService: quote, bucket-aware decrement, request lifecycle.

Every balance change goes through IdempotentLedger: the submit debit uses
``withdrawal:<id>`` and the cancellation refund ``withdrawal:<id>:refund``.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.address import is_likely_bech32, truncate
from src.mb_common.database import store_errors
from src.mb_common.enums import LedgerReason, WithdrawalStatus
from src.mb_common.errors import (
    InsufficientFundsError,
    InsufficientWithdrawableError,
    InvalidAddressError,
    InvalidStatusTransitionError,
    PaymentProofRequiredError,
    WithdrawalNotFoundError,
)
from src.mb_gateway.user.service import UserService
from src.mb_ledger.domain.ledger import WITHDRAWAL_ORDER, IdempotentLedger
from src.mb_ledger.domain.models import Balance, BucketDelta
from src.mb_ledger.domain.repository import BalanceRepositoryProtocol
from src.mb_ledger.infrastructure.persistence import BalanceRepository
from src.mb_payment.domain.validation import validate_tx_hash
from src.mb_withdrawal.domain.models import FeeSchedule, WithdrawalQuote, WithdrawalRequest
from src.mb_withdrawal.domain.quote import compute_quote
from src.mb_withdrawal.domain.repository import WithdrawalRepositoryProtocol
from src.mb_withdrawal.domain.transitions import check_transition
from src.mb_withdrawal.infrastructure.payout_notifier import PayoutNotifier
from src.mb_withdrawal.infrastructure.persistence import WithdrawalRepository

logger = logging.getLogger(__name__)


def withdrawal_key(request_id: str) -> str:
    return f"withdrawal:{request_id}"


def refund_key(request_id: str) -> str:
    return f"withdrawal:{request_id}:refund"


class WithdrawalService:
    def __init__(
        self,
        balance_repo: BalanceRepositoryProtocol | None = None,
        repo: WithdrawalRepositoryProtocol | None = None,
        notifier: PayoutNotifier | None = None,
        users: UserService | None = None,
        schedule: FeeSchedule | None = None,
    ) -> None:
        self._balances: BalanceRepositoryProtocol = balance_repo or BalanceRepository()
        self._ledger = IdempotentLedger(self._balances)
        self._repo: WithdrawalRepositoryProtocol = repo or WithdrawalRepository()
        self._notifier = notifier or PayoutNotifier()
        self._users = users or UserService()
        self._schedule = schedule or FeeSchedule.from_settings()

    async def _withdrawable(self, db: AsyncSession, user_id: str) -> int:
        async with store_errors():
            balance = await self._balances.get_balance(db, user_id)
        return (balance or Balance(user_id=user_id)).withdrawable

    async def quote(self, db: AsyncSession, user_id: str, credits: int) -> WithdrawalQuote:
        """Pure fee breakdown; reads the balance but never mutates it."""
        quote = compute_quote(credits, self._schedule)
        withdrawable = await self._withdrawable(db, user_id)
        if credits > withdrawable:
            raise InsufficientWithdrawableError(credits, withdrawable)
        return quote

    async def submit(
        self, db: AsyncSession, user_id: str, credits: int, destination_address: str
    ) -> WithdrawalRequest:
        if not is_likely_bech32(destination_address):
            raise InvalidAddressError()
        quote = compute_quote(credits, self._schedule)
        request_id = str(uuid.uuid4())

        try:
            try:
                result = await self._ledger.debit_ordered(
                    db,
                    user_id,
                    credits,
                    WITHDRAWAL_ORDER,
                    LedgerReason.WITHDRAWAL.value,
                    withdrawal_key(request_id),
                )
            except InsufficientFundsError as exc:
                raise InsufficientWithdrawableError(credits, exc.available) from exc

            entry = result.entry
            async with store_errors():
                created = await self._repo.create(
                    db,
                    WithdrawalRequest(
                        id=request_id,
                        user_id=user_id,
                        credits=credits,
                        destination_address=destination_address,
                        status=WithdrawalStatus.PENDING,
                        gross_lovelace=quote.gross_lovelace,
                        platform_fee_lovelace=quote.platform_fee_lovelace,
                        network_fee_lovelace=quote.network_fee_lovelace,
                        net_lovelace=quote.net_lovelace,
                        drawn_winnings=-entry.winnings_delta,
                        drawn_purchased=-entry.purchased_delta,
                        ledger_entry_id=entry.id,
                    ),
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Withdrawal submitted: id=%s user=%s credits=%d (w=%d p=%d) to=%s net=%d",
            created.id,
            user_id,
            credits,
            created.drawn_winnings,
            created.drawn_purchased,
            truncate(destination_address, 20),
            created.net_lovelace,
        )
        await self._notifier.notify(created)
        return created

    async def list_for_user(
        self, db: AsyncSession, user_id: str, limit: int = 50
    ) -> list[WithdrawalRequest]:
        async with store_errors():
            return await self._repo.list_by_user(db, user_id, limit)

    async def list_queue(
        self, db: AsyncSession, status: WithdrawalStatus | None, limit: int = 100
    ) -> list[WithdrawalRequest]:
        async with store_errors():
            return await self._repo.list_by_status(db, status, limit)

    async def transition(
        self,
        db: AsyncSession,
        request_id: str,
        target: WithdrawalStatus,
        admin_notes: str | None = None,
        payment_tx_hash: str | None = None,
    ) -> WithdrawalRequest:
        """Drive one admin status change; invalid transitions change nothing."""
        try:
            uuid.UUID(request_id)
        except ValueError:
            raise WithdrawalNotFoundError(request_id) from None
        if target == WithdrawalStatus.COMPLETED:
            if not payment_tx_hash:
                raise PaymentProofRequiredError()
            payment_tx_hash = validate_tx_hash(payment_tx_hash)

        try:
            async with store_errors():
                current = await self._repo.lock(db, request_id)
            if current is None:
                raise WithdrawalNotFoundError(request_id)
            check_transition(current.status, target)

            async with store_errors():
                updated = await self._repo.update_status(
                    db, request_id, current.status, target, admin_notes, payment_tx_hash
                )
            if updated is None:
                raise InvalidStatusTransitionError(current.status.value, target.value)

            if target == WithdrawalStatus.CANCELLED:
                await self._refund(db, updated)
            elif target == WithdrawalStatus.COMPLETED:
                async with store_errors():
                    await self._users.record_withdrawal(db, updated.user_id, updated.credits)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Withdrawal %s: %s -> %s", request_id, current.status.value, target.value
        )
        return updated

    async def _refund(self, db: AsyncSession, request: WithdrawalRequest) -> None:
        """Restore exactly the buckets the submit drew from."""
        delta = BucketDelta(
            purchased=request.drawn_purchased, winnings=request.drawn_winnings
        )
        if delta.is_zero:
            return
        await self._ledger.apply(
            db,
            request.user_id,
            delta,
            LedgerReason.WITHDRAWAL_REFUND.value,
            refund_key(request.id),
        )
