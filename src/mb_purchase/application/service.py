"""PurchaseProcessor: verify payment, credit the ledger, record the transaction.

The credit and the transaction row live in separate commits (a saga, not one
cross-store transaction). Every step is independently retryable:

  credit      ledger key ``purchase:<tx>``           (replays are no-ops)
  record      UNIQUE(tx_hash) on credit_transactions
  compensate  ledger key ``purchase:<tx>:rollback``  (only if record failed)

If compensation itself fails the error is logged at CRITICAL and surfaced as
CompensationFailedError; nothing is swallowed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mb_common.address import truncate
from src.mb_common.database import store_errors
from src.mb_common.enums import LedgerReason
from src.mb_common.errors import (
    CompensationFailedError,
    DuplicateTransactionError,
    IdempotencyConflictError,
    PurchaseReversedError,
    TransactionLogError,
)
from src.mb_gateway.user.service import UserService
from src.mb_ledger.domain.ledger import IdempotentLedger
from src.mb_ledger.domain.models import ApplyResult, Balance, BucketDelta, LedgerEntry
from src.mb_ledger.domain.repository import BalanceRepositoryProtocol
from src.mb_ledger.infrastructure.persistence import BalanceRepository
from src.mb_payment.application.verifier import (
    PaymentVerifier,
    get_payment_verifier,
    raise_for_failure,
    verify_within_deadline,
)
from src.mb_purchase.domain.models import (
    CreditTransaction,
    PurchaseCommand,
    PurchaseOutcome,
    PurchaseStatus,
)
from src.mb_purchase.domain.repository import CreditTransactionRepositoryProtocol
from src.mb_purchase.domain.rules import (
    purchase_key,
    rollback_key,
    validate_purchase,
    welcome_bonus,
)
from src.mb_purchase.infrastructure.persistence import CreditTransactionRepository

logger = logging.getLogger(__name__)


class PurchaseProcessor:
    def __init__(
        self,
        verifier: PaymentVerifier,
        balance_repo: BalanceRepositoryProtocol | None = None,
        tx_repo: CreditTransactionRepositoryProtocol | None = None,
        users: UserService | None = None,
        verify_timeout_seconds: float | None = None,
    ) -> None:
        self._verifier = verifier
        self._balances: BalanceRepositoryProtocol = balance_repo or BalanceRepository()
        self._ledger = IdempotentLedger(self._balances)
        self._tx_repo: CreditTransactionRepositoryProtocol = (
            tx_repo or CreditTransactionRepository()
        )
        self._users = users or UserService()
        self._verify_timeout = (
            verify_timeout_seconds
            if verify_timeout_seconds is not None
            else settings.VERIFY_REQUEST_TIMEOUT_SECONDS
        )

    async def process(self, db: AsyncSession, cmd: PurchaseCommand) -> PurchaseOutcome:
        tx_hash, expected_amount, expected_address = validate_purchase(
            cmd,
            settings.LOVELACE_PER_CREDIT,
            settings.PAYMENT_AMOUNT_TOLERANCE_LOVELACE,
            settings.PAYMENT_ADDRESS,
        )

        async with store_errors():
            prior = await self._tx_repo.get_by_tx_hash(db, tx_hash)
        if prior is not None:
            logger.info("Duplicate purchase rejected: tx=%s", truncate(tx_hash))
            raise DuplicateTransactionError(tx_hash, prior.to_prior())

        verification = await verify_within_deadline(
            self._verifier, tx_hash, expected_amount, expected_address, self._verify_timeout
        )
        raise_for_failure(verification)
        if verification.is_pending:
            logger.info("Purchase pending verification: tx=%s", truncate(tx_hash))
            return PurchaseOutcome(
                status=PurchaseStatus.PENDING, tx_hash=tx_hash, detail=verification.detail
            )

        user_id = await self._resolve_user(db, cmd.wallet_address)
        credit = await self._credit(db, user_id, tx_hash, cmd.credits)
        tx = await self._record(db, user_id, tx_hash, cmd.wallet_address, expected_amount, credit)
        await self._update_totals(db, user_id, credit.entry.purchased_delta)

        entry = credit.entry
        logger.info(
            "Purchase completed: tx=%s user=%s credits=%d bonus=%d balance=%d",
            truncate(tx_hash),
            user_id,
            entry.purchased_delta,
            entry.bonus_delta,
            entry.balance_after,
        )
        return PurchaseOutcome(
            status=PurchaseStatus.COMPLETED,
            tx_hash=tx_hash,
            new_balance=entry.balance_after,
            old_balance=entry.balance_after - entry.delta,
            credits_added=entry.purchased_delta,
            bonus=entry.bonus_delta,
            transaction_id=tx.id,
        )

    async def recover(self, db: AsyncSession, cmd: PurchaseCommand) -> PurchaseOutcome:
        """Re-drive a purchase whose credit landed but whose transaction row is missing.

        A hash that already has its row is reported as already processed
        instead of failing; everything else runs the normal purchase path.
        """
        try:
            return await self.process(db, cmd)
        except DuplicateTransactionError as exc:
            if exc.data is None:
                raise
            return PurchaseOutcome(
                status=PurchaseStatus.ALREADY_PROCESSED,
                tx_hash=exc.tx_hash,
                detail="This transaction was already processed successfully",
                prior=exc.data,
            )

    async def list_purchases(
        self, db: AsyncSession, user_id: str, limit: int = 50
    ) -> list[CreditTransaction]:
        async with store_errors():
            return await self._tx_repo.list_by_user(db, user_id, limit)

    async def _resolve_user(self, db: AsyncSession, wallet_address: str) -> str:
        try:
            async with store_errors():
                user = await self._users.get_or_create_by_wallet(db, wallet_address)
            user_id = str(user.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return user_id

    async def _credit(
        self, db: AsyncSession, user_id: str, tx_hash: str, credits: int
    ) -> ApplyResult:
        key = purchase_key(tx_hash)
        try:
            async with store_errors():
                claimed = await self._users.lock_bonus_state(db, user_id)

            def compute(balance: Balance) -> BucketDelta:
                bonus = welcome_bonus(
                    claimed,
                    balance.total,
                    settings.WELCOME_BONUS_CREDITS,
                    settings.WELCOME_BONUS_FOR_ZERO_BALANCE,
                )
                return BucketDelta(purchased=credits, bonus=bonus)

            result = await self._ledger.apply_with(
                db, user_id, compute, LedgerReason.CREDIT_PURCHASE.value, key
            )
            if not result.replayed and result.entry.bonus_delta > 0:
                async with store_errors():
                    await self._users.set_bonus_claimed(db, user_id)
                logger.info(
                    "Welcome bonus granted: user=%s bonus=%d", user_id, result.entry.bonus_delta
                )
            await db.commit()
        except IdempotencyConflictError:
            await db.rollback()
            async with store_errors():
                existing = await self._balances.find_entry_by_key(db, key)
            if existing is None:
                raise
            result = ApplyResult(
                balance=Balance(user_id=existing.user_id), entry=existing, replayed=True
            )
        except Exception:
            await db.rollback()
            raise

        if result.replayed:
            await self._check_resumable(db, user_id, tx_hash, result.entry)
        return result

    async def _check_resumable(
        self, db: AsyncSession, user_id: str, tx_hash: str, entry: LedgerEntry
    ) -> None:
        """A replayed credit may only resume its own, unreversed purchase."""
        if entry.user_id != user_id:
            logger.warning(
                "Tx %s already credited to another user %s", truncate(tx_hash), entry.user_id
            )
            raise DuplicateTransactionError(tx_hash)
        async with store_errors():
            reversal = await self._balances.find_entry_by_key(db, rollback_key(tx_hash))
        if reversal is not None:
            raise PurchaseReversedError(tx_hash)
        logger.info("Resuming purchase with committed credit: tx=%s", truncate(tx_hash))

    async def _record(
        self,
        db: AsyncSession,
        user_id: str,
        tx_hash: str,
        wallet_address: str,
        amount_lovelace: int,
        credit: ApplyResult,
    ) -> CreditTransaction:
        entry = credit.entry
        tx = CreditTransaction(
            user_id=user_id,
            tx_hash=tx_hash,
            credits=entry.purchased_delta,
            bonus_credits=entry.bonus_delta,
            amount_lovelace=amount_lovelace,
            wallet_address=wallet_address,
            ledger_entry_id=entry.id,
            balance_after=entry.balance_after,
        )
        try:
            async with store_errors():
                saved = await self._tx_repo.insert(db, tx)
            await db.commit()
            return saved
        except Exception as exc:
            await db.rollback()
            if isinstance(exc, DuplicateTransactionError):
                async with store_errors():
                    prior = await self._tx_repo.get_by_tx_hash(db, tx_hash)
                if (
                    prior is not None
                    and prior.user_id == user_id
                    and prior.ledger_entry_id == entry.id
                ):
                    # A concurrent request recorded this same credit first.
                    logger.info(
                        "Purchase recorded by a concurrent request: tx=%s", truncate(tx_hash)
                    )
                    raise DuplicateTransactionError(tx_hash, prior.to_prior()) from exc
            logger.error(
                "Credit transaction log failed: tx=%s user=%s error=%s",
                truncate(tx_hash),
                user_id,
                exc,
            )
            await self._compensate(db, user_id, tx_hash, entry)
            raise TransactionLogError(getattr(exc, "message", str(exc))) from exc

    async def _compensate(
        self, db: AsyncSession, user_id: str, tx_hash: str, entry: LedgerEntry
    ) -> None:
        try:
            # users before balances, the same lock order as _credit
            async with store_errors():
                await self._users.lock_bonus_state(db, user_id)
            await self._ledger.apply(
                db,
                user_id,
                entry.bucket_delta.negated(),
                LedgerReason.PURCHASE_ROLLBACK.value,
                rollback_key(tx_hash),
            )
            if entry.bonus_delta > 0:
                async with store_errors():
                    await self._users.set_bonus_claimed(db, user_id, claimed=False)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.critical(
                "COMPENSATION FAILED, manual reconciliation required: "
                "tx=%s user=%s amount=%d error=%s",
                tx_hash,
                user_id,
                entry.delta,
                exc,
            )
            raise CompensationFailedError(tx_hash, user_id, entry.delta) from exc
        logger.warning(
            "Purchase credit rolled back: tx=%s user=%s amount=%d",
            truncate(tx_hash),
            user_id,
            entry.delta,
        )

    async def _update_totals(self, db: AsyncSession, user_id: str, credits: int) -> None:
        """Best-effort aggregate update; never undoes the credit."""
        try:
            await self._users.record_purchase(db, user_id, credits)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.warning("Purchase totals update failed for user %s: %s", user_id, exc)


def get_purchase_processor() -> PurchaseProcessor:
    """FastAPI dependency."""
    return PurchaseProcessor(verifier=get_payment_verifier())
