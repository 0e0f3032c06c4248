"""PaymentVerifier: confirm that a tx hash pays the expected amount to the
expected address, tolerating indexer lag with bounded exponential backoff.

Retried: not-found, mempool-only, rate limiting, 5xx and network failures.
Not retried: malformed input (raised before any call) and hard indexer errors.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from config.settings import settings
from src.mb_common.address import truncate
from src.mb_common.errors import IndexerUnavailableError, VerificationFailedError
from src.mb_payment.domain.backoff import BackoffPolicy
from src.mb_payment.domain.models import (
    IndexerLookup,
    IndexerTxStatus,
    TxOutput,
    VerificationResult,
    VerificationStatus,
)
from src.mb_payment.domain.validation import validate_expected, validate_tx_hash
from src.mb_payment.infrastructure.indexer_client import (
    IndexerHardError,
    IndexerTransientError,
    get_indexer_client,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class IndexerProtocol(Protocol):
    async def lookup_transaction(self, tx_hash: str) -> IndexerLookup: ...


def find_matching_output(
    outputs: tuple[TxOutput, ...],
    expected_amount: int,
    expected_address: str,
    tolerance: int,
) -> TxOutput | None:
    for output in outputs:
        if output.address != expected_address:
            continue
        if abs(output.lovelace - expected_amount) <= tolerance:
            return output
    return None


class PaymentVerifier:
    def __init__(
        self,
        indexer: IndexerProtocol,
        policy: BackoffPolicy | None = None,
        tolerance_lovelace: int = 50_000,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._indexer = indexer
        self._policy = policy or BackoffPolicy()
        self._tolerance = tolerance_lovelace
        self._sleep = sleep

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    async def verify(
        self, tx_hash: str, expected_amount: int, expected_address: str
    ) -> VerificationResult:
        """Return a normalized verdict. Raises InvalidInputError only for bad input."""
        tx_hash = validate_tx_hash(tx_hash)
        validate_expected(expected_amount, expected_address)

        last_status = VerificationStatus.NOT_FOUND
        last_detail = "Transaction not found on chain"
        max_attempts = self._policy.max_attempts

        for attempt in range(max_attempts):
            try:
                lookup = await self._indexer.lookup_transaction(tx_hash)
            except IndexerHardError as exc:
                logger.error("Verification aborted for %s: %s", truncate(tx_hash), exc)
                return VerificationResult(
                    verified=False,
                    status=VerificationStatus.ERROR,
                    detail=str(exc),
                    attempts=attempt + 1,
                )
            except IndexerTransientError as exc:
                last_status = VerificationStatus.ERROR
                last_detail = str(exc)
            else:
                if lookup.status == IndexerTxStatus.CONFIRMED:
                    return self._judge(
                        tx_hash, lookup, expected_amount, expected_address, attempt + 1
                    )
                if lookup.status == IndexerTxStatus.PENDING:
                    last_status = VerificationStatus.PENDING
                    last_detail = "Transaction is in the mempool, awaiting confirmation"
                else:
                    last_status = VerificationStatus.NOT_FOUND
                    last_detail = "Transaction not found on chain"

            if attempt + 1 < max_attempts:
                delay = self._policy.delay(attempt)
                logger.info(
                    "Verification retry %d/%d for %s in %.1fs (%s)",
                    attempt + 1,
                    max_attempts,
                    truncate(tx_hash),
                    delay,
                    last_status.value,
                )
                await self._sleep(delay)

        logger.warning(
            "Verification exhausted for %s after %d attempts: %s",
            truncate(tx_hash),
            max_attempts,
            last_status.value,
        )
        return VerificationResult(
            verified=False,
            status=last_status,
            detail=last_detail,
            attempts=max_attempts,
            retryable=last_status == VerificationStatus.ERROR,
        )

    def _judge(
        self,
        tx_hash: str,
        lookup: IndexerLookup,
        expected_amount: int,
        expected_address: str,
        attempts: int,
    ) -> VerificationResult:
        match = find_matching_output(
            lookup.outputs, expected_amount, expected_address, self._tolerance
        )
        if match is None:
            logger.warning(
                "Payment mismatch for %s: expected %d lovelace to %s, outputs=%d",
                truncate(tx_hash),
                expected_amount,
                truncate(expected_address, 20),
                len(lookup.outputs),
            )
            return VerificationResult(
                verified=False,
                status=VerificationStatus.ERROR,
                detail="Amount or address mismatch",
                attempts=attempts,
                block_height=lookup.block_height,
            )
        logger.info("Payment verified: %s amount=%d", truncate(tx_hash), match.lovelace)
        return VerificationResult(
            verified=True,
            status=VerificationStatus.CONFIRMED,
            detail="Payment confirmed",
            attempts=attempts,
            block_height=lookup.block_height,
            matched_output=match,
        )


def get_payment_verifier() -> PaymentVerifier:
    """FastAPI dependency: verifier wired to the shared indexer client."""
    return PaymentVerifier(
        indexer=get_indexer_client(),
        policy=BackoffPolicy(
            max_attempts=settings.VERIFY_MAX_ATTEMPTS,
            base_delay=settings.VERIFY_BASE_DELAY_SECONDS,
            max_delay=settings.VERIFY_MAX_DELAY_SECONDS,
        ),
        tolerance_lovelace=settings.PAYMENT_AMOUNT_TOLERANCE_LOVELACE,
    )


async def verify_within_deadline(
    verifier: PaymentVerifier,
    tx_hash: str,
    expected_amount: int,
    expected_address: str,
    timeout_seconds: float,
) -> VerificationResult:
    """Run the verifier under a caller deadline; an expired deadline reads as pending."""
    try:
        async with asyncio.timeout(timeout_seconds):
            return await verifier.verify(tx_hash, expected_amount, expected_address)
    except TimeoutError:
        logger.warning("Verification deadline reached for %s", truncate(tx_hash))
        return VerificationResult(
            verified=False,
            status=VerificationStatus.PENDING,
            detail="Verification deadline reached before confirmation",
        )


def raise_for_failure(result: VerificationResult) -> None:
    """Raise for hard failures; confirmed and pending results pass through."""
    if result.verified or result.is_pending:
        return
    if result.retryable:
        raise IndexerUnavailableError(result.detail)
    raise VerificationFailedError(result.detail)
