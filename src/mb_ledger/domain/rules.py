"""Pure balance arithmetic. Every function here is side-effect free."""

from collections.abc import Sequence
from dataclasses import replace

from src.mb_common.enums import Bucket
from src.mb_common.errors import InsufficientFundsError, InvalidDeltaError
from src.mb_ledger.domain.models import Balance, BucketDelta

MAX_REASON_LENGTH = 128


def normalize_reason(reason: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidDeltaError("reason is required")
    return reason[:MAX_REASON_LENGTH]


def apply_delta(balance: Balance, delta: BucketDelta) -> Balance:
    """Return the balance after ``delta``; raise if any bucket would go negative."""
    if delta.is_zero:
        raise InvalidDeltaError("delta must be non-zero")
    for bucket in Bucket:
        after = balance.get(bucket) + delta.get(bucket)
        if after < 0:
            raise InsufficientFundsError(
                bucket.value, required=-delta.get(bucket), available=balance.get(bucket)
            )
    return replace(
        balance,
        purchased_credits=balance.purchased_credits + delta.purchased,
        winnings_credits=balance.winnings_credits + delta.winnings,
        bonus_credits=balance.bonus_credits + delta.bonus,
    )


def plan_ordered_debit(
    balance: Balance, amount: int, order: Sequence[Bucket]
) -> BucketDelta:
    """Split a debit of ``amount`` across ``order``, draining each bucket before the next.

    Buckets not listed in ``order`` are never touched. Raises InsufficientFundsError
    (bucket names joined with '+') when the listed buckets cannot cover ``amount``.
    """
    if amount <= 0:
        raise InvalidDeltaError("debit amount must be positive")
    available = sum(balance.get(b) for b in order)
    if amount > available:
        raise InsufficientFundsError(
            "+".join(b.value for b in order), required=amount, available=available
        )
    remaining = amount
    parts: dict[str, int] = {}
    for bucket in order:
        take = min(remaining, balance.get(bucket))
        if take:
            parts[bucket.value] = -take
        remaining -= take
        if remaining == 0:
            break
    return BucketDelta(**parts)
