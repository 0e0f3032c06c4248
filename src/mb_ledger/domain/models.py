"""Domain models for mb_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mb_common.enums import Bucket


@dataclass
class Balance:
    user_id: str
    purchased_credits: int = 0
    winnings_credits: int = 0
    bonus_credits: int = 0
    version: int = 0
    updated_at: datetime | None = None

    @property
    def total(self) -> int:
        return self.purchased_credits + self.winnings_credits + self.bonus_credits

    @property
    def withdrawable(self) -> int:
        # bonus credits never leave the system
        return self.winnings_credits + self.purchased_credits

    def get(self, bucket: Bucket) -> int:
        return {
            Bucket.PURCHASED: self.purchased_credits,
            Bucket.WINNINGS: self.winnings_credits,
            Bucket.BONUS: self.bonus_credits,
        }[bucket]


@dataclass(frozen=True)
class BucketDelta:
    """Signed per-bucket change. ``total`` is the delta recorded on the ledger entry."""

    purchased: int = 0
    winnings: int = 0
    bonus: int = 0

    @classmethod
    def of(cls, bucket: Bucket, amount: int) -> "BucketDelta":
        return cls(**{bucket.value: amount})

    @property
    def total(self) -> int:
        return self.purchased + self.winnings + self.bonus

    @property
    def is_zero(self) -> bool:
        return self.purchased == 0 and self.winnings == 0 and self.bonus == 0

    def get(self, bucket: Bucket) -> int:
        return getattr(self, bucket.value)

    def negated(self) -> "BucketDelta":
        return BucketDelta(-self.purchased, -self.winnings, -self.bonus)


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    delta: int                       # signed total across buckets
    purchased_delta: int
    winnings_delta: int
    bonus_delta: int
    balance_after: int               # total balance snapshot after the op
    reason: str
    idempotency_key: str | None = None
    created_at: datetime | None = None

    @property
    def bucket_delta(self) -> BucketDelta:
        return BucketDelta(self.purchased_delta, self.winnings_delta, self.bonus_delta)


@dataclass
class ApplyResult:
    """Outcome of one ledger call.

    ``replayed`` is True when the idempotency key had already been committed;
    ``new_balance`` is then the balance recorded by that earlier entry.
    """

    balance: Balance
    entry: LedgerEntry
    replayed: bool = False

    @property
    def new_balance(self) -> int:
        return self.entry.balance_after
