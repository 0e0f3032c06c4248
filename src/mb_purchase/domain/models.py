"""Domain models for mb_purchase — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class PurchaseStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class PurchaseCommand:
    tx_hash: str
    credits: int
    wallet_address: str
    expected_amount: int | None = None     # lovelace; derived from credits when absent
    expected_address: str | None = None    # defaults to the configured payment address


@dataclass
class CreditTransaction:
    """Permanent proof that ``tx_hash`` funded exactly one credit event."""

    user_id: str
    tx_hash: str
    credits: int
    bonus_credits: int
    amount_lovelace: int
    wallet_address: str
    ledger_entry_id: int | None
    balance_after: int
    transaction_type: str = "purchase"
    id: str | None = None
    created_at: datetime | None = None

    def to_prior(self) -> dict[str, Any]:
        """Summary returned to a client that resubmits the same hash."""
        return {
            "transactionId": self.id,
            "creditsAdded": self.credits,
            "bonus": self.bonus_credits,
            "newBalance": self.balance_after,
            "processedAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class PurchaseOutcome:
    status: PurchaseStatus
    tx_hash: str
    new_balance: int | None = None
    old_balance: int | None = None
    credits_added: int = 0
    bonus: int = 0
    transaction_id: str | None = None
    detail: str = ""
    prior: dict[str, Any] | None = None
