"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Bucket(str, Enum):
    """Independently tracked credit categories on a balance row."""

    PURCHASED = "purchased"
    WINNINGS = "winnings"
    BONUS = "bonus"


class LedgerReason(str, Enum):
    """Well-known ledger reason strings. Game reasons are built as ``win:<game>``."""

    CREDIT_PURCHASE = "credit_purchase"
    PURCHASE_ROLLBACK = "purchase_rollback"
    WITHDRAWAL = "withdrawal"
    WITHDRAWAL_REFUND = "withdrawal_refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransactionType(str, Enum):
    PURCHASE = "purchase"
