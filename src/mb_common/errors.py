"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Ledger / balance store
  3xxx: Payment verification
  4xxx: Purchase
  5xxx: Withdrawal
  6xxx: Game settlement
  9xxx: System

VerificationPending is deliberately absent: a payment that is not indexed yet
is a status, not an error (see mb_payment.domain.models.VerificationStatus).
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        data: Any = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.data = data
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1005, f"User not found: {user_id}", 404)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, bucket: str, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds in {bucket}: required {required} credits, "
            f"available {available} credits",
            422,
        )
        self.bucket = bucket
        self.required = required
        self.available = available


class BalanceNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Balance not found for user {user_id}", 404)


class StoreUnavailableError(AppError):
    """Infrastructure failure. Safe to retry: a failed apply leaves no partial state."""

    def __init__(self, detail: str = "Balance store unavailable") -> None:
        super().__init__(2003, f"Store unavailable: {detail}", 503)


class InvalidDeltaError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, f"Invalid ledger delta: {detail}", 400)


class IdempotencyConflictError(AppError):
    """A concurrent writer committed the same idempotency key first."""

    def __init__(self, key: str) -> None:
        super().__init__(2005, f"Idempotency key already committed: {key}", 409)
        self.key = key


# --- 3xxx: Payment ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, detail, 400)


class VerificationFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Payment verification failed: {detail}", 500)


class IndexerUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, f"Payment verification temporarily unavailable: {detail}", 503)


# --- 4xxx: Purchase ---

class DuplicateTransactionError(AppError):
    """The tx hash already funded a credit event. Carries the prior outcome in ``data``."""

    def __init__(self, tx_hash: str, prior: dict[str, Any] | None = None) -> None:
        super().__init__(
            4001,
            f"Transaction already processed: {tx_hash[:16]}...",
            400,
            data=prior,
        )
        self.tx_hash = tx_hash


class TransactionLogError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            4002,
            f"Failed to record transaction; credits have been rolled back: {detail}",
            500,
        )


class CompensationFailedError(AppError):
    """The compensating ledger entry itself failed; manual reconciliation required."""

    def __init__(self, tx_hash: str, user_id: str, amount: int) -> None:
        super().__init__(
            4003,
            "Failed to record transaction and failed to roll back credits; "
            "manual reconciliation required",
            500,
        )
        self.tx_hash = tx_hash
        self.user_id = user_id
        self.amount = amount


class PurchaseReversedError(AppError):
    def __init__(self, tx_hash: str) -> None:
        super().__init__(
            4004,
            f"Purchase for {tx_hash[:16]}... was reversed after a logging failure; contact support",
            409,
        )


# --- 5xxx: Withdrawal ---

class InsufficientWithdrawableError(AppError):
    def __init__(self, requested: int, withdrawable: int) -> None:
        super().__init__(
            5001,
            f"Not enough withdrawable credits: requested {requested}, withdrawable {withdrawable}",
            400,
        )
        self.requested = requested
        self.withdrawable = withdrawable


class BelowMinimumWithdrawalError(AppError):
    def __init__(self, net_lovelace: int, minimum_lovelace: int) -> None:
        super().__init__(
            5002,
            f"Below minimum withdrawal: net {net_lovelace} lovelace, minimum {minimum_lovelace}",
            400,
        )


class WithdrawalNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(5003, f"Withdrawal request not found: {request_id}", 404)


class InvalidStatusTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            5004,
            f"Invalid withdrawal status transition: {current} -> {target}",
            409,
        )


class InvalidAddressError(AppError):
    def __init__(self) -> None:
        super().__init__(5005, "Invalid destination address", 400)


class PaymentProofRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(5006, "Completing a withdrawal requires a payout tx hash", 400)


# --- 6xxx: Game settlement ---

class GameSessionNotFoundError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(6001, f"Game session not found: {session_id}", 404)


class GameSessionForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(6002, "Game session belongs to another user", 403)


class GameSessionSettledError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(6003, f"Game session already settled: {session_id}", 409)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self, retry_after: int = 60) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)
        self.retry_after = retry_after


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
