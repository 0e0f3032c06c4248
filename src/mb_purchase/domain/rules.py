"""Pure purchase rules: input gates and welcome bonus eligibility."""

from src.mb_common.address import is_wallet_address
from src.mb_common.errors import InvalidInputError
from src.mb_payment.domain.validation import validate_tx_hash
from src.mb_purchase.domain.models import PurchaseCommand


def purchase_key(tx_hash: str) -> str:
    return f"purchase:{tx_hash}"


def rollback_key(tx_hash: str) -> str:
    return f"purchase:{tx_hash}:rollback"


def validate_purchase(
    cmd: PurchaseCommand,
    lovelace_per_credit: int,
    tolerance_lovelace: int,
    payment_address: str,
) -> tuple[str, int, str]:
    """Return ``(tx_hash, expected_amount, expected_address)`` or raise InvalidInputError."""
    if isinstance(cmd.credits, bool) or not isinstance(cmd.credits, int) or cmd.credits <= 0:
        raise InvalidInputError("Invalid credits amount")
    if not is_wallet_address(cmd.wallet_address):
        raise InvalidInputError("Invalid wallet address format")
    tx_hash = validate_tx_hash(cmd.tx_hash)

    required = cmd.credits * lovelace_per_credit
    expected_amount = cmd.expected_amount if cmd.expected_amount is not None else required
    if expected_amount <= 0:
        raise InvalidInputError("Expected amount must be positive")
    if expected_amount + tolerance_lovelace < required:
        raise InvalidInputError("Expected amount does not cover the requested credits")

    expected_address = cmd.expected_address or payment_address
    if not expected_address:
        raise InvalidInputError("Missing expected payment address")
    if payment_address and expected_address != payment_address:
        raise InvalidInputError("Expected address is not the configured payment address")
    return tx_hash, expected_amount, expected_address


def welcome_bonus(
    already_claimed: bool,
    balance_before: int,
    amount: int,
    require_zero_balance: bool = True,
) -> int:
    """One-time bonus: never claimed, and (by default) a pre-purchase balance of exactly zero."""
    if already_claimed:
        return 0
    if require_zero_balance and balance_before != 0:
        return 0
    return amount
