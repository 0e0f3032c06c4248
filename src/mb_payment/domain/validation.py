"""Input gates applied before any network call. Failures are never retried."""

import re

from src.mb_common.errors import InvalidInputError

_TX_HASH_RE = re.compile(r"^[a-fA-F0-9]{64}$")
_SENTINEL_PREFIXES = ("test_",)
_SENTINEL_HASHES = frozenset({"0" * 64, "f" * 64})


def validate_tx_hash(tx_hash: object) -> str:
    """Return the hash lower-cased, or raise InvalidInputError."""
    if not isinstance(tx_hash, str) or not tx_hash:
        raise InvalidInputError("Missing transaction hash")
    if tx_hash.startswith(_SENTINEL_PREFIXES):
        raise InvalidInputError("Test transactions are not allowed")
    if not _TX_HASH_RE.match(tx_hash):
        raise InvalidInputError("Invalid transaction hash format")
    normalized = tx_hash.lower()
    if normalized in _SENTINEL_HASHES:
        raise InvalidInputError("Test transactions are not allowed")
    return normalized


def validate_expected(expected_amount: int, expected_address: str) -> None:
    if expected_amount <= 0:
        raise InvalidInputError("Expected amount must be positive")
    if not expected_address:
        raise InvalidInputError("Missing expected payment address")
