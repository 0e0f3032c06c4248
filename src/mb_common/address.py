"""Cardano address sanity checks. Not a full bech32 decoder: no checksum validation."""

import re

_BECH32_ADDR_RE = re.compile(r"^addr(_test)?1[0-9a-z]{20,}$", re.IGNORECASE)
_HEX_ADDR_RE = re.compile(r"^[0-9a-fA-F]{56,}$")

MIN_WALLET_ADDRESS_LENGTH = 50


def is_likely_bech32(address: object) -> bool:
    """Quick gate for mainnet/testnet payment addresses (addr1... / addr_test1...)."""
    return isinstance(address, str) and bool(_BECH32_ADDR_RE.match(address))


def is_wallet_address(address: object) -> bool:
    """Accept bech32 or raw-hex (CIP-30 wallet API) encodings of a wallet address."""
    if not isinstance(address, str) or len(address) < MIN_WALLET_ADDRESS_LENGTH:
        return False
    return is_likely_bech32(address) or bool(_HEX_ADDR_RE.match(address))


def truncate(value: str | None, keep: int = 16) -> str:
    """Shorten hashes/addresses for log lines."""
    if not value:
        return ""
    return value if len(value) <= keep else f"{value[:keep]}..."
