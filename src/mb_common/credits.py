"""Integer arithmetic for credits and lovelace.

Credits and lovelace are always int. No float, no Decimal.
1 ADA = 1_000_000 lovelace.
"""

import re

LOVELACE_PER_ADA = 1_000_000

_INT_STRING_RE = re.compile(r"^-?\d+$")


def lovelace_to_display(lovelace: int) -> str:
    """Format lovelace as ADA: 12_345_678 -> '12.345678 ADA', -170000 -> '-0.170000 ADA'."""
    sign = "-" if lovelace < 0 else ""
    abs_l = abs(lovelace)
    return f"{sign}{abs_l // LOVELACE_PER_ADA:,}.{abs_l % LOVELACE_PER_ADA:06d} ADA"


def apply_bps(amount: int, bps: int) -> int:
    """Ceiling basis-point share: ceil(amount * bps / 10000). Platform never under-collects."""
    if amount == 0 or bps == 0:
        return 0
    return (amount * bps + 9999) // 10000


def parse_int_string(value: str) -> int:
    """Parse a decimal-string integer as used on the ledger RPC boundary.

    Rejects floats, exponents, whitespace and empty strings.
    """
    if not isinstance(value, str) or not _INT_STRING_RE.match(value):
        raise ValueError(f"Not a decimal integer string: {value!r}")
    return int(value)
