"""Domain models for mb_payment — pure dataclasses, no I/O."""

from dataclasses import dataclass, field
from enum import Enum


class IndexerTxStatus(str, Enum):
    """What the indexer says about a hash on a single lookup."""

    CONFIRMED = "confirmed"
    PENDING = "pending"        # seen in mempool, not in a block yet
    NOT_FOUND = "not_found"


class VerificationStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class PaymentClaim:
    """Ephemeral client claim; never persisted until verified."""

    tx_hash: str
    expected_amount: int           # lovelace
    expected_address: str
    wallet_address: str | None = None


@dataclass(frozen=True)
class TxOutput:
    address: str
    lovelace: int


@dataclass(frozen=True)
class IndexerLookup:
    status: IndexerTxStatus
    outputs: tuple[TxOutput, ...] = ()
    block_height: int | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Normalized verdict, produced immediately after the external calls."""

    verified: bool
    status: VerificationStatus
    detail: str = ""
    attempts: int = 0
    retryable: bool = False
    block_height: int | None = None
    matched_output: TxOutput | None = field(default=None, compare=False)

    @property
    def is_pending(self) -> bool:
        """Indexer lag: the caller should ask the client to poll later."""
        return self.status in (VerificationStatus.PENDING, VerificationStatus.NOT_FOUND)
