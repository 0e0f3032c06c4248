"""Domain models for mb_withdrawal — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from config.settings import settings
from src.mb_common.credits import lovelace_to_display
from src.mb_common.enums import WithdrawalStatus


@dataclass(frozen=True)
class FeeSchedule:
    lovelace_per_credit: int
    spread_bps: int
    platform_fee_bps: int
    network_fee_lovelace: int
    min_net_lovelace: int

    @classmethod
    def from_settings(cls) -> "FeeSchedule":
        return cls(
            lovelace_per_credit=settings.LOVELACE_PER_CREDIT,
            spread_bps=settings.WITHDRAW_SPREAD_BPS,
            platform_fee_bps=settings.WITHDRAW_PLATFORM_FEE_BPS,
            network_fee_lovelace=settings.WITHDRAW_NETWORK_FEE_LOVELACE,
            min_net_lovelace=settings.WITHDRAW_MIN_NET_LOVELACE,
        )


@dataclass(frozen=True)
class WithdrawalQuote:
    credits: int
    cashout_rate_lovelace: int       # per credit, spread already taken
    gross_lovelace: int
    platform_fee_lovelace: int
    network_fee_lovelace: int
    net_lovelace: int

    def to_dict(self) -> dict:
        return {
            "credits": self.credits,
            "cashoutRate": self.cashout_rate_lovelace,
            "grossAmount": self.gross_lovelace,
            "platformFee": self.platform_fee_lovelace,
            "networkFee": self.network_fee_lovelace,
            "netAmount": self.net_lovelace,
            "netDisplay": lovelace_to_display(self.net_lovelace),
        }


@dataclass
class WithdrawalRequest:
    id: str
    user_id: str
    credits: int
    destination_address: str
    status: WithdrawalStatus
    gross_lovelace: int
    platform_fee_lovelace: int
    network_fee_lovelace: int
    net_lovelace: int
    drawn_winnings: int = 0
    drawn_purchased: int = 0
    ledger_entry_id: int | None = None
    payment_tx_hash: str | None = None
    admin_notes: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "credits": self.credits,
            "destinationAddress": self.destination_address,
            "status": self.status.value,
            "grossAmount": self.gross_lovelace,
            "platformFee": self.platform_fee_lovelace,
            "networkFee": self.network_fee_lovelace,
            "netAmount": self.net_lovelace,
            "drawnWinnings": self.drawn_winnings,
            "drawnPurchased": self.drawn_purchased,
            "paymentTxHash": self.payment_tx_hash,
            "adminNotes": self.admin_notes,
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
