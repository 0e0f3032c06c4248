"""Domain models for mb_game."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GameSettings:
    game: str
    cost: int
    payout_win: int
    payout_lose: int


@dataclass
class GameSession:
    id: str
    user_id: str
    game: str
    stake: int
    stake_entry_id: int | None = None
    is_settled: bool = False
    won: bool | None = None
    payout: int | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "sessionId": self.id,
            "game": self.game,
            "stake": self.stake,
            "isSettled": self.is_settled,
            "won": self.won,
            "payout": self.payout,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "settledAt": self.settled_at.isoformat() if self.settled_at else None,
        }


@dataclass
class SettlementResult:
    session: GameSession
    payout: int
    new_balance: int | None   # None when the payout was zero and no ledger call was made


@dataclass(frozen=True)
class Outcome:
    won: bool
    winning_choice: int
