"""In-memory stand-ins for the repositories and user service.

They implement the same Protocols as the SQL repositories so domain services
run unchanged. There are no real transactions: writes are visible at once and
are not undone by ``db.rollback()``.
"""

from dataclasses import replace
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from src.mb_common.enums import WithdrawalStatus
from src.mb_common.errors import DuplicateTransactionError, IdempotencyConflictError
from src.mb_game.domain.models import GameSession
from src.mb_ledger.domain.models import Balance, BucketDelta, LedgerEntry
from src.mb_purchase.domain.models import CreditTransaction
from src.mb_withdrawal.domain.models import WithdrawalRequest


class InMemoryBalanceRepository:
    def __init__(self) -> None:
        self.balances: dict[str, Balance] = {}
        self.entries: list[LedgerEntry] = []
        self.fail_keys: set[str] = set()

    def seed(self, user_id: str, purchased: int = 0, winnings: int = 0, bonus: int = 0) -> None:
        self.balances[user_id] = Balance(
            user_id=user_id,
            purchased_credits=purchased,
            winnings_credits=winnings,
            bonus_credits=bonus,
        )

    def entries_for(self, user_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries if e.user_id == user_id]

    async def ensure_balance(self, db, user_id):
        self.balances.setdefault(user_id, Balance(user_id=user_id))

    async def get_balance(self, db, user_id):
        balance = self.balances.get(user_id)
        return replace(balance) if balance else None

    async def lock_balance(self, db, user_id):
        return replace(self.balances[user_id])

    async def save_balance(self, db, balance):
        saved = replace(balance, version=balance.version + 1, updated_at=datetime.now(UTC))
        self.balances[balance.user_id] = saved
        return replace(saved)

    async def find_entry_by_key(self, db, idempotency_key):
        for entry in self.entries:
            if entry.idempotency_key == idempotency_key:
                return entry
        return None

    async def insert_entry(self, db, user_id, delta: BucketDelta, balance_after, reason, idempotency_key):
        if idempotency_key in self.fail_keys:
            raise RuntimeError(f"insert failed for {idempotency_key}")
        if idempotency_key is not None and await self.find_entry_by_key(db, idempotency_key):
            raise IdempotencyConflictError(idempotency_key)
        entry = LedgerEntry(
            id=len(self.entries) + 1,
            user_id=user_id,
            delta=delta.total,
            purchased_delta=delta.purchased,
            winnings_delta=delta.winnings,
            bonus_delta=delta.bonus,
            balance_after=balance_after,
            reason=reason,
            idempotency_key=idempotency_key,
            created_at=datetime.now(UTC),
        )
        self.entries.append(entry)
        return entry

    async def list_entries(self, db, user_id, cursor_id, limit, reason):
        rows = [
            e
            for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (reason is None or e.reason == reason)
        ]
        return rows[:limit]


class InMemoryCreditTransactionRepository:
    def __init__(self) -> None:
        self.rows: dict[str, CreditTransaction] = {}
        self.fail_with: Exception | None = None

    async def get_by_tx_hash(self, db, tx_hash):
        return self.rows.get(tx_hash)

    async def insert(self, db, tx):
        if self.fail_with is not None:
            raise self.fail_with
        if tx.tx_hash in self.rows:
            raise DuplicateTransactionError(tx.tx_hash)
        saved = replace(tx, id=f"ctx-{len(self.rows) + 1}", created_at=datetime.now(UTC))
        self.rows[tx.tx_hash] = saved
        return saved

    async def list_by_user(self, db, user_id, limit):
        return [tx for tx in self.rows.values() if tx.user_id == user_id][:limit]


class InMemoryWithdrawalRepository:
    def __init__(self) -> None:
        self.rows: dict[str, WithdrawalRequest] = {}

    async def create(self, db, request):
        saved = replace(request, created_at=datetime.now(UTC))
        self.rows[request.id] = saved
        return replace(saved)

    async def get(self, db, request_id):
        row = self.rows.get(request_id)
        return replace(row) if row else None

    async def lock(self, db, request_id):
        return await self.get(db, request_id)

    async def update_status(self, db, request_id, from_status, to_status, admin_notes, payment_tx_hash):
        row = self.rows.get(request_id)
        if row is None or row.status != from_status:
            return None
        row.status = to_status
        row.admin_notes = admin_notes or row.admin_notes
        row.payment_tx_hash = payment_tx_hash or row.payment_tx_hash
        if to_status in (WithdrawalStatus.COMPLETED, WithdrawalStatus.CANCELLED):
            row.processed_at = datetime.now(UTC)
        return replace(row)

    async def list_by_user(self, db, user_id, limit):
        return [r for r in self.rows.values() if r.user_id == user_id][:limit]

    async def list_by_status(self, db, status, limit):
        return [r for r in self.rows.values() if status is None or r.status == status][:limit]


class FakeUserService:
    """Wallet -> user id mapping plus the bonus flag and aggregate totals."""

    def __init__(self) -> None:
        self.ids: dict[str, str] = {}
        self.bonus_claimed: dict[str, bool] = {}
        self.purchased: dict[str, int] = {}
        self.withdrawn: dict[str, int] = {}
        self.fail_record_purchase = False
        self.unknown_ids: set[str] = set()

    async def get_or_create_by_wallet(self, db, wallet_address):
        user_id = self.ids.setdefault(wallet_address, f"user-{len(self.ids) + 1}")
        return SimpleNamespace(id=user_id, wallet_address=wallet_address, is_active=True)

    async def exists(self, db, user_id):
        return user_id not in self.unknown_ids

    async def lock_bonus_state(self, db, user_id):
        return self.bonus_claimed.get(user_id, False)

    async def set_bonus_claimed(self, db, user_id, claimed=True):
        self.bonus_claimed[user_id] = claimed

    async def record_purchase(self, db, user_id, credits):
        if self.fail_record_purchase:
            raise RuntimeError("totals unavailable")
        self.purchased[user_id] = self.purchased.get(user_id, 0) + credits

    async def record_withdrawal(self, db, user_id, credits):
        self.withdrawn[user_id] = self.withdrawn.get(user_id, 0) + credits


class InMemoryGameSessionRepository:
    def __init__(self) -> None:
        self.rows: dict[str, GameSession] = {}

    async def create(self, db, session: GameSession) -> GameSession:
        self.rows[session.id] = replace(session)
        return replace(session)

    async def find_by_stake_entry(self, db, entry_id: int) -> GameSession | None:
        for row in self.rows.values():
            if row.stake_entry_id == entry_id:
                return replace(row)
        return None

    async def get(self, db, session_id: str) -> GameSession | None:
        row = self.rows.get(session_id)
        return replace(row) if row else None

    async def lock(self, db, session_id: str) -> GameSession | None:
        return await self.get(db, session_id)

    async def mark_settled(self, db, session_id: str, won: bool, payout: int):
        row = self.rows.get(session_id)
        if row is None or row.is_settled:
            return None
        row.is_settled = True
        row.won = won
        row.payout = payout
        return replace(row)


@pytest.fixture
def balances() -> InMemoryBalanceRepository:
    return InMemoryBalanceRepository()


@pytest.fixture
def credit_txs() -> InMemoryCreditTransactionRepository:
    return InMemoryCreditTransactionRepository()


@pytest.fixture
def withdrawals() -> InMemoryWithdrawalRepository:
    return InMemoryWithdrawalRepository()


@pytest.fixture
def users() -> FakeUserService:
    return FakeUserService()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def sessions() -> InMemoryGameSessionRepository:
    return InMemoryGameSessionRepository()
