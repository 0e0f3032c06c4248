"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_ledger.domain.models import Balance, BucketDelta, LedgerEntry


class BalanceRepositoryProtocol(Protocol):
    async def ensure_balance(self, db: AsyncSession, user_id: str) -> None: ...

    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None: ...

    async def lock_balance(self, db: AsyncSession, user_id: str) -> Balance: ...

    async def save_balance(self, db: AsyncSession, balance: Balance) -> Balance: ...

    async def find_entry_by_key(
        self, db: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None: ...

    async def insert_entry(
        self,
        db: AsyncSession,
        user_id: str,
        delta: BucketDelta,
        balance_after: int,
        reason: str,
        idempotency_key: str | None,
    ) -> LedgerEntry: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        reason: str | None,
    ) -> list[LedgerEntry]: ...
