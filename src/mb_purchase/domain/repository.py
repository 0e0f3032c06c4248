"""Repository Protocol for mb_purchase."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_purchase.domain.models import CreditTransaction


class CreditTransactionRepositoryProtocol(Protocol):
    async def get_by_tx_hash(
        self, db: AsyncSession, tx_hash: str
    ) -> CreditTransaction | None: ...

    async def insert(self, db: AsyncSession, tx: CreditTransaction) -> CreditTransaction:
        """Raises DuplicateTransactionError when the hash already has a row."""
        ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[CreditTransaction]: ...
