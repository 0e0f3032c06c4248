"""Repository Protocol for mb_withdrawal."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.enums import WithdrawalStatus
from src.mb_withdrawal.domain.models import WithdrawalRequest


class WithdrawalRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, request: WithdrawalRequest) -> WithdrawalRequest: ...

    async def get(self, db: AsyncSession, request_id: str) -> WithdrawalRequest | None: ...

    async def lock(self, db: AsyncSession, request_id: str) -> WithdrawalRequest | None: ...

    async def update_status(
        self,
        db: AsyncSession,
        request_id: str,
        from_status: WithdrawalStatus,
        to_status: WithdrawalStatus,
        admin_notes: str | None,
        payment_tx_hash: str | None,
    ) -> WithdrawalRequest | None:
        """Conditional update; returns None when the row was not in ``from_status``."""
        ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[WithdrawalRequest]: ...

    async def list_by_status(
        self, db: AsyncSession, status: WithdrawalStatus | None, limit: int
    ) -> list[WithdrawalRequest]: ...
