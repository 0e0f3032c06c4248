"""User domain service: wallet-keyed users created on first interaction.

All DB operations use the injected AsyncSession. Transactions are managed
by the caller.
"""

import logging
import uuid

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.address import is_wallet_address, truncate
from src.mb_common.errors import AccountDisabledError, InternalError, InvalidInputError
from src.mb_gateway.user.db_models import UserModel

logger = logging.getLogger(__name__)

_INSERT_USER_SQL = text("""
    INSERT INTO users (wallet_address, username)
    VALUES (:wallet_address, :username)
    ON CONFLICT (wallet_address) DO NOTHING
""")

_LOCK_BONUS_STATE_SQL = text("""
    SELECT welcome_bonus_claimed FROM users WHERE id = :user_id FOR UPDATE
""")

_SET_BONUS_CLAIMED_SQL = text("""
    UPDATE users SET welcome_bonus_claimed = :claimed, updated_at = NOW()
    WHERE id = :user_id
""")

_RECORD_PURCHASE_SQL = text("""
    UPDATE users
    SET total_credits_purchased = total_credits_purchased + :credits,
        last_purchase_at = NOW(),
        updated_at = NOW()
    WHERE id = :user_id
""")

_RECORD_WITHDRAWAL_SQL = text("""
    UPDATE users
    SET total_credits_withdrawn = total_credits_withdrawn + :credits,
        updated_at = NOW()
    WHERE id = :user_id
""")


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    async def get_or_create_by_wallet(
        self, db: AsyncSession, wallet_address: str
    ) -> UserModel:
        """Resolve the user for a wallet, creating the row if this is first contact.

        INSERT ... ON CONFLICT DO NOTHING makes concurrent first contacts converge
        on one row.
        """
        if not is_wallet_address(wallet_address):
            raise InvalidInputError("Invalid wallet address format")

        await db.execute(
            _INSERT_USER_SQL,
            {"wallet_address": wallet_address, "username": f"User{wallet_address[-8:]}"},
        )
        result = await db.execute(
            select(UserModel).where(UserModel.wallet_address == wallet_address)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise InternalError("User upsert returned no row")
        if not user.is_active:
            raise AccountDisabledError()
        logger.debug("Resolved user %s for wallet %s", user.id, truncate(wallet_address, 20))
        return user

    async def get_by_id(self, db: AsyncSession, user_id: str) -> UserModel | None:
        result = await db.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, user_id: str) -> bool:
        try:
            uuid.UUID(user_id)
        except ValueError:
            return False
        result = await db.execute(select(UserModel.id).where(UserModel.id == user_id))
        return result.scalar_one_or_none() is not None

    async def lock_bonus_state(self, db: AsyncSession, user_id: str) -> bool:
        """Lock the user row and return whether the welcome bonus was already claimed."""
        result = await db.execute(_LOCK_BONUS_STATE_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"User {user_id} vanished while locking")
        return bool(row.welcome_bonus_claimed)

    async def set_bonus_claimed(
        self, db: AsyncSession, user_id: str, claimed: bool = True
    ) -> None:
        await db.execute(_SET_BONUS_CLAIMED_SQL, {"user_id": user_id, "claimed": claimed})

    async def record_purchase(self, db: AsyncSession, user_id: str, credits: int) -> None:
        await db.execute(_RECORD_PURCHASE_SQL, {"user_id": user_id, "credits": credits})

    async def record_withdrawal(self, db: AsyncSession, user_id: str, credits: int) -> None:
        await db.execute(_RECORD_WITHDRAWAL_SQL, {"user_id": user_id, "credits": credits})
