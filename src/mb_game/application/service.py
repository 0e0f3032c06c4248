"""GameSettlementService: the ledger-facing half of any game.

Outcome generation lives elsewhere; this service only moves credits:

  open_session    debit the stake (bonus -> purchased -> winnings) as ``bet:<game>``
                  and create a one-shot session row in the same transaction
  settle_session  lock the session, mark it settled, then credit the payout to
                  the winnings bucket as ``win:<game>``

Settlement needs no ledger idempotency key: the session row is flipped to
settled under its row lock before the credit, and a second settle sees it.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.database import store_errors
from src.mb_common.errors import (
    GameSessionForbiddenError,
    GameSessionNotFoundError,
    GameSessionSettledError,
)
from src.mb_game.application.settings_provider import GameSettingsProvider
from src.mb_game.domain.models import GameSession, SettlementResult
from src.mb_game.domain.rules import bet_reason, payout_for, validate_game_name, win_reason
from src.mb_game.infrastructure.persistence import GameSessionRepository
from src.mb_ledger.domain.ledger import STAKE_ORDER, IdempotentLedger
from src.mb_ledger.domain.models import BucketDelta
from src.mb_ledger.domain.repository import BalanceRepositoryProtocol
from src.mb_ledger.infrastructure.persistence import BalanceRepository

logger = logging.getLogger(__name__)


class GameSettlementService:
    def __init__(
        self,
        settings_provider: GameSettingsProvider | None = None,
        balance_repo: BalanceRepositoryProtocol | None = None,
        sessions: GameSessionRepository | None = None,
    ) -> None:
        self._settings = settings_provider or GameSettingsProvider()
        self._ledger = IdempotentLedger(balance_repo or BalanceRepository())
        self._sessions = sessions or GameSessionRepository()

    async def open_session(
        self,
        db: AsyncSession,
        user_id: str,
        game: str,
        idempotency_key: str | None = None,
    ) -> GameSession:
        """Charge the stake and open a session.

        With ``idempotency_key`` a retried start returns the session created by
        the first call instead of charging twice.
        """
        game = validate_game_name(game)
        config = await self._settings.get(game)
        session_id = str(uuid.uuid4())
        key = f"bet:{game}:{idempotency_key or session_id}"

        try:
            result = await self._ledger.debit_ordered(
                db, user_id, config.cost, STAKE_ORDER, bet_reason(game), key
            )
            async with store_errors():
                if result.replayed:
                    existing = await self._sessions.find_by_stake_entry(db, result.entry.id)
                    if existing is None:
                        raise GameSessionNotFoundError(key)
                    await db.commit()
                    return existing
                session = await self._sessions.create(
                    db,
                    GameSession(
                        id=session_id,
                        user_id=user_id,
                        game=game,
                        stake=config.cost,
                        stake_entry_id=result.entry.id,
                    ),
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Game session opened: id=%s user=%s game=%s stake=%d",
            session.id,
            user_id,
            game,
            session.stake,
        )
        return session

    async def get_session(self, db: AsyncSession, user_id: str, session_id: str) -> GameSession:
        """Read an open session owned by ``user_id`` without locking it."""
        _check_session_id(session_id)
        async with store_errors():
            session = await self._sessions.get(db, session_id)
        return _check_open(session, user_id, session_id)

    async def settle_session(
        self, db: AsyncSession, user_id: str, session_id: str, won: bool
    ) -> SettlementResult:
        _check_session_id(session_id)

        try:
            async with store_errors():
                locked = await self._sessions.lock(db, session_id)
            session = _check_open(locked, user_id, session_id)

            config = await self._settings.get(session.game)
            payout = payout_for(config, won)

            async with store_errors():
                settled = await self._sessions.mark_settled(db, session_id, won, payout)
            if settled is None:
                raise GameSessionSettledError(session_id)

            new_balance = None
            if payout > 0:
                applied = await self._ledger.apply(
                    db, user_id, BucketDelta(winnings=payout), win_reason(session.game)
                )
                new_balance = applied.new_balance
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Game session settled: id=%s user=%s won=%s payout=%d",
            session_id,
            user_id,
            won,
            payout,
        )
        return SettlementResult(session=settled, payout=payout, new_balance=new_balance)


def _check_session_id(session_id: str) -> None:
    try:
        uuid.UUID(session_id)
    except ValueError:
        raise GameSessionNotFoundError(session_id) from None


def _check_open(session: GameSession | None, user_id: str, session_id: str) -> GameSession:
    if session is None:
        raise GameSessionNotFoundError(session_id)
    if session.user_id != user_id:
        raise GameSessionForbiddenError()
    if session.is_settled:
        raise GameSessionSettledError(session_id)
    return session
