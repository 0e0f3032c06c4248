"""Raw-SQL repositories for game_sessions and game_settings."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.errors import InternalError
from src.mb_game.domain.models import GameSession, GameSettings

_SESSION_COLUMNS = """id, user_id, game, stake, stake_entry_id, is_settled, won, payout,
           created_at, settled_at"""

_CREATE_SESSION_SQL = text(f"""
    INSERT INTO game_sessions (id, user_id, game, stake, stake_entry_id)
    VALUES (:id, :user_id, :game, :stake, :stake_entry_id)
    RETURNING {_SESSION_COLUMNS}
""")

_FIND_BY_STAKE_ENTRY_SQL = text(f"""
    SELECT {_SESSION_COLUMNS} FROM game_sessions WHERE stake_entry_id = :stake_entry_id
""")

_GET_SESSION_SQL = text(f"""
    SELECT {_SESSION_COLUMNS} FROM game_sessions WHERE id = :id
""")

_LOCK_SESSION_SQL = text(f"""
    SELECT {_SESSION_COLUMNS} FROM game_sessions WHERE id = :id FOR UPDATE
""")

_MARK_SETTLED_SQL = text(f"""
    UPDATE game_sessions
    SET is_settled = TRUE, won = :won, payout = :payout, settled_at = NOW()
    WHERE id = :id AND is_settled = FALSE
    RETURNING {_SESSION_COLUMNS}
""")

_GET_SETTINGS_SQL = text("""
    SELECT game, cost, payout_win, payout_lose FROM game_settings WHERE game = :game
""")


def _row_to_session(row: object) -> GameSession:
    return GameSession(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        game=row.game,  # type: ignore[attr-defined]
        stake=row.stake,  # type: ignore[attr-defined]
        stake_entry_id=row.stake_entry_id,  # type: ignore[attr-defined]
        is_settled=row.is_settled,  # type: ignore[attr-defined]
        won=row.won,  # type: ignore[attr-defined]
        payout=row.payout,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


class GameSessionRepository:
    async def create(self, db: AsyncSession, session: GameSession) -> GameSession:
        result = await db.execute(
            _CREATE_SESSION_SQL,
            {
                "id": session.id,
                "user_id": session.user_id,
                "game": session.game,
                "stake": session.stake,
                "stake_entry_id": session.stake_entry_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Game session insert returned no rows")
        return _row_to_session(row)

    async def find_by_stake_entry(
        self, db: AsyncSession, stake_entry_id: int
    ) -> GameSession | None:
        result = await db.execute(_FIND_BY_STAKE_ENTRY_SQL, {"stake_entry_id": stake_entry_id})
        row = result.fetchone()
        return _row_to_session(row) if row else None

    async def get(self, db: AsyncSession, session_id: str) -> GameSession | None:
        result = await db.execute(_GET_SESSION_SQL, {"id": session_id})
        row = result.fetchone()
        return _row_to_session(row) if row else None

    async def lock(self, db: AsyncSession, session_id: str) -> GameSession | None:
        result = await db.execute(_LOCK_SESSION_SQL, {"id": session_id})
        row = result.fetchone()
        return _row_to_session(row) if row else None

    async def mark_settled(
        self, db: AsyncSession, session_id: str, won: bool, payout: int
    ) -> GameSession | None:
        result = await db.execute(
            _MARK_SETTLED_SQL, {"id": session_id, "won": won, "payout": payout}
        )
        row = result.fetchone()
        return _row_to_session(row) if row else None


class GameSettingsRepository:
    async def get(self, db: AsyncSession, game: str) -> GameSettings | None:
        result = await db.execute(_GET_SETTINGS_SQL, {"game": game})
        row = result.fetchone()
        if row is None:
            return None
        return GameSettings(
            game=row.game,
            cost=row.cost,
            payout_win=row.payout_win,
            payout_lose=row.payout_lose,
        )
