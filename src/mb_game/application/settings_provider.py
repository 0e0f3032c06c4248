"""Game economics (cost / payouts) read through a per-game TTL cache.

Settings rows change rarely (admin edits), so each game's row is loaded at
most once per GAME_SETTINGS_TTL_SECONDS. Missing rows fall back to the
configured defaults for the built-in game.
"""

import logging
import time
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.mb_common.config_cache import TtlConfigCache
from src.mb_common.database import async_session_factory, store_errors
from src.mb_common.errors import InvalidInputError
from src.mb_game.domain.models import GameSettings
from src.mb_game.infrastructure.persistence import GameSettingsRepository

logger = logging.getLogger(__name__)

MONTY = "monty"


def default_settings(game: str) -> GameSettings | None:
    if game == MONTY:
        return GameSettings(
            game=MONTY,
            cost=settings.MONTY_DEFAULT_COST,
            payout_win=settings.MONTY_DEFAULT_PAYOUT_WIN,
            payout_lose=settings.MONTY_DEFAULT_PAYOUT_LOSE,
        )
    return None


class GameSettingsProvider:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        repo: GameSettingsRepository | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._repo = repo or GameSettingsRepository()
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.GAME_SETTINGS_TTL_SECONDS
        self._clock = clock
        self._caches: dict[str, TtlConfigCache[GameSettings]] = {}

    def _cache_for(self, game: str) -> TtlConfigCache[GameSettings]:
        cache = self._caches.get(game)
        if cache is None:

            async def loader() -> GameSettings:
                return await self._load(game)

            cache = TtlConfigCache(loader, self._ttl, clock=self._clock, name=f"{game} settings")
            self._caches[game] = cache
        return cache

    async def _load(self, game: str) -> GameSettings:
        async with self._session_factory() as db, store_errors():
            row = await self._repo.get(db, game)
        if row is not None:
            return row
        fallback = default_settings(game)
        if fallback is None:
            raise InvalidInputError(f"Unknown game: {game}")
        logger.info("No settings row for %s, using defaults", game)
        return fallback

    async def get(self, game: str) -> GameSettings:
        return await self._cache_for(game).get_current()

    def invalidate(self, game: str | None = None) -> None:
        if game is None:
            for cache in self._caches.values():
                cache.invalidate()
        elif game in self._caches:
            self._caches[game].invalidate()
