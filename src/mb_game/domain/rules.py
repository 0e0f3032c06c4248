"""Pure settlement rules."""

import re

from src.mb_common.errors import InvalidInputError
from src.mb_game.domain.models import GameSettings

_GAME_NAME_RE = re.compile(r"^[a-z][a-z0-9_]{0,31}$")


def validate_game_name(game: str) -> str:
    if not isinstance(game, str) or not _GAME_NAME_RE.match(game):
        raise InvalidInputError(f"Invalid game name: {game!r}")
    return game


def bet_reason(game: str) -> str:
    return f"bet:{game}"


def win_reason(game: str) -> str:
    return f"win:{game}"


def payout_for(settings: GameSettings, won: bool) -> int:
    return settings.payout_win if won else settings.payout_lose
