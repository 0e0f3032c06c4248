"""Server-side outcome resolution.

The client only submits its choice; whether it wins is drawn here, never
taken from the request.
"""

import secrets
from collections.abc import Callable
from typing import Protocol

from src.mb_common.errors import InvalidInputError
from src.mb_game.domain.models import Outcome


class OutcomeResolver(Protocol):
    def resolve(self, game: str, choice: int) -> Outcome: ...


class DoorDrawResolver:
    """One winning door out of ``doors``, drawn with a CSPRNG at settlement."""

    def __init__(self, doors: int = 3, draw: Callable[[int], int] = secrets.randbelow) -> None:
        self._doors = doors
        self._draw = draw

    def resolve(self, game: str, choice: int) -> Outcome:
        if not 0 <= choice < self._doors:
            raise InvalidInputError(f"Choice must be between 0 and {self._doors - 1}")
        winning = self._draw(self._doors)
        return Outcome(won=choice == winning, winning_choice=winning)
