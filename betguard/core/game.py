import random
import secrets
from typing import Any, List, Optional, Sequence

# =========================
#  OUTCOME SPACES
# =========================
DIE_FACES = (1, 2, 3, 4, 5, 6)
COIN_SIDES = ("heads", "tails")
GUESS_NUMBERS = tuple(range(1, 11))
SLOT_SYMBOLS = ("cherry", "grape", "lemon", "diamond", "seven", "star")
ROULETTE_POCKETS = tuple(range(0, 37))
CARD_DECK = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
# 0.00 .. 99.99 expressed in basis points
PERCENT_POINTS = range(0, 10000)

RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})
SLOT_REELS = 3


def roulette_color(pocket: int) -> str:
    if pocket == 0:
        return "green"
    if pocket in RED_NUMBERS:
        return "red"
    return "black"


class OutcomeSource:
    """
    Uniform draws over finite outcome spaces.

    Uses the OS entropy pool by default. A seeded ``random.Random`` may be
    injected for deterministic tests; it is never derived from client input.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or secrets.SystemRandom()

    def draw(self, space: Sequence[Any]) -> Any:
        if len(space) == 0:
            raise ValueError("outcome space is empty")
        return space[self._rng.randrange(len(space))]

    def draw_many(self, space: Sequence[Any], n: int) -> List[Any]:
        return [self.draw(space) for _ in range(n)]


_default_source = OutcomeSource()


def get_outcome_source() -> OutcomeSource:
    return _default_source
