"""
Payout table shared by every game.

``multiplier`` is a pure lookup: (game, outcome, prediction) -> gross payout
multiplier. 0 means the stake is lost; a positive multiplier ``m`` pays back
``amount * m`` (stake included).
"""
from decimal import Decimal
from typing import Any, List, Optional

from betguard.core.errors import InvalidWager
from betguard.core.game import COIN_SIDES, DIE_FACES, GUESS_NUMBERS, roulette_color

ZERO = Decimal("0")

DICE_MULTIPLIER = Decimal("5")
COIN_MULTIPLIER = Decimal("2")
NUMBER_MULTIPLIER = Decimal("9")
SLOTS_THREE_MULTIPLIER = Decimal("10")
SLOTS_TWO_MULTIPLIER = Decimal("2")
ROULETTE_GREEN_MULTIPLIER = Decimal("35")
ROULETTE_COLOR_MULTIPLIER = Decimal("2")
BLACKJACK_MULTIPLIER = Decimal("2")

ROULETTE_BETS = ("red", "black", "green")

GAMES = {
    "dice": "guess the die face (1-6), pays 5x",
    "coinflip": "call heads or tails, pays 2x",
    "number": "guess a number from 1 to 10, pays 9x",
    "slots": "three of a kind pays 10x, a pair pays 2x",
    "roulette": "bet on red/black (2x) or green (35x)",
    "blackjack": "beat the dealer without busting, pays 2x",
    "sports": "back a quoted outcome, pays the quoted odds",
}

INSTANT_GAMES = ("dice", "coinflip", "number", "slots", "roulette")

CARD_VALUES = {"A": 1, "J": 10, "Q": 10, "K": 10}


def card_value(card: str) -> int:
    return CARD_VALUES.get(card) or int(card)


def hand_total(cards: List[str]) -> int:
    """Blackjack total, aces counted as 11 while that does not bust."""
    score = sum(card_value(c) for c in cards)
    aces = sum(1 for c in cards if c == "A")
    while score <= 11 and aces > 0:
        score += 10
        aces -= 1
    return score


def blackjack_won(player: List[str], dealer: List[str]) -> bool:
    p, d = hand_total(player), hand_total(dealer)
    return p <= 21 and (d > 21 or p > d)


def validate_prediction(game: str, prediction: Any) -> Any:
    """Normalize a player's prediction or raise InvalidWager."""
    if game not in GAMES:
        raise InvalidWager(f"Unknown game: {game}")

    if game in ("dice", "number"):
        space = DIE_FACES if game == "dice" else GUESS_NUMBERS
        try:
            value = int(prediction)
        except (TypeError, ValueError):
            raise InvalidWager(f"Prediction for {game} must be a number")
        if value not in space:
            raise InvalidWager(f"Prediction for {game} must be between {space[0]} and {space[-1]}")
        return value

    if game == "coinflip":
        value = str(prediction or "").strip().lower()
        if value not in COIN_SIDES:
            raise InvalidWager("Prediction for coinflip must be heads or tails")
        return value

    if game == "roulette":
        value = str(prediction or "").strip().lower()
        if value not in ROULETTE_BETS:
            raise InvalidWager("Prediction for roulette must be red, black or green")
        return value

    if game == "sports":
        value = str(prediction or "").strip()
        if not value:
            raise InvalidWager("Pick an outcome to back")
        return value

    # slots and blackjack take no prediction
    return None


def _slots_multiplier(reels: List[str]) -> Decimal:
    distinct = len(set(reels))
    if distinct == 1:
        return SLOTS_THREE_MULTIPLIER
    if distinct == len(reels) - 1:
        return SLOTS_TWO_MULTIPLIER
    return ZERO


def multiplier(game: str, outcome: Any, prediction: Any = None, odds: Optional[Decimal] = None) -> Decimal:
    if game == "dice":
        return DICE_MULTIPLIER if outcome == prediction else ZERO

    if game == "coinflip":
        return COIN_MULTIPLIER if outcome == prediction else ZERO

    if game == "number":
        return NUMBER_MULTIPLIER if outcome == prediction else ZERO

    if game == "slots":
        return _slots_multiplier(outcome)

    if game == "roulette":
        if outcome["color"] != prediction:
            return ZERO
        if prediction == "green":
            return ROULETTE_GREEN_MULTIPLIER
        return ROULETTE_COLOR_MULTIPLIER

    if game == "blackjack":
        if blackjack_won(outcome["player"], outcome["dealer"]):
            return BLACKJACK_MULTIPLIER
        return ZERO

    if game == "sports":
        if odds is None:
            raise ValueError("sports payouts need the stored odds")
        return Decimal(odds) if outcome["result"] == prediction else ZERO

    raise InvalidWager(f"Unknown game: {game}")


def describe_outcome(game: str, outcome: Any) -> str:
    if game == "slots":
        return " ".join(outcome)
    if game == "roulette":
        return f"{outcome['pocket']} {outcome['color']}"
    if game == "blackjack":
        return f"player {hand_total(outcome['player'])} dealer {hand_total(outcome['dealer'])}"
    if game == "sports":
        return outcome["result"] or "backed outcome missed"
    return str(outcome)


def roulette_outcome(pocket: int) -> dict:
    return {"pocket": pocket, "color": roulette_color(pocket)}
