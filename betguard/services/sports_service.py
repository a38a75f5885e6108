import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from betguard.core import payouts
from betguard.core.config import settings
from betguard.core.errors import InvalidWager, LedgerCommitFailure, NotFound, OracleUnavailable
from betguard.core.game import PERCENT_POINTS, OutcomeSource, get_outcome_source
from betguard.models.sports import SportsMarket
from betguard.schemas.sports import MatchPredictions, Prediction
from betguard.services import ledger
from betguard.services.bet_service import BetReceipt, Wager, check_wager, commit_settlement, replay, settle
from betguard.services.oracle import OracleClient

logger = logging.getLogger(__name__)

SPORTS = {
    "football": ("Manchester United", "Liverpool"),
    "cricket": ("India", "Australia"),
    "basketball": ("Lakers", "Warriors"),
    "tennis": ("Djokovic", "Nadal"),
}

SYSTEM_PROMPT = """You are a sports betting analyst. Generate realistic match predictions with odds.
Reply with a single JSON object and nothing else, in this format:
{
  "match": "Team A vs Team B",
  "sport": "sport name",
  "predictions": [
    { "outcome": "Team A Win", "odds": 1.85, "probability": 54, "confidence": "medium" },
    { "outcome": "Draw", "odds": 3.40, "probability": 29, "confidence": "low" },
    { "outcome": "Team B Win", "odds": 4.20, "probability": 17, "confidence": "low" }
  ],
  "analysis": "Brief analysis of the match",
  "keyFactors": ["factor 1", "factor 2", "factor 3"]
}"""


def fallback_quote(sport: str, team1: str, team2: str) -> MatchPredictions:
    return MatchPredictions(
        match=f"{team1} vs {team2}",
        sport=sport,
        predictions=[
            Prediction(outcome=f"{team1} Win", odds=Decimal("2.10"), probability=Decimal("48"), confidence="medium"),
            Prediction(outcome="Draw", odds=Decimal("3.20"), probability=Decimal("31"), confidence="low"),
            Prediction(outcome=f"{team2} Win", odds=Decimal("3.50"), probability=Decimal("21"), confidence="low"),
        ],
        analysis="This match could go either way based on current form.",
        key_factors=["Recent performance", "Head-to-head record", "Home advantage"],
    )


def _prediction_row(p: Prediction) -> dict:
    return {
        "outcome": p.outcome,
        "odds": str(p.odds),
        "probability": str(p.probability),
        "confidence": p.confidence,
    }


def create_market(db: Session, sport: str, team1: str, team2: str, oracle: OracleClient) -> SportsMarket:
    prompt = (
        f"Generate betting odds and predictions for a {sport} match between {team1} and {team2}. "
        "Include win probabilities and confidence levels."
    )
    try:
        quote = oracle.complete_structured(SYSTEM_PROMPT, prompt, MatchPredictions)
        source = "oracle"
    except OracleUnavailable as e:
        logger.warning("Using fallback quote for %s vs %s: %s", team1, team2, e.message)
        quote = fallback_quote(sport, team1, team2)
        source = "fallback"

    market = SportsMarket(
        sport=sport,
        match=quote.match,
        predictions=[_prediction_row(p) for p in quote.predictions],
        analysis=quote.analysis,
        key_factors=list(quote.key_factors),
        source=source,
    )
    try:
        db.add(market)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not store market for %s vs %s: %s", team1, team2, e)
        raise LedgerCommitFailure("Could not store market")

    logger.info("Opened %s market %s (%s)", source, market.id, market.match)
    return market


def get_market(db: Session, market_id: int) -> SportsMarket:
    market = db.get(SportsMarket, market_id)
    if market is None:
        raise NotFound("Market not found")
    return market


def win_threshold(probability) -> int:
    """Basis points under which a draw from PERCENT_POINTS counts as a hit."""
    return int(Decimal(str(probability)) * 100 * settings.SPORTS_WIN_FACTOR)


def place_sports_bet(
    db: Session,
    user_id: int,
    market_id: int,
    outcome: str,
    amount,
    attempt_key: str,
    source: Optional[OutcomeSource] = None,
) -> BetReceipt:
    source = source or get_outcome_source()
    market = get_market(db, market_id)
    prediction = payouts.validate_prediction("sports", outcome)
    quoted = market.find_prediction(prediction)
    if quoted is None:
        raise InvalidWager(f"{prediction} is not offered in this market")

    with ledger.account_lock(user_id):
        previous = replay(db, user_id, attempt_key)
        if previous is not None:
            return previous

        user = ledger.lock_account_row(db, user_id)
        amount = check_wager(user, amount)

        roll = source.draw(PERCENT_POINTS)
        threshold = win_threshold(quoted["probability"])
        wager = Wager(
            game="sports",
            amount=amount,
            prediction=prediction,
            odds=Decimal(quoted["odds"]),
            outcome={
                "market_id": market.id,
                "result": prediction if roll < threshold else None,
                "roll": roll,
                "threshold": threshold,
            },
        )
        return commit_settlement(db, user_id, settle(user, wager), attempt_key)
