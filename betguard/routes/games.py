from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from betguard.core.database import get_db
from betguard.core.game import OutcomeSource, get_outcome_source
from betguard.core.payouts import GAMES, INSTANT_GAMES
from betguard.core.errors import NotFound
from betguard.routes.dependencies import get_current_user
from betguard.schemas.bet import BetCreate, BetResponse, GameInfo
from betguard.services.bet_service import place_bet

router = APIRouter(prefix="/games", tags=["Games"])

@router.get("/", response_model=list[GameInfo])
def list_games():
    return [{"game": name, "rules": rules} for name, rules in GAMES.items()]

@router.post("/{game}/play", response_model=BetResponse)
def play(
    game: str,
    data: BetCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    source: OutcomeSource = Depends(get_outcome_source),
):
    if game not in INSTANT_GAMES:
        raise NotFound(f"No instant game called {game}")

    return place_bet(db, user.id, game, data.amount, data.prediction, data.attempt_id, source)
