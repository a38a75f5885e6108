from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from betguard.core.database import get_db
from betguard.core.game import OutcomeSource, get_outcome_source
from betguard.routes.dependencies import get_current_user
from betguard.schemas.bet import BetResponse
from betguard.schemas.sports import MarketCreate, MarketResponse, SportsBetCreate
from betguard.services import sports_service
from betguard.services.oracle import OracleClient, get_oracle

router = APIRouter(prefix="/sports", tags=["Sports"])

@router.get("/")
def list_sports():
    return [
        {"id": sport, "teams": {"team1": t1, "team2": t2}}
        for sport, (t1, t2) in sports_service.SPORTS.items()
    ]

@router.post("/markets", response_model=MarketResponse)
def create_market(
    data: MarketCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    oracle: OracleClient = Depends(get_oracle),
):
    return sports_service.create_market(db, data.sport, data.team1, data.team2, oracle)

@router.get("/markets/{market_id}", response_model=MarketResponse)
def get_market(market_id: int, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return sports_service.get_market(db, market_id)

@router.post("/bets", response_model=BetResponse)
def place_bet(
    data: SportsBetCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    source: OutcomeSource = Depends(get_outcome_source),
):
    return sports_service.place_sports_bet(
        db, user.id, data.market_id, data.outcome, data.amount, data.attempt_id, source
    )
