from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from betguard.core.database import get_db
from betguard.core.game import OutcomeSource, get_outcome_source
from betguard.routes.dependencies import get_current_user
from betguard.schemas.blackjack import DealRequest, HandResponse
from betguard.services import blackjack_service

router = APIRouter(prefix="/blackjack", tags=["Blackjack"])

def _view(db: Session, user, hand):
    db.refresh(user)
    return blackjack_service.hand_view(db, hand, user.balance)

@router.post("/deal", response_model=HandResponse)
def deal(
    data: DealRequest,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    source: OutcomeSource = Depends(get_outcome_source),
):
    hand = blackjack_service.deal(db, user.id, data.amount, data.attempt_id, source)
    return _view(db, user, hand)

@router.get("/{hand_id}", response_model=HandResponse)
def get_hand(hand_id: int, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return _view(db, user, blackjack_service.get_hand(db, user.id, hand_id))

@router.post("/{hand_id}/hit", response_model=HandResponse)
def hit(
    hand_id: int,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    source: OutcomeSource = Depends(get_outcome_source),
):
    return _view(db, user, blackjack_service.hit(db, user.id, hand_id, source))

@router.post("/{hand_id}/stand", response_model=HandResponse)
def stand(
    hand_id: int,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    source: OutcomeSource = Depends(get_outcome_source),
):
    return _view(db, user, blackjack_service.stand(db, user.id, hand_id, source))
