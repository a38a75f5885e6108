from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from betguard.schemas.bet import ATTEMPT_ID_PATTERN, new_attempt_id

class DealRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    attempt_id: str = Field(default_factory=new_attempt_id, min_length=1, max_length=64, pattern=ATTEMPT_ID_PATTERN)

class HandResponse(BaseModel):
    id: int
    amount: Decimal
    status: str
    player_cards: list[str]
    player_total: int
    dealer_cards: list[str]
    dealer_total: int | None
    payout: Decimal
    balance: Decimal
    created_at: datetime
