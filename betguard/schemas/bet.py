from decimal import Decimal
from typing import Any
from uuid import uuid4
from pydantic import BaseModel, Field

ATTEMPT_ID_PATTERN = r"^[A-Za-z0-9_-]+$"

def new_attempt_id() -> str:
    return uuid4().hex

class BetCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    prediction: int | str | None = None
    # same id on a retry returns the first settlement
    attempt_id: str = Field(default_factory=new_attempt_id, min_length=1, max_length=64, pattern=ATTEMPT_ID_PATTERN)

class BetResponse(BaseModel):
    bet_id: int
    game: str
    amount: Decimal
    prediction: Any
    outcome: Any
    multiplier: Decimal
    payout: Decimal
    delta: Decimal
    won: bool
    balance: Decimal
    replayed: bool

    class Config:
        from_attributes = True

class GameInfo(BaseModel):
    game: str
    rules: str
