from datetime import datetime
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from betguard.core.config import settings
from betguard.schemas.bet import ATTEMPT_ID_PATTERN, new_attempt_id

class Prediction(BaseModel):
    outcome: str = Field(min_length=1, max_length=100)
    odds: Decimal
    probability: Decimal = Field(ge=0, le=100)
    confidence: Literal["low", "medium", "high"]

    @field_validator("odds")
    @classmethod
    def odds_in_range(cls, v: Decimal) -> Decimal:
        if v < settings.SPORTS_MIN_ODDS or v > settings.SPORTS_MAX_ODDS:
            raise ValueError("odds out of range")
        return v.quantize(Decimal("0.01"))

class MatchPredictions(BaseModel):
    """Quote the oracle must return for a market to be opened."""

    model_config = ConfigDict(populate_by_name=True)

    match: str = Field(min_length=1, max_length=200)
    sport: str = Field(min_length=1, max_length=50)
    predictions: list[Prediction] = Field(min_length=2, max_length=5)
    analysis: str = ""
    key_factors: list[str] = Field(default_factory=list, alias="keyFactors")

    @field_validator("predictions")
    @classmethod
    def outcomes_unique(cls, v: list[Prediction]) -> list[Prediction]:
        if len({p.outcome for p in v}) != len(v):
            raise ValueError("duplicate outcomes")
        return v

class MarketCreate(BaseModel):
    sport: str = Field(min_length=1, max_length=50)
    team1: str = Field(min_length=1, max_length=80)
    team2: str = Field(min_length=1, max_length=80)

class MarketResponse(BaseModel):
    id: int
    sport: str
    match: str
    predictions: list[Prediction]
    analysis: str | None
    key_factors: list[str]
    source: str
    created_at: datetime

    class Config:
        from_attributes = True

class SportsBetCreate(BaseModel):
    market_id: int
    outcome: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(gt=0)
    attempt_id: str = Field(default_factory=new_attempt_id, min_length=1, max_length=64, pattern=ATTEMPT_ID_PATTERN)
