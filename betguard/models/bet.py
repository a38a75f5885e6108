from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, DateTime, JSON, UniqueConstraint
from datetime import datetime
from betguard.core.database import Base

class Bet(Base):
    """A committed settlement; one row per wager attempt."""

    __tablename__ = "bets"
    __table_args__ = (UniqueConstraint("user_id", "attempt_key", name="uq_bet_attempt"),)

    id = Column(Integer, primary_key=True)
    attempt_key = Column(String(64), nullable=False)
    game = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    prediction = Column(JSON, nullable=True)
    outcome = Column(JSON, nullable=True)
    multiplier = Column(Numeric(8, 2), nullable=False, default=0)
    payout = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
