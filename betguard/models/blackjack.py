from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, DateTime, JSON, UniqueConstraint
from datetime import datetime
from betguard.core.database import Base

class BlackjackHand(Base):
    __tablename__ = "blackjack_hands"
    __table_args__ = (UniqueConstraint("user_id", "attempt_key", name="uq_blackjack_attempt"),)

    id = Column(Integer, primary_key=True)
    attempt_key = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    player_cards = Column(JSON, nullable=False, default=list)
    dealer_cards = Column(JSON, nullable=False, default=list)
    status = Column(String(10), nullable=False, default="open")  # open | won | lost
    created_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @property
    def is_open(self) -> bool:
        return self.status == "open"
