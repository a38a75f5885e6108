from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from datetime import datetime
from betguard.core.database import Base

class SportsMarket(Base):
    __tablename__ = "sports_markets"

    id = Column(Integer, primary_key=True)
    sport = Column(String(50), nullable=False)
    match = Column(String(200), nullable=False)
    # [{"outcome", "odds", "probability", "confidence"}], odds stored as strings
    predictions = Column(JSON, nullable=False)
    analysis = Column(Text, nullable=True)
    key_factors = Column(JSON, nullable=False, default=list)
    source = Column(String(10), nullable=False)  # oracle | fallback
    created_at = Column(DateTime, default=datetime.utcnow)

    def find_prediction(self, outcome: str):
        for p in self.predictions or []:
            if p["outcome"] == outcome:
                return p
        return None
