from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from sqlalchemy.orm import relationship
from betguard.core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)

    # cached; only the ledger writer mutates it
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    deposit_limit = Column(Numeric(12, 2), nullable=False)
    play_time_limit = Column(Integer, nullable=False)

    is_banned = Column(Boolean, nullable=False, default=False)
    ban_reason = Column(String(255), nullable=True)
    banned_at = Column(DateTime, nullable=True)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan", lazy="selectin")

    @property
    def is_admin(self) -> bool:
        return any(r.role == "admin" for r in self.roles)
