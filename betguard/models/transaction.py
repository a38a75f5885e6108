from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, DateTime, CheckConstraint
from datetime import datetime
from betguard.core.database import Base

TRANSACTION_TYPES = ("deposit", "bet", "win", "withdrawal")

class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        CheckConstraint(
            "type IN ('deposit', 'bet', 'win', 'withdrawal')",
            name="ck_transaction_type",
        ),
    )

    id = Column(Integer, primary_key=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(20), nullable=False)  # deposit | bet | win | withdrawal
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    bet_id = Column(Integer, ForeignKey("bets.id"), nullable=True)
