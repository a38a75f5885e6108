from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

class PlatformStats(BaseModel):
    total_users: int
    total_deposits: Decimal
    total_bets: Decimal
    total_wins: Decimal
    platform_profit: Decimal
    active_users: int

class UserSummary(BaseModel):
    id: int
    username: str
    balance: Decimal
    deposit_limit: Decimal
    is_banned: bool
    created_at: datetime

    class Config:
        from_attributes = True

class TransactionRow(BaseModel):
    id: int
    user_id: int
    username: str
    amount: Decimal
    type: str
    created_at: datetime

class AuditRow(BaseModel):
    id: int
    user_id: int | None
    username: str
    action: str
    created_at: datetime

class BanRequest(BaseModel):
    reason: str = Field(default="Banned by admin", min_length=1, max_length=255)

class AdviceRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)

class RiskFlags(BaseModel):
    high_win_rate: bool
    rapid_deposits: bool
    negative_balance: bool
    balance_anomaly: bool

class PlayerStatistics(BaseModel):
    total_bets: Decimal
    total_wins: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    avg_bet_size: Decimal
    win_rate: Decimal
    net_profit: Decimal
    transaction_count: int
    deposits_last_24h: int

class RiskAnalysis(BaseModel):
    user_id: int
    username: str
    risk_score: int
    recommendation: str
    flags: RiskFlags
    statistics: PlayerStatistics
    ai_insights: str | None

class AdviceResponse(BaseModel):
    user_id: int
    advice: str
    source: str
    statistics: PlayerStatistics

class ReconcileResponse(BaseModel):
    user_id: int
    cached: Decimal
    ledger: Decimal
    corrected: bool
