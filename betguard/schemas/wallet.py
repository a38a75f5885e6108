from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

class DepositRequest(BaseModel):
    amount: Decimal = Field(gt=0)

class WithdrawRequest(BaseModel):
    amount: Decimal = Field(gt=0)

class WalletResponse(BaseModel):
    balance: Decimal

class DepositStatusResponse(BaseModel):
    deposit_limit: Decimal
    deposited_today: Decimal
    remaining: Decimal

class LedgerStateResponse(BaseModel):
    balance: Decimal
    transaction_ids: list[int]

class TransactionResponse(BaseModel):
    id: int
    amount: Decimal
    type: str
    created_at: datetime

    class Config:
        from_attributes = True
