from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from betguard.core.database import get_db
from betguard.schemas.wallet import (
    DepositRequest,
    DepositStatusResponse,
    LedgerStateResponse,
    TransactionResponse,
    WalletResponse,
    WithdrawRequest,
)
from betguard.services import wallet_service
from betguard.routes.dependencies import get_current_user

router = APIRouter(prefix="/wallet", tags=["Wallet"])

@router.get("/balance", response_model=WalletResponse)
def get_balance(user=Depends(get_current_user), db: Session = Depends(get_db)):
    # always the stored balance, never a client-side figure
    db.refresh(user)
    return {"balance": user.balance}

@router.get("/deposit-status", response_model=DepositStatusResponse)
def deposit_status(user=Depends(get_current_user), db: Session = Depends(get_db)):
    return wallet_service.deposit_status(db, user)

@router.post("/deposit", response_model=LedgerStateResponse)
def deposit_money(
    data: DepositRequest,
    user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return wallet_service.deposit(db, user.id, data.amount)

@router.post("/withdraw", response_model=LedgerStateResponse)
def withdraw_money(
    data: WithdrawRequest,
    user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return wallet_service.withdraw(db, user.id, data.amount)

@router.get("/transactions", response_model=list[TransactionResponse])
def transactions(
    limit: int = Query(default=50, ge=1, le=500),
    user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return wallet_service.list_transactions(db, user.id, limit)
