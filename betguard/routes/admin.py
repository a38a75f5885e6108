from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from betguard.core.database import get_db
from betguard.routes.dependencies import admin_only
from betguard.schemas.admin import (
    AdviceRequest,
    AdviceResponse,
    AuditRow,
    BanRequest,
    PlatformStats,
    ReconcileResponse,
    RiskAnalysis,
    TransactionRow,
    UserSummary,
)
from betguard.schemas.user import UserResponse
from betguard.services import admin_service, ledger
from betguard.services.oracle import OracleClient, get_oracle

router = APIRouter(prefix="/admin", tags=["Admin"])

@router.get("/stats", response_model=PlatformStats)
def stats(admin=Depends(admin_only), db: Session = Depends(get_db)):
    return admin_service.platform_stats(db)

@router.get("/users", response_model=list[UserSummary])
def users(admin=Depends(admin_only), db: Session = Depends(get_db)):
    return admin_service.list_users(db)

@router.get("/users/{user_id}")
def user_details(user_id: int, admin=Depends(admin_only), db: Session = Depends(get_db)):
    user = admin_service.get_user(db, user_id)
    return {
        "profile": UserResponse.model_validate(user),
        "transactions": admin_service.recent_transactions(db, admin_service.RECENT_TRANSACTIONS, user_id),
        "audit": admin_service.recent_audit(db, admin_service.RECENT_AUDIT, user_id),
    }

@router.get("/transactions", response_model=list[TransactionRow])
def transactions(
    limit: int = Query(default=50, ge=1, le=500),
    admin=Depends(admin_only),
    db: Session = Depends(get_db)
):
    return admin_service.recent_transactions(db, limit)

@router.get("/audit", response_model=list[AuditRow])
def audit(
    limit: int = Query(default=50, ge=1, le=500),
    admin=Depends(admin_only),
    db: Session = Depends(get_db)
):
    return admin_service.recent_audit(db, limit)

@router.post("/users/{user_id}/ban", response_model=UserResponse)
def ban(user_id: int, data: BanRequest, admin=Depends(admin_only), db: Session = Depends(get_db)):
    return admin_service.ban_user(db, admin, user_id, data.reason)

@router.post("/users/{user_id}/unban", response_model=UserResponse)
def unban(user_id: int, admin=Depends(admin_only), db: Session = Depends(get_db)):
    return admin_service.unban_user(db, admin, user_id)

@router.post("/users/{user_id}/analyze", response_model=RiskAnalysis)
def analyze(
    user_id: int,
    admin=Depends(admin_only),
    db: Session = Depends(get_db),
    oracle: OracleClient = Depends(get_oracle),
):
    return admin_service.analyze_player(db, user_id, oracle)

@router.post("/users/{user_id}/advice", response_model=AdviceResponse)
def advice(
    user_id: int,
    data: AdviceRequest,
    admin=Depends(admin_only),
    db: Session = Depends(get_db),
    oracle: OracleClient = Depends(get_oracle),
):
    return admin_service.send_advice(db, admin, user_id, data.message, oracle)

@router.post("/users/{user_id}/reconcile", response_model=ReconcileResponse)
def reconcile(user_id: int, admin=Depends(admin_only), db: Session = Depends(get_db)):
    admin_service.get_user(db, user_id)
    return ledger.reconcile(db, user_id)
