import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from betguard.core.config import settings
from betguard.core.database import get_db
from betguard.core.errors import AccountBanned
from betguard.core.security import hash_password, verify_password, create_access_token
from betguard.models.audit import AuditLog
from betguard.models.role import UserRole
from betguard.models.user import User
from betguard.routes.dependencies import get_current_user
from betguard.schemas.auth import Token
from betguard.schemas.user import AdminCreate, UserCreate, UserResponse
from betguard.services.ledger import append_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _create_account(db: Session, data: UserCreate, roles: list[str], action: str) -> User:
    if db.query(User).filter(User.username == data.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")

    user = User(
        username=data.username,
        password=hash_password(data.password),
        balance=0,
        deposit_limit=settings.DEFAULT_DEPOSIT_LIMIT,
        play_time_limit=settings.DEFAULT_PLAY_TIME_LIMIT,
        roles=[UserRole(role=r) for r in roles],
    )
    try:
        db.add(user)
        db.flush()
        db.add(AuditLog(user_id=user.id, action=action))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Username already taken")
    db.refresh(user)

    logger.info("Created account %s (%s)", user.id, ",".join(roles))
    return user


def _login(db: Session, data: UserCreate, require_admin: bool = False) -> dict:
    user = db.query(User).filter(User.username == data.username).first()

    if not user or not verify_password(data.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if require_admin and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")

    if user.is_banned:
        logger.info("Banned account %s tried to log in", user.id)
        raise AccountBanned(user.ban_reason or "Your account has been banned.")

    user.last_login = datetime.utcnow()
    db.add(AuditLog(user_id=user.id, action="admin_login" if require_admin else "login"))
    db.commit()

    token = create_access_token({"sub": str(user.id)})
    return {"access_token": token}


@router.post("/register", response_model=Token)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    user = _create_account(db, user_data, ["player"], "account_created")
    token = create_access_token({"sub": str(user.id)})
    return {"access_token": token}


@router.post("/login", response_model=Token)
def login(user_data: UserCreate, db: Session = Depends(get_db)):
    return _login(db, user_data)


@router.post("/logout")
def logout(user=Depends(get_current_user), db: Session = Depends(get_db)):
    append_audit(db, user.id, "logout")
    return {"status": "ok"}


@router.get("/me", response_model=UserResponse)
def me(user=Depends(get_current_user)):
    return user


@router.post("/admin/register", response_model=Token)
def register_admin(data: AdminCreate, db: Session = Depends(get_db)):
    if not settings.ADMIN_REGISTRATION_CODE or data.registration_code != settings.ADMIN_REGISTRATION_CODE:
        raise HTTPException(status_code=403, detail="Invalid registration code")

    user = _create_account(db, data, ["admin"], "admin_registered")
    token = create_access_token({"sub": str(user.id)})
    return {"access_token": token}


@router.post("/admin/login", response_model=Token)
def admin_login(user_data: UserCreate, db: Session = Depends(get_db)):
    return _login(db, user_data, require_admin=True)
