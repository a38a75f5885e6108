from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from betguard.core.database import get_db
from betguard.core.security import decode_access_token
from betguard.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_account_id(token: str | None = Depends(oauth2_scheme)) -> int | None:
    """Account id of the session, or None when there is no valid session."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        return int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        return None


def get_current_user(
    account_id: int | None = Depends(get_current_account_id),
    db: Session = Depends(get_db)
):
    if account_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = db.get(User, account_id)
    if not user:
        raise HTTPException(status_code=401, detail="Account not found")
    return user


def admin_only(user=Depends(get_current_user)):
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return user
