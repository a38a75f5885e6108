from datetime import datetime, timedelta, timezone

from jose import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from betguard.core.config import settings

ALGORITHM = "HS256"


def hash_password(raw: str) -> str:
    return generate_password_hash(raw)


def verify_password(raw: str, hashed: str) -> bool:
    return check_password_hash(hashed, raw)


def create_access_token(data: dict, expires_minutes: int | None = None) -> str:
    to_encode = dict(data)
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
