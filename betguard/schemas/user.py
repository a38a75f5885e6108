from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=128)

class AdminCreate(UserCreate):
    registration_code: str

class UserResponse(BaseModel):
    id: int
    username: str
    balance: Decimal
    deposit_limit: Decimal
    play_time_limit: int
    is_banned: bool
    ban_reason: str | None
    banned_at: datetime | None
    last_login: datetime | None
    created_at: datetime
    is_admin: bool

    class Config:
        from_attributes = True
