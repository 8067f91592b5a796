from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.core.enums import UserRole


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None
    role: UserRole = UserRole.QUOTE_CREATOR


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserOut(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: UserRole
    created_at: datetime
