from pydantic import BaseModel, Field
from typing import Optional
from app.core.enums import UserRole


class LoginIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)


class RegisterIn(LoginIn):
    full_name: Optional[str] = Field(None, max_length=120)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: UserRole
