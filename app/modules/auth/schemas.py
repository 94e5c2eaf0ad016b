from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class RegisterResponse(BaseModel):
    user_id: str
    email: str


class SetSuperUserRequest(BaseModel):
    user_id: str
    is_super_user: bool = True
