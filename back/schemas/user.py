"""
운영자(User) 관련 Pydantic 스키마
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from datetime import datetime

OperatorRole = Literal["admin", "staff"]


class UserBase(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """자가 등록 스키마 (역할/지점은 슈퍼유저가 따로 지정)"""
    password: str = Field(..., min_length=6, max_length=100)


class UserLogin(BaseModel):
    username: str
    password: str


class UserAccessUpdate(BaseModel):
    """슈퍼유저 전용: 역할 / 소속 지점 지정"""
    role: Optional[OperatorRole] = Field(None, description="운영자 역할 (admin, staff)")
    gym_id: Optional[str] = Field(None, max_length=64, description="소속 지점 ID (null이면 해제)")


class UserResponse(UserBase):
    id: int
    role: OperatorRole
    gym_id: Optional[str] = None
    is_active: bool
    is_superuser: bool
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
