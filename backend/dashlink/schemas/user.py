"""用户相关 Schema"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import List


class UserCreate(BaseModel):
    """用户注册"""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6, max_length=100)


class UserLogin(BaseModel):
    """用户登录"""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """用户响应"""
    id: str
    email: str
    username: str
    is_active: bool
    is_admin: bool = False
    group_ids: List[str] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Token 响应"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    """刷新 Token 请求"""
    refresh_token: str

