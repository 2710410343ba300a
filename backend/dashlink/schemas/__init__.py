"""Pydantic Schemas"""
from .user import UserCreate, UserLogin, UserResponse, Token, RefreshTokenRequest
from .link import (
    LinkCreate, UserLinkCreate, LinkUpdate, LinkOrderRequest, LinkResponse, UserLinkListResponse,
    ImportRecord, ImportResult, WidgetResponse,
)
from .settings import EffectInfo, SettingsResponse, SettingsUpdate
from .group import GroupCreate, GroupResponse, UserGroupsUpdate

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "Token", "RefreshTokenRequest",
    "LinkCreate", "UserLinkCreate", "LinkUpdate", "LinkOrderRequest", "LinkResponse", "UserLinkListResponse",
    "ImportRecord", "ImportResult", "WidgetResponse",
    "EffectInfo", "SettingsResponse", "SettingsUpdate",
    "GroupCreate", "GroupResponse", "UserGroupsUpdate",
]
