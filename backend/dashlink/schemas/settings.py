"""设置相关 Schema"""
from pydantic import BaseModel
from typing import List, Optional


class EffectInfo(BaseModel):
    """悬停效果"""
    id: str
    name: str
    description: str


class SettingsResponse(BaseModel):
    """全部设置"""
    hover_effect: str
    available_effects: List[EffectInfo]
    widget_title: str
    user_links_enabled: bool
    user_link_limit: int


class SettingsUpdate(BaseModel):
    """更新设置（未提供的字段保持不变）"""
    hover_effect: Optional[str] = None
    widget_title: Optional[str] = None
    user_links_enabled: Optional[bool] = None
    user_link_limit: Optional[int] = None
