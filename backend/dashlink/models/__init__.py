"""数据模型"""
from .user import User, Group, user_groups
from .link import Link
from .app_setting import AppSetting

__all__ = [
    "User", "Group", "user_groups",
    "Link",
    "AppSetting",
]
