"""用户组相关 Schema"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List


class GroupCreate(BaseModel):
    """创建用户组"""
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_\-]+$")
    display_name: str = Field(..., min_length=1, max_length=255)


class GroupResponse(BaseModel):
    """用户组响应"""
    id: str
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class UserGroupsUpdate(BaseModel):
    """设置用户所属的用户组"""
    group_ids: List[str]
