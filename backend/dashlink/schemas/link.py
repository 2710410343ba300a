"""链接相关 Schema"""
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from datetime import datetime
from typing import Annotated, Any, List, Optional


def _coerce_enabled(v: Any) -> Any:
    """enabled 以 0/1 存储，兼容布尔值"""
    if isinstance(v, bool):
        return int(v)
    return v


EnabledFlag = Annotated[int, BeforeValidator(_coerce_enabled), Field(ge=0, le=1)]


class LinkCreate(BaseModel):
    """创建链接"""
    title: str = ""
    url: str = Field(..., max_length=2048)
    description: Optional[str] = None
    target: str = "_blank"
    groups: List[str] = []
    position: int = Field(0, ge=0)
    enabled: EnabledFlag = 1


class UserLinkCreate(BaseModel):
    """创建个人链接（没有用户组限制，追加到末尾）"""
    title: str = ""
    url: str = Field(..., max_length=2048)
    description: Optional[str] = None
    target: str = "_blank"
    enabled: EnabledFlag = 1


class LinkUpdate(BaseModel):
    """部分更新：只有请求中出现的字段会被修改"""
    title: Optional[str] = None
    url: Optional[str] = Field(None, max_length=2048)
    description: Optional[str] = None
    target: Optional[str] = None
    groups: Optional[List[str]] = None
    position: Optional[int] = Field(None, ge=0)
    enabled: Optional[EnabledFlag] = None


class LinkOrderRequest(BaseModel):
    """排序请求"""
    link_ids: List[int]


class LinkResponse(BaseModel):
    """链接响应"""
    id: int
    title: str
    url: str
    description: Optional[str] = None
    icon_path: Optional[str] = None
    icon_mime_type: Optional[str] = None
    icon_url: Optional[str] = None
    target: str
    groups: List[str] = []
    position: int
    enabled: int
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserLinkListResponse(BaseModel):
    """个人链接列表"""
    links: List[LinkResponse]
    count: int
    limit: int


class ImportRecord(BaseModel):
    """导入文件中的一条记录"""
    title: str = ""
    url: str = ""
    description: Optional[str] = None
    target: str = "_blank"
    groups: List[str] = []
    enabled: EnabledFlag = 1
    icon_url: Optional[str] = Field(None, validation_alias=AliasChoices("iconUrl", "icon_url"))

    model_config = ConfigDict(extra="ignore")


class ImportResult(BaseModel):
    """导入结果"""
    imported: int = 0
    skipped: int = 0
    errors: List[str] = []


class WidgetResponse(BaseModel):
    """仪表盘小部件数据"""
    title: str
    hover_effect: str
    links: List[LinkResponse]
