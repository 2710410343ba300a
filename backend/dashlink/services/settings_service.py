"""应用设置服务"""
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ValidationError
from ..models import AppSetting
from .validation import sanitize_text, validate_integer

# 可用的悬停效果，需要与前端注册表保持一致
AVAILABLE_EFFECTS = {
    "blur": {
        "id": "blur",
        "name": "Blur Overlay",
        "description": "Description appears over a blurred logo background",
    },
    "flip": {
        "id": "flip",
        "name": "3D Card Flip",
        "description": "Card flips to reveal description on the back",
    },
    "slide": {
        "id": "slide",
        "name": "Slide Panel",
        "description": "Description panel slides up from the bottom",
    },
}

DEFAULT_EFFECT = "blur"
DEFAULT_WIDGET_TITLE = "DashLink"
MAX_TITLE_LENGTH = 100
DEFAULT_USER_LINKS_ENABLED = False
DEFAULT_USER_LINK_LIMIT = 10
MIN_USER_LINK_LIMIT = 1
MAX_USER_LINK_LIMIT = 50


class SettingsService:
    """基于 app_settings 键值表的类型化设置"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, key: str, default: str) -> str:
        setting = await self.db.get(AppSetting, key)
        if setting is None or setting.value is None:
            return default
        return setting.value

    async def _set(self, key: str, value: str) -> None:
        setting = await self.db.get(AppSetting, key)
        if setting is None:
            self.db.add(AppSetting(key=key, value=value))
        else:
            setting.value = value
        await self.db.flush()

    # ==================== 悬停效果 ====================

    async def get_hover_effect(self) -> str:
        effect = await self._get("hover_effect", DEFAULT_EFFECT)
        if effect not in AVAILABLE_EFFECTS:
            return DEFAULT_EFFECT
        return effect

    async def set_hover_effect(self, effect: str) -> None:
        if effect not in AVAILABLE_EFFECTS:
            raise ValidationError(f"无效的悬停效果: {effect}")
        await self._set("hover_effect", effect)

    @staticmethod
    def get_available_effects() -> list[dict]:
        return list(AVAILABLE_EFFECTS.values())

    # ==================== 小部件标题 ====================

    async def get_widget_title(self) -> str:
        return await self._get("widget_title", DEFAULT_WIDGET_TITLE) or DEFAULT_WIDGET_TITLE

    async def set_widget_title(self, title: str) -> None:
        title = sanitize_text(title, MAX_TITLE_LENGTH)
        await self._set("widget_title", title or DEFAULT_WIDGET_TITLE)

    # ==================== 个人链接 ====================

    async def is_user_links_enabled(self) -> bool:
        default = "1" if DEFAULT_USER_LINKS_ENABLED else "0"
        return await self._get("user_links_enabled", default) == "1"

    async def set_user_links_enabled(self, enabled: bool) -> None:
        await self._set("user_links_enabled", "1" if enabled else "0")

    async def get_user_link_limit(self) -> int:
        raw = await self._get("user_link_limit", str(DEFAULT_USER_LINK_LIMIT))
        try:
            limit = int(raw)
        except ValueError:
            return DEFAULT_USER_LINK_LIMIT
        return max(MIN_USER_LINK_LIMIT, min(limit, MAX_USER_LINK_LIMIT))

    async def set_user_link_limit(self, limit: int) -> None:
        validate_integer(limit, MIN_USER_LINK_LIMIT, MAX_USER_LINK_LIMIT)
        await self._set("user_link_limit", str(limit))

    async def get_settings(self) -> dict:
        return {
            "hover_effect": await self.get_hover_effect(),
            "available_effects": self.get_available_effects(),
            "widget_title": await self.get_widget_title(),
            "user_links_enabled": await self.is_user_links_enabled(),
            "user_link_limit": await self.get_user_link_limit(),
        }
