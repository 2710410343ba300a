"""应用设置路由（管理员）"""
import logging

from fastapi import APIRouter, Depends

from ...models import User
from ...schemas import SettingsResponse, SettingsUpdate
from ...services.settings_service import SettingsService
from ..deps import get_current_admin, get_settings_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_admin),
    service: SettingsService = Depends(get_settings_service),
):
    """获取全部设置"""
    return await service.get_settings()


@router.put("", response_model=SettingsResponse)
async def update_settings(
    settings_in: SettingsUpdate,
    current_user: User = Depends(get_current_admin),
    service: SettingsService = Depends(get_settings_service),
):
    """更新设置，任意一项校验失败时整个请求回滚"""
    if settings_in.hover_effect is not None:
        await service.set_hover_effect(settings_in.hover_effect)
    if settings_in.widget_title is not None:
        await service.set_widget_title(settings_in.widget_title)
    if settings_in.user_links_enabled is not None:
        await service.set_user_links_enabled(settings_in.user_links_enabled)
    if settings_in.user_link_limit is not None:
        await service.set_user_link_limit(settings_in.user_link_limit)

    logger.info(f"[Settings] {current_user.username} 更新设置: {settings_in.model_dump(exclude_none=True)}")
    return await service.get_settings()
