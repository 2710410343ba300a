"""公开链接路由（登录用户可见）"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ...config import settings
from ...models import User
from ...schemas import LinkResponse, WidgetResponse
from ...services.icon_service import IconService
from ...services.link_service import LinkService
from ...services.settings_service import SettingsService
from ...services.user_link_service import UserLinkService
from ...database import get_db
from ..deps import get_current_user, get_icon_service, get_link_service, get_settings_service
from ..helpers import GLOBAL_ICON_ROUTE, USER_ICON_ROUTE, serialize_link

router = APIRouter()


def icon_response(content: bytes, mime_type: str) -> Response:
    """图标响应，浏览器缓存一天"""
    return Response(
        content=content,
        media_type=mime_type,
        headers={
            "Cache-Control": f"public, max-age={settings.ICON_CACHE_SECONDS}",
            "X-Content-Type-Options": "nosniff",
            "Content-Security-Policy": "default-src 'none'; style-src 'unsafe-inline'; sandbox",
        },
    )


@router.get("/links", response_model=List[LinkResponse])
async def list_links(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: LinkService = Depends(get_link_service),
):
    """当前用户可见的全局链接"""
    links = await service.list_visible_for(current_user.group_ids)
    return [serialize_link(request, link) for link in links]


@router.get("/links/{link_id}/icon", name=GLOBAL_ICON_ROUTE)
async def get_link_icon(
    link_id: int,
    current_user: User = Depends(get_current_user),
    icon_service: IconService = Depends(get_icon_service),
):
    """获取全局链接的图标"""
    content, mime_type = await icon_service.read(link_id)
    return icon_response(content, mime_type)


@router.get("/widget", response_model=WidgetResponse)
async def get_widget(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: LinkService = Depends(get_link_service),
    settings_service: SettingsService = Depends(get_settings_service),
    db: AsyncSession = Depends(get_db),
):
    """
    仪表盘小部件

    全局可见链接在前，个人链接功能开启时追加当前用户的启用链接，最多返回 WIDGET_MAX_LINKS 个。
    """
    items = [serialize_link(request, link) for link in await service.list_visible_for(current_user.group_ids)]

    if await settings_service.is_user_links_enabled():
        user_links = UserLinkService(db, current_user.id, settings_service)
        items.extend(
            serialize_link(request, link, USER_ICON_ROUTE)
            for link in await user_links.list_enabled()
        )

    return WidgetResponse(
        title=await settings_service.get_widget_title(),
        hover_effect=await settings_service.get_hover_effect(),
        links=items[:settings.WIDGET_MAX_LINKS],
    )
