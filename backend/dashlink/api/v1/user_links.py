"""个人链接路由

所有接口都要求管理员开启个人链接功能，且只能操作自己的链接。
"""
from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from typing import List

from ...config import settings
from ...models import User
from ...schemas import ImportResult, LinkOrderRequest, LinkResponse, LinkUpdate, UserLinkCreate, UserLinkListResponse
from ...services.icon_service import IconService
from ...services.rate_limit import RateLimiter
from ...services.user_link_service import UserLinkService
from ..deps import get_current_user, get_icon_service, get_rate_limiter, get_user_link_service
from ..helpers import USER_ICON_ROUTE, read_import_payload, read_upload, serialize_link
from .links import icon_response

# 功能开关对所有接口生效
router = APIRouter(dependencies=[Depends(get_user_link_service)])


def _serialize(request: Request, link) -> LinkResponse:
    return serialize_link(request, link, USER_ICON_ROUTE)


@router.get("", response_model=UserLinkListResponse)
async def list_links(
    request: Request,
    service: UserLinkService = Depends(get_user_link_service),
):
    """我的链接，附带当前数量和上限"""
    links = await service.list()
    return UserLinkListResponse(
        links=[_serialize(request, link) for link in links],
        count=len(links),
        limit=await service.get_link_limit(),
    )


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_in: UserLinkCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserLinkService = Depends(get_user_link_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """创建个人链接"""
    limiter.enforce(
        "user_link_create",
        current_user.id,
        settings.RATE_LIMIT_USER_CREATE,
        settings.RATE_LIMIT_WINDOW,
        f"每小时最多创建 {settings.RATE_LIMIT_USER_CREATE} 个链接，请稍后再试",
    )
    link = await service.create(link_in)
    return _serialize(request, link)


@router.put("/order", response_model=List[LinkResponse])
async def reorder_links(
    order: LinkOrderRequest,
    request: Request,
    service: UserLinkService = Depends(get_user_link_service),
):
    """重新排序，不属于自己的 ID 会被忽略"""
    links = await service.reorder(order.link_ids)
    return [_serialize(request, link) for link in links]


@router.get("/export", response_model=List[LinkResponse])
async def export_links(
    request: Request,
    service: UserLinkService = Depends(get_user_link_service),
):
    """导出我的链接"""
    return [_serialize(request, link) for link in await service.export()]


@router.post("/import", response_model=ImportResult)
async def import_links(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserLinkService = Depends(get_user_link_service),
    icon_service: IconService = Depends(get_icon_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """导入个人链接，超出配额的部分会被跳过"""
    limiter.enforce(
        "user_link_import",
        current_user.id,
        settings.RATE_LIMIT_USER_IMPORT,
        settings.RATE_LIMIT_WINDOW,
        f"每小时最多导入 {settings.RATE_LIMIT_USER_IMPORT} 次，请稍后再试",
    )
    records = await read_import_payload(request, settings.USER_IMPORT_MAX_LINKS)

    async def fetch_icon(link_id: int, url: str):
        return await icon_service.fetch_and_store(link_id, url, current_user.id)

    return await service.import_links(records, icon_fetcher=fetch_icon)


@router.put("/{link_id}", response_model=LinkResponse)
async def update_link(
    link_id: int,
    link_in: LinkUpdate,
    request: Request,
    service: UserLinkService = Depends(get_user_link_service),
):
    """部分更新个人链接（groups 字段会被忽略）"""
    link = await service.update(link_id, link_in)
    return _serialize(request, link)


@router.delete("/{link_id}")
async def delete_link(
    link_id: int,
    service: UserLinkService = Depends(get_user_link_service),
    icon_service: IconService = Depends(get_icon_service),
):
    """删除个人链接"""
    link = await service.get(link_id)
    if link.icon_path:
        await icon_service.discard_file(link.icon_path)
    await service.delete(link_id)
    return {"message": "链接已删除"}


@router.get("/{link_id}/icon", name=USER_ICON_ROUTE)
async def get_user_link_icon(
    link_id: int,
    current_user: User = Depends(get_current_user),
    icon_service: IconService = Depends(get_icon_service),
):
    """获取自己链接的图标"""
    content, mime_type = await icon_service.read(link_id, current_user.id)
    return icon_response(content, mime_type)


@router.post("/{link_id}/icon", response_model=LinkResponse)
async def upload_icon(
    link_id: int,
    request: Request,
    icon: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    icon_service: IconService = Depends(get_icon_service),
):
    """上传图标"""
    content = await read_upload(icon, settings.ICON_MAX_SIZE, "图标文件过大")
    link = await icon_service.upload(link_id, content, icon.content_type, current_user.id)
    return _serialize(request, link)


@router.delete("/{link_id}/icon", response_model=LinkResponse)
async def delete_icon(
    link_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    icon_service: IconService = Depends(get_icon_service),
):
    """删除图标"""
    link = await icon_service.delete(link_id, current_user.id)
    return _serialize(request, link)
