"""管理员链接路由"""
from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from typing import List

from ...config import settings
from ...models import User
from ...schemas import ImportResult, LinkCreate, LinkOrderRequest, LinkResponse, LinkUpdate
from ...services.icon_service import IconService
from ...services.link_service import LinkService
from ...services.rate_limit import RateLimiter
from ..deps import get_current_admin, get_icon_service, get_link_service, get_rate_limiter
from ..helpers import read_import_payload, read_upload, serialize_link

router = APIRouter()


@router.get("", response_model=List[LinkResponse])
async def list_links(
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
):
    """全部全局链接（包括已禁用的）"""
    return [serialize_link(request, link) for link in await service.list_all()]


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_in: LinkCreate,
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
):
    """创建全局链接"""
    link = await service.create(link_in)
    return serialize_link(request, link)


@router.put("/order", response_model=List[LinkResponse])
async def reorder_links(
    order: LinkOrderRequest,
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
):
    """按给定 ID 顺序重新排序"""
    links = await service.reorder(order.link_ids)
    return [serialize_link(request, link) for link in links]


@router.get("/export", response_model=List[LinkResponse])
async def export_links(
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
):
    """导出全部全局链接，图标地址为绝对地址"""
    return [serialize_link(request, link) for link in await service.export()]


@router.post("/import", response_model=ImportResult)
async def import_links(
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
    icon_service: IconService = Depends(get_icon_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """从 JSON 导入链接（请求体或 multipart 的 file 字段）"""
    limiter.enforce(
        "import",
        current_user.id,
        settings.RATE_LIMIT_IMPORT,
        settings.RATE_LIMIT_WINDOW,
        f"每小时最多导入 {settings.RATE_LIMIT_IMPORT} 次，请稍后再试",
    )
    records = await read_import_payload(request, settings.IMPORT_MAX_LINKS)
    return await service.import_links(records, icon_fetcher=icon_service.fetch_and_store)


@router.put("/{link_id}", response_model=LinkResponse)
async def update_link(
    link_id: int,
    link_in: LinkUpdate,
    request: Request,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
):
    """部分更新链接"""
    link = await service.update(link_id, link_in)
    return serialize_link(request, link)


@router.delete("/{link_id}")
async def delete_link(
    link_id: int,
    current_user: User = Depends(get_current_admin),
    service: LinkService = Depends(get_link_service),
    icon_service: IconService = Depends(get_icon_service),
):
    """删除链接，图标文件尽力删除"""
    link = await service.get(link_id)
    if link.icon_path:
        await icon_service.discard_file(link.icon_path)
    await service.delete(link_id)
    return {"message": "链接已删除"}


@router.post("/{link_id}/icon", response_model=LinkResponse)
async def upload_icon(
    link_id: int,
    request: Request,
    icon: UploadFile = File(...),
    current_user: User = Depends(get_current_admin),
    icon_service: IconService = Depends(get_icon_service),
):
    """上传图标"""
    content = await read_upload(icon, settings.ICON_MAX_SIZE, "图标文件过大")
    link = await icon_service.upload(link_id, content, icon.content_type)
    return serialize_link(request, link)


@router.delete("/{link_id}/icon", response_model=LinkResponse)
async def delete_icon(
    link_id: int,
    request: Request,
    current_user: User = Depends(get_current_admin),
    icon_service: IconService = Depends(get_icon_service),
):
    """删除图标"""
    link = await icon_service.delete(link_id)
    return serialize_link(request, link)
