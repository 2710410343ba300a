"""图标服务"""
import logging
import os
import secrets
import time
from typing import Optional, Tuple

import aiofiles
import aiofiles.os
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import DashLinkError, NotFound, ValidationError
from ..models import Link
from ..utils.http_client import download_icon
from ..utils.images import (
    ALLOWED_MIME_TYPES,
    detect_mime,
    normalize_mime,
    sanitize_svg,
    verify_raster,
)
from .link_store import LinkStore
from .validation import ICON_FILENAME_PREFIX, validate_icon_filename

logger = logging.getLogger(__name__)

SVG_MIME = "image/svg+xml"


class IconStore:
    """图标文件存储目录，每次访问前都校验文件名"""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir or settings.ICON_STORAGE_DIR
        os.makedirs(self.base_dir, exist_ok=True)

    def _path(self, filename: str) -> str:
        return os.path.join(self.base_dir, validate_icon_filename(filename))

    async def write(self, filename: str, content: bytes) -> None:
        async with aiofiles.open(self._path(filename), "wb") as f:
            await f.write(content)

    async def read(self, filename: str) -> bytes:
        path = self._path(filename)
        if not os.path.isfile(path):
            raise NotFound("图标不存在")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, filename: str) -> bool:
        path = self._path(filename)
        if not os.path.isfile(path):
            return False
        await aiofiles.os.remove(path)
        return True


class IconService:
    """链接图标的上传、下载、删除和读取

    owner_id 为 None 时操作全局链接，否则只能操作该用户自己的链接。
    """

    def __init__(
        self,
        db: AsyncSession,
        store: Optional[IconStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.links = LinkStore(db)
        self.store = store or IconStore()
        self.transport = transport

    @staticmethod
    def build_filename(link_id: int, mime_type: str) -> str:
        ext = ALLOWED_MIME_TYPES[mime_type]
        return f"{ICON_FILENAME_PREFIX}{link_id}_{int(time.time())}_{secrets.token_hex(4)}.{ext}"

    async def upload(self, link_id: int, content: bytes, declared_mime: Optional[str], owner_id: Optional[str] = None) -> Link:
        """
        保存上传的图标

        Raises:
            NotFound: 链接不存在或不属于该分区
            ValidationError: 类型不允许、内容与声明不符、文件损坏或过大
        """
        link = await self.links.find_by_id_for_owner(link_id, owner_id)

        mime_type = normalize_mime(declared_mime)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(f"不支持的图标类型: {mime_type or '未知'}")

        if mime_type == SVG_MIME:
            content = sanitize_svg(content)

        detected = detect_mime(content)
        if detected != mime_type:
            raise ValidationError("文件内容与声明的类型不一致")
        if mime_type != SVG_MIME:
            verify_raster(content)

        if len(content) > settings.ICON_MAX_SIZE:
            raise ValidationError(f"图标文件过大，最大支持 {settings.ICON_MAX_SIZE // 1024 // 1024}MB")

        filename = self.build_filename(link.id, mime_type)
        await self.store.write(filename, content)

        previous = link.icon_path
        link.icon_path = filename
        link.icon_mime_type = mime_type
        link = await self.links.update(link)

        if previous and previous != filename:
            await self.discard_file(previous)

        logger.info(f"[Icon] 链接 {link.id} 图标已更新: {filename} ({mime_type}, {len(content)} bytes)")
        return link

    async def fetch_and_store(self, link_id: int, url: str, owner_id: Optional[str] = None) -> Link:
        """从远程地址下载图标并保存，类型以文件内容为准"""
        await self.links.find_by_id_for_owner(link_id, owner_id)

        downloaded = await download_icon(url, transport=self.transport)
        mime_type = detect_mime(downloaded.content)
        if mime_type is None:
            raise ValidationError("下载的文件不是支持的图片格式")
        return await self.upload(link_id, downloaded.content, mime_type, owner_id)

    async def delete(self, link_id: int, owner_id: Optional[str] = None) -> Link:
        """删除图标，没有图标时什么都不做"""
        link = await self.links.find_by_id_for_owner(link_id, owner_id)
        if not link.icon_path:
            return link

        await self.discard_file(link.icon_path)
        link.icon_path = None
        link.icon_mime_type = None
        link = await self.links.update(link)
        logger.info(f"[Icon] 链接 {link.id} 图标已删除")
        return link

    async def read(self, link_id: int, owner_id: Optional[str] = None) -> Tuple[bytes, str]:
        """返回 (内容, MIME 类型)"""
        link = await self.links.find_by_id_for_owner(link_id, owner_id)
        if not link.icon_path:
            raise NotFound("图标不存在")
        content = await self.store.read(link.icon_path)
        return content, link.icon_mime_type or "application/octet-stream"

    async def discard_file(self, filename: str) -> None:
        """尽力删除图标文件，失败只记录警告"""
        try:
            await self.store.delete(filename)
        except (OSError, DashLinkError) as e:
            logger.warning(f"[Icon] 删除图标文件失败 {filename}: {e}")
