"""个人链接服务"""
import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import FeatureDisabled, QuotaExceeded
from ..models import Link
from ..schemas import ImportResult, LinkUpdate, UserLinkCreate
from .link_service import IconFetcher, apply_update, build_link, import_records
from .link_store import LinkStore
from .settings_service import SettingsService

logger = logging.getLogger(__name__)


class UserLinkService:
    """某个用户的个人链接，受功能开关和数量上限约束"""

    def __init__(self, db: AsyncSession, user_id: str, settings_service: Optional[SettingsService] = None):
        self.user_id = user_id
        self.store = LinkStore(db)
        self.settings = settings_service or SettingsService(db)

    async def is_feature_enabled(self) -> bool:
        return await self.settings.is_user_links_enabled()

    async def ensure_enabled(self) -> None:
        if not await self.is_feature_enabled():
            raise FeatureDisabled()

    async def get_link_limit(self) -> int:
        return await self.settings.get_user_link_limit()

    async def count(self) -> int:
        return await self.store.count_by_owner(self.user_id)

    async def list(self) -> List[Link]:
        return await self.store.find_by_owner(self.user_id)

    async def list_enabled(self) -> List[Link]:
        return await self.store.find_enabled_by_owner(self.user_id)

    async def get(self, link_id: int) -> Link:
        """不属于当前用户的链接一律视为不存在"""
        return await self.store.find_by_id_for_owner(link_id, self.user_id)

    async def create(self, data: UserLinkCreate) -> Link:
        limit = await self.get_link_limit()
        if await self.count() >= limit:
            raise QuotaExceeded(f"链接数量已达上限（{limit}）")

        link = build_link(
            title=data.title,
            url=data.url,
            description=data.description,
            target=data.target,
            enabled=data.enabled,
            owner_id=self.user_id,
        )
        link = await self.store.insert(link)
        logger.info(f"[UserLinks] user={self.user_id} 创建链接 {link.id}")
        return link

    async def update(self, link_id: int, data: LinkUpdate) -> Link:
        link = await self.get(link_id)
        return await apply_update(self.store, link, data, allow_groups=False)

    async def delete(self, link_id: int) -> None:
        await self.get(link_id)
        await self.store.delete_by_id(link_id)

    async def reorder(self, link_ids: Iterable[int]) -> List[Link]:
        return await self.store.reorder(link_ids, self.user_id)

    async def export(self) -> List[Link]:
        return await self.list()

    async def import_links(self, records: Sequence[Any], icon_fetcher: Optional[IconFetcher] = None) -> ImportResult:
        """只导入剩余配额内的数量"""
        available = await self.get_link_limit() - await self.count()
        if available <= 0:
            return ImportResult(
                imported=0,
                skipped=len(records),
                errors=["链接数量已达上限，无法导入"],
            )
        return await import_records(
            self.store,
            records,
            owner_id=self.user_id,
            icon_fetcher=icon_fetcher,
            available=available,
        )
