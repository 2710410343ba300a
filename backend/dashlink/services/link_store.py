"""链接存储（数据访问层）

所有查询都按 owner 分区：owner_id 为 None 表示全局链接，否则为某个用户的私有链接。
每个分区内 position 保持 0..N-1 连续，插入、移动、删除和排序后都会重新编号。
"""
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFound
from ..models import Link


class LinkStore:
    """links 表的分区化 CRUD"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _owner_clause(owner_id: Optional[str]):
        if owner_id is None:
            return Link.user_id.is_(None)
        return Link.user_id == owner_id

    async def _find(self, owner_id: Optional[str], enabled_only: bool = False) -> list[Link]:
        query = select(Link).where(self._owner_clause(owner_id))
        if enabled_only:
            query = query.where(Link.enabled == 1)
        query = query.order_by(Link.position, Link.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== 查询 ====================

    async def find_all(self) -> list[Link]:
        """全部全局链接"""
        return await self._find(None)

    async def find_enabled(self) -> list[Link]:
        return await self._find(None, enabled_only=True)

    async def find_by_owner(self, owner_id: str) -> list[Link]:
        return await self._find(owner_id)

    async def find_enabled_by_owner(self, owner_id: str) -> list[Link]:
        return await self._find(owner_id, enabled_only=True)

    async def find_by_id(self, link_id: int) -> Link:
        link = await self.db.get(Link, link_id)
        if link is None:
            raise NotFound()
        return link

    async def find_by_id_for_owner(self, link_id: int, owner_id: Optional[str]) -> Link:
        """只在指定分区内查找，其他分区的链接同样视为不存在"""
        link = await self.find_by_id(link_id)
        if link.user_id != owner_id:
            raise NotFound()
        return link

    async def count_by_owner(self, owner_id: Optional[str]) -> int:
        result = await self.db.execute(
            select(func.count(Link.id)).where(self._owner_clause(owner_id))
        )
        return result.scalar_one()

    # ==================== 写入 ====================

    async def _apply_order(self, links: Sequence[Link], touched: Iterable[int] = ()) -> None:
        """重新编号；位置变化或在 touched 中的链接更新 updated_at"""
        now = datetime.utcnow()
        touched = set(touched)
        for index, link in enumerate(links):
            if link.position != index or link.id in touched:
                link.position = index
                link.updated_at = now
        await self.db.flush()

    async def insert(self, link: Link, position: Optional[int] = None) -> Link:
        """插入到分区内第 position 位（越界时截断），为 None 时追加到末尾"""
        siblings = await self._find(link.user_id)
        index = len(siblings) if position is None else max(0, min(position, len(siblings)))

        now = datetime.utcnow()
        link.created_at = link.created_at or now
        link.updated_at = now
        link.position = index
        self.db.add(link)
        await self.db.flush()

        siblings.insert(index, link)
        await self._apply_order(siblings)
        await self.db.refresh(link)
        return link

    async def update(self, link: Link) -> Link:
        link.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(link)
        return link

    async def move(self, link: Link, position: int) -> Link:
        """把链接移动到分区内第 position 位"""
        siblings = [item for item in await self._find(link.user_id) if item.id != link.id]
        index = max(0, min(position, len(siblings)))
        siblings.insert(index, link)
        await self._apply_order(siblings)
        return link

    async def delete_by_id(self, link_id: int) -> None:
        link = await self.find_by_id(link_id)
        owner_id = link.user_id
        await self.db.delete(link)
        await self.db.flush()
        await self._apply_order(await self._find(owner_id))

    async def delete_all_by_owner(self, owner_id: str) -> int:
        result = await self.db.execute(
            delete(Link).where(Link.user_id == owner_id)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def reorder(self, link_ids: Iterable[int], owner_id: Optional[str] = None) -> list[Link]:
        """按给定顺序重新编号

        不属于该分区的 ID 被忽略；未列出的链接保持原有相对顺序排在后面。
        列出的链接即使位置不变也会更新 updated_at。
        """
        current = await self._find(owner_id)
        by_id = {link.id: link for link in current}

        ordered: list[Link] = []
        for link_id in link_ids:
            link = by_id.pop(link_id, None)
            if link is not None:
                ordered.append(link)
        listed = len(ordered)
        ordered.extend(link for link in current if link.id in by_id)

        await self._apply_order(ordered, touched=[link.id for link in ordered[:listed]])
        return ordered
