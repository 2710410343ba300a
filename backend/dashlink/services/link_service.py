"""全局链接服务（管理员维护）"""
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import DashLinkError
from ..models import Link
from ..schemas import ImportRecord, ImportResult, LinkCreate, LinkUpdate
from .link_store import LinkStore
from .validation import sanitize_text, validate_groups, validate_target, validate_url

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000

# (link_id, icon_url) -> 下载并保存图标
IconFetcher = Callable[[int, str], Awaitable[Any]]


def filter_visible(links: Iterable[Link], group_ids: Iterable[str]) -> list[Link]:
    """未设置用户组的链接对所有人可见，否则要求与用户所在组有交集

    在已查出的启用链接上做内存过滤，链接数量很大时应改为在查询中过滤。
    """
    user_groups = set(group_ids)
    return [link for link in links if not link.groups or user_groups.intersection(link.groups)]


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return sanitize_text(description, MAX_DESCRIPTION_LENGTH) or None


def build_link(
    *,
    title: str,
    url: str,
    description: Optional[str] = None,
    target: str = "_blank",
    groups: Sequence[str] = (),
    enabled: int = 1,
    owner_id: Optional[str] = None,
) -> Link:
    """校验并清洗字段，返回尚未持久化的 Link"""
    url = validate_url(url)
    target = validate_target(target or "_blank")
    groups = validate_groups(list(groups))

    link = Link(
        title=sanitize_text(title, MAX_TITLE_LENGTH),
        url=url,
        description=_clean_description(description),
        target=target,
        enabled=enabled,
        user_id=owner_id,
    )
    link.groups = groups
    return link


async def apply_update(store: LinkStore, link: Link, data: LinkUpdate, allow_groups: bool = True) -> Link:
    """只应用请求中出现的字段，全部校验通过后才修改实体"""
    changes = data.model_dump(exclude_unset=True)
    values = {}

    if changes.get("title") is not None:
        values["title"] = sanitize_text(changes["title"], MAX_TITLE_LENGTH)
    if changes.get("url") is not None:
        values["url"] = validate_url(changes["url"])
    if "description" in changes:
        values["description"] = _clean_description(changes["description"])
    if changes.get("target") is not None:
        values["target"] = validate_target(changes["target"])
    if allow_groups and changes.get("groups") is not None:
        values["groups"] = validate_groups(changes["groups"])
    if changes.get("enabled") is not None:
        values["enabled"] = changes["enabled"]

    for key, value in values.items():
        setattr(link, key, value)

    link = await store.update(link)
    if changes.get("position") is not None:
        await store.move(link, changes["position"])
    return link


def _error_message(exc: Exception) -> str:
    if isinstance(exc, DashLinkError):
        return exc.message
    if isinstance(exc, PydanticValidationError):
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        return f"{field}: {first.get('msg')}" if field else first.get("msg", "无效的记录")
    return str(exc)


async def import_records(
    store: LinkStore,
    records: Sequence[Any],
    *,
    owner_id: Optional[str] = None,
    icon_fetcher: Optional[IconFetcher] = None,
    available: Optional[int] = None,
) -> ImportResult:
    """批量导入，单条失败只记录错误，不中断整批

    - 标题（清洗后）或 URL 与已有链接完全相同则跳过
    - 新链接依次追加到分区末尾
    - 图标下载失败不回滚已创建的链接
    - available 不为空时，导入数量达到上限后剩余记录全部跳过
    """
    result = ImportResult()
    existing = await store.find_by_owner(owner_id) if owner_id else await store.find_all()
    seen_titles = {link.title for link in existing}
    seen_urls = {link.url for link in existing}
    allow_groups = owner_id is None

    for index, raw in enumerate(records):
        if available is not None and result.imported >= available:
            result.skipped += len(records) - index
            result.errors.append("链接数量已达上限，剩余链接已跳过")
            break

        label = raw.get("title", "") if isinstance(raw, dict) else ""
        try:
            record = ImportRecord.model_validate(raw)
            title = sanitize_text(record.title, MAX_TITLE_LENGTH)
            url = record.url.strip()
            if title in seen_titles or url in seen_urls:
                result.skipped += 1
                continue

            link = build_link(
                title=record.title,
                url=record.url,
                description=record.description,
                target=record.target,
                groups=record.groups if allow_groups else (),
                enabled=record.enabled,
                owner_id=owner_id,
            )
        except (DashLinkError, PydanticValidationError) as e:
            result.errors.append(f"导入链接 '{label}' 失败: {_error_message(e)}")
            continue

        try:
            link = await store.insert(link)
        except Exception:
            logger.exception(f"[Import] 保存链接 '{label}' 失败")
            result.errors.append(f"导入链接 '{label}' 失败: 保存链接时发生内部错误")
            continue
        seen_titles.add(link.title)
        seen_urls.add(link.url)
        result.imported += 1

        if record.icon_url and icon_fetcher is not None:
            try:
                await icon_fetcher(link.id, record.icon_url)
            except DashLinkError as e:
                logger.warning(f"[Import] 链接 {link.id} 图标下载失败: {e.message}")
                result.errors.append(f"链接 '{link.title}' 已创建，但图标下载失败: {e.message}")
            except Exception as e:
                logger.warning(f"[Import] 链接 {link.id} 图标保存失败: {e!r}")
                result.errors.append(f"链接 '{link.title}' 已创建，但图标保存失败")

    logger.info(
        f"[Import] owner={owner_id or 'global'} imported={result.imported} "
        f"skipped={result.skipped} errors={len(result.errors)}"
    )
    return result


class LinkService:
    """全局链接（user_id 为空）的业务逻辑"""

    def __init__(self, db: AsyncSession):
        self.store = LinkStore(db)

    async def list_all(self) -> list[Link]:
        return await self.store.find_all()

    async def get(self, link_id: int) -> Link:
        return await self.store.find_by_id_for_owner(link_id, None)

    async def list_visible_for(self, group_ids: Iterable[str]) -> list[Link]:
        """仪表盘和公开列表使用的可见链接"""
        return filter_visible(await self.store.find_enabled(), group_ids)

    async def create(self, data: LinkCreate) -> Link:
        link = build_link(
            title=data.title,
            url=data.url,
            description=data.description,
            target=data.target,
            groups=data.groups,
            enabled=data.enabled,
        )
        return await self.store.insert(link, data.position)

    async def update(self, link_id: int, data: LinkUpdate) -> Link:
        link = await self.get(link_id)
        return await apply_update(self.store, link, data)

    async def delete(self, link_id: int) -> None:
        """图标由调用方在此之前尽力删除"""
        await self.get(link_id)
        await self.store.delete_by_id(link_id)

    async def reorder(self, link_ids: Iterable[int]) -> list[Link]:
        return await self.store.reorder(link_ids, None)

    async def export(self) -> list[Link]:
        return await self.list_all()

    async def import_links(self, records: Sequence[Any], icon_fetcher: Optional[IconFetcher] = None) -> ImportResult:
        return await import_records(self.store, records, icon_fetcher=icon_fetcher)
