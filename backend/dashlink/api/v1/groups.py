"""用户组路由（管理员）"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ...database import get_db
from ...models import Group, User
from ...schemas import GroupCreate, GroupResponse, UserGroupsUpdate, UserResponse
from ...services.validation import sanitize_text, validate_groups
from ..deps import get_current_admin

router = APIRouter()


@router.get("/groups", response_model=List[GroupResponse])
async def list_groups(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """获取全部用户组（用于链接可见性设置）"""
    result = await db.execute(select(Group).order_by(Group.id))
    return result.scalars().all()


@router.post("/groups", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_in: GroupCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """创建用户组"""
    if await db.get(Group, group_in.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="该用户组已存在"
        )

    group = Group(id=group_in.id, display_name=sanitize_text(group_in.display_name or group_in.id))
    db.add(group)
    await db.flush()
    await db.refresh(group)
    return group


@router.put("/users/{user_id}/groups", response_model=UserResponse)
async def set_user_groups(
    user_id: str,
    groups_in: UserGroupsUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """设置用户所属的用户组（整体替换）"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="用户不存在"
        )

    group_ids = validate_groups(groups_in.group_ids)
    groups = []
    if group_ids:
        result = await db.execute(select(Group).where(Group.id.in_(group_ids)))
        groups = list(result.scalars().all())
        missing = set(group_ids) - {group.id for group in groups}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"用户组不存在: {', '.join(sorted(missing))}"
            )

    user.groups = groups
    await db.flush()
    await db.refresh(user)
    return user
