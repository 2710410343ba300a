"""路由依赖：认证、权限和服务实例"""
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..services.icon_service import IconService, IconStore
from ..services.link_service import LinkService
from ..services.rate_limit import RateLimiter, rate_limiter
from ..services.settings_service import SettingsService
from ..services.user_link_service import UserLinkService
from ..utils.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


# ==================== 认证 ====================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """从 Bearer Token 解析当前用户"""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="无效的认证凭据",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    user_id = decode_token(credentials.credentials)
    if user_id is None:
        raise unauthorized

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise unauthorized
    return user


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """要求管理员权限"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="需要管理员权限"
        )
    return current_user


# ==================== 服务 ====================

def get_rate_limiter() -> RateLimiter:
    return rate_limiter


@lru_cache()
def get_icon_store() -> IconStore:
    return IconStore()


def get_icon_transport() -> Optional[httpx.AsyncBaseTransport]:
    """图标下载使用的传输层，测试中覆盖为 MockTransport"""
    return None


def get_settings_service(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db)


def get_link_service(db: AsyncSession = Depends(get_db)) -> LinkService:
    return LinkService(db)


def get_icon_service(
    db: AsyncSession = Depends(get_db),
    store: IconStore = Depends(get_icon_store),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_icon_transport),
) -> IconService:
    return IconService(db, store, transport)


async def get_user_link_service(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> UserLinkService:
    """个人链接功能关闭时直接返回 403"""
    service = UserLinkService(db, current_user.id, settings_service)
    await service.ensure_enabled()
    return service
