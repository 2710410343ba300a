"""认证路由"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
import logging

from ...database import get_db
from ...models import User
from ...schemas import UserCreate, UserLogin, UserResponse, Token, RefreshTokenRequest
from ...utils.security import hash_password, verify_password, create_access_token, create_refresh_token, decode_token, REFRESH_TOKEN

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(user: User) -> Token:
    return Token(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id)
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """用户注册，第一个注册的用户自动成为管理员"""
    result = await db.execute(
        select(User).where(or_(User.email == user_in.email, User.username == user_in.username))
    )
    existing = result.scalars().first()
    if existing:
        detail = "该邮箱已被注册" if existing.email == user_in.email else "该用户名已被使用"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )

    user_count = (await db.execute(select(func.count(User.id)))).scalar_one()

    user = User(
        email=user_in.email,
        username=user_in.username,
        password_hash=hash_password(user_in.password),
        is_admin=user_count == 0,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info(f"[Auth] 新用户注册: {user.username} (admin={user.is_admin})")
    return user


@router.post("/login", response_model=Token)
async def login(user_in: UserLogin, db: AsyncSession = Depends(get_db)):
    """邮箱 + 密码登录"""
    result = await db.execute(select(User).where(User.email == user_in.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(user_in.password, user.password_hash):
        logger.warning(f"[Auth] 登录失败: {user_in.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="邮箱或密码错误"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="用户已被禁用"
        )

    return _issue_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(request: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """用刷新令牌换取新的令牌对"""
    user_id = decode_token(request.refresh_token, expected_type=REFRESH_TOKEN)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的刷新令牌"
        )

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户不存在或已被禁用"
        )

    return _issue_tokens(user)
