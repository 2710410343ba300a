"""用户路由"""
from fastapi import APIRouter, Depends

from ...models import User
from ...schemas import UserResponse
from ..deps import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """获取当前用户信息（包括所属用户组）"""
    return current_user
