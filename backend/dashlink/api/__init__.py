"""API 路由"""
from fastapi import APIRouter
from .v1 import auth, users, links, admin_links, user_links, groups, settings

api_router = APIRouter()

# 注册路由
api_router.include_router(auth.router, prefix="/auth", tags=["认证"])
api_router.include_router(users.router, prefix="/users", tags=["用户"])
api_router.include_router(links.router, tags=["链接"])
api_router.include_router(admin_links.router, prefix="/admin/links", tags=["链接管理"])
api_router.include_router(groups.router, prefix="/admin", tags=["用户组"])
api_router.include_router(settings.router, prefix="/admin/settings", tags=["设置"])
api_router.include_router(user_links.router, prefix="/user/links", tags=["个人链接"])
