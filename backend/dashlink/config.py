"""应用配置"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
from pathlib import Path
import os

# 确定项目根目录（支持本地开发和 Docker 部署）
# 本地开发: backend/dashlink/config.py -> 项目根目录是 ../../
# Docker: /app/dashlink/config.py -> 数据目录是 /app/data
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent  # backend 目录
_project_root = _backend_dir.parent  # 项目根目录

# 检测运行环境
if os.path.exists("/app/data"):
    # Docker 环境
    _data_dir = Path("/app/data")
    _env_file = Path("/app/.env") if Path("/app/.env").exists() else None
else:
    # 本地开发环境
    _data_dir = _project_root / "data"
    _env_file = _project_root / ".env" if (_project_root / ".env").exists() else None


class Settings(BaseSettings):
    """应用设置"""
    # 应用
    APP_NAME: str = "DashLink"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库（默认使用项目根目录的 data 文件夹）
    DATABASE_URL: str = f"sqlite+aiosqlite:///{_data_dir}/dashlink.db"

    # JWT
    JWT_SECRET_KEY: str = "change-this-secret-key-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 小时
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # 缓存（限流计数器）
    CACHE_MAX_SIZE: int = 10000

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:5173",
        "https://localhost",
    ]

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # 为空时只输出到控制台

    # 图标
    ICON_STORAGE_DIR: str = str(_data_dir / "icons")
    ICON_MAX_SIZE: int = 2 * 1024 * 1024  # 2MB
    ICON_FETCH_TIMEOUT: float = 10.0
    ICON_FETCH_MAX_REDIRECTS: int = 3
    ICON_CACHE_SECONDS: int = 86400  # 1 天

    # 导入
    IMPORT_MAX_BYTES: int = 1024 * 1024  # 1MB
    IMPORT_MAX_LINKS: int = 100
    USER_IMPORT_MAX_LINKS: int = 50
    IMPORT_MAX_DEPTH: int = 10

    # 限流（次数 / 窗口秒数）
    RATE_LIMIT_IMPORT: int = 5
    RATE_LIMIT_USER_IMPORT: int = 3
    RATE_LIMIT_USER_CREATE: int = 20
    RATE_LIMIT_WINDOW: int = 3600

    # 仪表盘小部件
    WIDGET_MAX_LINKS: int = 10

    class Config:
        env_file = str(_env_file) if _env_file else ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
