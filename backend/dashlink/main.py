"""FastAPI 应用入口"""
import logging
import logging.config

from .config import settings


def _logging_config() -> dict:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    }
    # 设置了 LOG_FILE 时同时写入文件
    if settings.LOG_FILE:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "filename": settings.LOG_FILE,
            "mode": "a",
            "encoding": "utf-8"
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s %(levelname)s:%(name)s:%(message)s"}
        },
        "handlers": handlers,
        "root": {
            "level": settings.LOG_LEVEL,
            "handlers": list(handlers)
        },
        "loggers": {
            "dashlink": {"level": settings.LOG_LEVEL},
            "httpx": {"level": "WARNING"},
        }
    }


logging.config.dictConfig(_logging_config())

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database import init_db
from .exceptions import DashLinkError, InternalError
from .api import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    await init_db()
    logger.info(f"[App] {settings.APP_NAME} v{settings.APP_VERSION} 启动成功")
    yield
    logger.info("[App] 应用关闭完成")


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="仪表盘链接管理 API",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== 异常处理 ====================

@app.exception_handler(DashLinkError)
async def dashlink_error_handler(request: Request, exc: DashLinkError):
    """业务异常统一转换为 {"detail": message}"""
    if isinstance(exc, InternalError):
        logger.error(f"[App] 内部错误 {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": InternalError.default_message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """未预期的异常只记录日志，不向客户端暴露细节"""
    logger.exception(f"[App] 未处理的异常 {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": InternalError.default_message})


# 注册路由
app.include_router(api_router, prefix="/api/v1")


# 健康检查
@app.get("/health", tags=["系统"], summary="健康检查")
async def health_check():
    """检查服务运行状态"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }
