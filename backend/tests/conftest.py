"""测试夹具：内存 SQLite、临时图标目录、独立的限流缓存"""
import io
import os
import tempfile

# 必须在导入 dashlink 之前设置
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="dashlink-test-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ICON_STORAGE_DIR"] = os.path.join(_TEST_DATA_DIR, "icons")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dashlink.api.deps import get_icon_store, get_rate_limiter
from dashlink.database import Base, get_db
from dashlink.main import app
from dashlink.services.icon_service import IconStore
from dashlink.services.rate_limit import RateLimiter
from dashlink.utils.cache import create_counter_cache

API = "/api/v1"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def icon_store(tmp_path):
    return IconStore(str(tmp_path / "icons"))


@pytest.fixture
def limiter():
    return RateLimiter(create_counter_cache(maxsize=1000))


@pytest_asyncio.fixture
async def client(session_factory, icon_store, limiter):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_icon_store] = lambda: icon_store
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register_and_login(client: AsyncClient, name: str) -> dict:
    """注册并登录，返回认证请求头"""
    email = f"{name}@dashlink.io"
    response = await client.post(f"{API}/auth/register", json={
        "email": email,
        "username": name,
        "password": "secret123",
    })
    assert response.status_code == 201, response.text

    response = await client.post(f"{API}/auth/login", json={"email": email, "password": "secret123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest_asyncio.fixture
async def admin_headers(client):
    # 第一个注册的用户是管理员
    return await register_and_login(client, "admin")


@pytest_asyncio.fixture
async def user_headers(client, admin_headers):
    return await register_and_login(client, "alice")


def make_png(size=(4, 4), color=(255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()
