"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + JWT fixture"""

import os
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from guestbook.core.message_store import MessageStore
from guestbook.core.store import InMemoryObjectStore
from httpx import ASGITransport, AsyncClient
from jose import jwt

TEST_SECRET = "test-signing-secret"


@pytest_asyncio.fixture
async def objects() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest_asyncio.fixture
async def test_app(objects, step_clock):
    """创建测试用 FastAPI app，手动初始化 lifespan 状态"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from guestbook.gateway.auth import RoleAuthorizer
    from guestbook.gateway.config import AuthConfig
    from guestbook.gateway.main import create_app

    app = create_app()

    auth_config = AuthConfig()
    app.state.message_store = MessageStore(objects, clock=step_clock)
    app.state.default_author = "anonymous"
    app.state.auth_config = auth_config
    app.state.authorizer = RoleAuthorizer(auth_config.policy, auth_config.default_role)

    yield app

    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def signing_secret() -> str:
    """测试 JWT 签名密钥"""
    return TEST_SECRET


@pytest.fixture
def make_token() -> Callable[..., str]:
    """签发测试 JWT"""

    def _make(sub: str | None = "user-1", secret: str = TEST_SECRET, **claims) -> str:
        payload = dict(claims)
        if sub is not None:
            payload["sub"] = sub
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token) -> dict[str, str]:
    """默认用户的 Authorization 头"""
    return {"Authorization": f"Bearer {make_token()}"}
