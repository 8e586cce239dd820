"""集成测试共享 fixture -- SQLite 后端的完整 app"""

import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt


def _attach_state(app, objects, clock=None) -> None:
    """手动初始化 lifespan 状态（绕过 lifespan）"""
    from guestbook.core.message_store import MessageStore
    from guestbook.gateway.auth import RoleAuthorizer
    from guestbook.gateway.config import load_auth_config

    auth_config = load_auth_config()
    app.state.message_store = MessageStore(objects, clock=clock)
    app.state.default_author = "anonymous"
    app.state.auth_config = auth_config
    app.state.authorizer = RoleAuthorizer(auth_config.policy, auth_config.default_role)


@pytest.fixture
def attach_state() -> Callable[..., None]:
    return _attach_state


@pytest.fixture
def bearer() -> Callable[[str], dict[str, str]]:
    def _headers(sub: str = "integration-user") -> dict[str, str]:
        token = jwt.encode({"sub": sub}, "integration-secret", algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, step_clock):
    """集成测试用 FastAPI app（SQLite 对象存储）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from guestbook.core.store import create_sqlite_store
    from guestbook.gateway.main import create_app

    app = create_app()
    objects = await create_sqlite_store(str(tmp_path / "integration.db"))
    _attach_state(app, objects, clock=step_clock)

    yield app

    await objects.close()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
