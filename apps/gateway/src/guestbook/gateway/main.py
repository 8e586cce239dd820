"""FastAPI 应用主文件

app 创建 + lifespan 管理：对象存储初始化/关闭 + 鉴权组件初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from guestbook.core.config import (
    get_db_path,
    get_default_author,
    get_default_page_size,
    get_store_backend,
)
from guestbook.core.message_store import MessageStore
from guestbook.core.store import create_object_store

from .auth import RoleAuthorizer
from .config import load_auth_config
from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, messages

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化存储与鉴权，关闭时释放连接"""
    backend = get_store_backend()
    objects = await create_object_store(backend, get_db_path())
    app.state.message_store = MessageStore(
        objects,
        default_page_size=get_default_page_size(),
    )
    app.state.default_author = get_default_author()

    auth_config = load_auth_config()
    app.state.auth_config = auth_config
    app.state.authorizer = RoleAuthorizer(
        auth_config.policy,
        default_role=auth_config.default_role,
    )
    log.info(
        "guestbook_started",
        store_backend=backend,
        verify_signature=auth_config.verify_signature,
        policy_rules=len(auth_config.policy),
    )

    yield

    # 关闭：释放对象存储连接
    if getattr(app.state, "message_store", None) is not None:
        await app.state.message_store.objects.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Guestbook Gateway",
        version="0.1.0",
        description="基于扁平对象存储的只追加留言板 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(messages.router, tags=["messages"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
