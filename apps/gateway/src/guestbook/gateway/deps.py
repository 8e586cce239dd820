"""依赖注入模块 -- 通过 FastAPI Depends 注入核心组件

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from guestbook.core.message_store import MessageStore


def get_message_store(request: Request) -> MessageStore:
    """从 app.state 获取 MessageStore 实例"""
    return request.app.state.message_store


def get_default_author(request: Request) -> str:
    """当前唯一的匿名作者身份"""
    return request.app.state.default_author
