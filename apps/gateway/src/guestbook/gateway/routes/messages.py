"""留言路由

POST /api/messages: 请求体为纯文本留言内容，以匿名作者写入。
GET  /api/messages: 最新在前分页列举，page_size + cursor。
"""

import structlog
from fastapi import APIRouter, Depends, Query, Request
from guestbook.core.message_store import MessageStore
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..auth import RequestContext, authorize
from ..deps import get_default_author, get_message_store
from ..errors import ApiError

log = structlog.get_logger()

router = APIRouter()


class MessageItem(BaseModel):
    """留言（响应项）"""

    content: str
    author: str
    created_at: str


class MessageListResponse(BaseModel):
    """留言分页响应"""

    items: list[MessageItem]
    next_cursor: str | None = None


@router.post("/api/messages", status_code=201, response_model=MessageItem)
async def create_message(
    request: Request,
    context: RequestContext = Depends(authorize),
    store: MessageStore = Depends(get_message_store),
    author: str = Depends(get_default_author),
):
    """写入留言，重复的相同内容落在同一 key 上（幂等）"""
    body = await request.body()
    try:
        content = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ApiError(400, "VALIDATION_ERROR", "Message body must be UTF-8 text") from e

    message = await store.write_message(content, author)
    await log.ainfo(
        "message_accepted",
        subject=context.subject,
        roles=context.roles,
        obj=context.obj,
    )
    return JSONResponse(status_code=201, content=message.model_dump(mode="json"))


@router.get("/api/messages", response_model=MessageListResponse)
async def list_messages(
    page_size: int | None = Query(default=None, description="每页条数，默认 20"),
    cursor: str | None = Query(default=None, description="上一页返回的 next_cursor"),
    context: RequestContext = Depends(authorize),
    store: MessageStore = Depends(get_message_store),
):
    """列举留言，最新在前；next_cursor 为 null 表示没有更多"""
    page = await store.list_messages(page_size=page_size, cursor=cursor)
    await log.ainfo(
        "message_page_served",
        subject=context.subject,
        roles=context.roles,
        count=len(page.items),
    )
    return JSONResponse(status_code=200, content=page.model_dump(mode="json"))
