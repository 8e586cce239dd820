"""MessageStore -- 留言写入与倒序分页

对象存储内两个前缀：
- messages/<storeKey>      留言记录，列举该前缀即得到最新在前的顺序
- content-ids/<contentId>  内容身份记录，指向首次写入时的 storeKey

写入流程：
1. 由 author + content 派生 contentId，查身份记录
2. 不存在则取当前时间构造 storeKey，先写身份记录
3. 写留言记录（同 key 覆盖，重复写入幂等）
4. 回读身份记录；并发写入改写了身份记录时，以身份记录指向的 key 为准

列举时丢弃身份记录指向别处的 key（并发竞争留下的副本），
同一 author + content 在列表中最多出现一次。
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from .codec import (
    build_key,
    decode_cursor,
    derive_content_id,
    encode_cursor,
    normalize_timestamp,
)
from .exceptions import MessageValidationError, ObjectNotFoundError, StoreReadError
from .models.message import ContentIdentity, Message, MessagePage
from .store.protocols import ObjectStore

log = structlog.get_logger()

MESSAGE_PREFIX = "messages/"
IDENTITY_PREFIX = "content-ids/"

DEFAULT_PAGE_SIZE = 20


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MessageStore:
    """留言存储核心

    本身不持有可变共享状态，所有持久状态都在 ObjectStore 中。
    """

    def __init__(
        self,
        objects: ObjectStore,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            objects: 底层对象存储
            default_page_size: 未指定 page_size 时的分页大小
            clock: 写入时间来源，默认 UTC 当前时间
        """
        self._objects = objects
        self._default_page_size = default_page_size
        self._clock = clock or _utc_now

    @property
    def objects(self) -> ObjectStore:
        return self._objects

    async def write_message(self, content: str, author: str) -> Message:
        """写入留言，返回带 created_at 的已存储留言

        同一 author + content 的重复写入复用首次写入的 key 和 created_at。

        Raises:
            StoreWriteError: put 失败，可安全重试
            StoreReadError: 读取身份记录失败
        """
        content_id = derive_content_id(author, content)
        identity = await self._load_identity(content_id)
        rewrite = identity is not None

        if identity is None:
            created_at = normalize_timestamp(self._clock())
            identity = ContentIdentity(
                key=build_key(created_at, author, content),
                created_at=created_at,
            )
            # 身份记录先于留言落盘，留言写入失败后重试仍命中同一 key
            await self._objects.put(
                IDENTITY_PREFIX + content_id,
                identity.model_dump_json().encode("utf-8"),
            )

        message = await self._put_message(identity, content, author)

        if not rewrite:
            # 并发的相同写入可能已改写身份记录，最后写入者胜出
            current = await self._load_identity(content_id)
            if current is not None and current.key != identity.key:
                log.info(
                    "message_write_raced",
                    key=identity.key,
                    winner=current.key,
                )
                identity = current
                message = await self._put_message(identity, content, author)

        log.info("message_written", key=identity.key, rewrite=rewrite)
        return message

    async def list_messages(
        self,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> MessagePage:
        """分页列举留言，最新在前

        Args:
            page_size: 正整数；None 时使用默认值
            cursor: 上一页返回的 next_cursor；None 表示第一页

        Raises:
            MessageValidationError: page_size 非正整数
            InvalidCursorError: cursor 格式错误（不会当作第一页处理）
            StoreReadError: 列举或任一对象读取失败，整页失败
        """
        size = self._resolve_page_size(page_size)
        start_after = decode_cursor(cursor) if cursor is not None else None

        page = await self._objects.list_keys(
            size,
            start_after=start_after,
            prefix=MESSAGE_PREFIX,
        )

        results = await asyncio.gather(
            *(self._fetch_current_message(key) for key in page.keys),
            return_exceptions=True,
        )
        # 不允许部分成功：任一失败即整页失败
        for result in results:
            if isinstance(result, BaseException):
                raise result
        items = [result for result in results if result is not None]

        # 续传标记取自底层列举，丢弃副本不影响下一页的起点
        next_cursor = (
            encode_cursor(page.next_marker) if page.next_marker is not None else None
        )
        log.info(
            "messages_listed",
            page_size=size,
            count=len(items),
            superseded=len(results) - len(items),
            has_more=next_cursor is not None,
        )
        return MessagePage(items=items, next_cursor=next_cursor)

    def _resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self._default_page_size
        if isinstance(page_size, bool) or not isinstance(page_size, int):
            raise MessageValidationError("page_size", "page_size 必须是正整数")
        if page_size <= 0:
            raise MessageValidationError("page_size", "page_size 必须是正整数")
        return page_size

    async def _load_identity(self, content_id: str) -> ContentIdentity | None:
        key = IDENTITY_PREFIX + content_id
        try:
            raw = await self._objects.get(key)
        except ObjectNotFoundError:
            return None
        try:
            return ContentIdentity.model_validate_json(raw)
        except ValidationError as e:
            raise StoreReadError(key, e) from e

    async def _put_message(
        self, identity: ContentIdentity, content: str, author: str
    ) -> Message:
        message = Message(
            content=content,
            author=author,
            created_at=identity.created_at,
        )
        await self._objects.put(
            MESSAGE_PREFIX + identity.key,
            message.model_dump_json().encode("utf-8"),
        )
        return message

    async def _fetch_current_message(self, key: str) -> Message | None:
        """读取留言；身份记录指向其他 key 时返回 None

        没有身份记录的留言照常返回。
        """
        store_key = key.removeprefix(MESSAGE_PREFIX)
        content_id = store_key.rpartition("/")[2]
        identity = await self._load_identity(content_id)
        if identity is not None and identity.key != store_key:
            return None
        return await self._fetch_message(key)

    async def _fetch_message(self, key: str) -> Message:
        raw = await self._objects.get(key)
        try:
            return Message.model_validate_json(raw)
        except ValidationError as e:
            raise StoreReadError(key, e) from e
