"""Message Domain Model -- 留言板持久化实体

对象体格式为 JSON，恰好三个字段：content / author / created_at。
created_at 序列化为固定宽度 ISO-8601（毫秒，UTC，Z 结尾）。
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..codec import format_timestamp, normalize_timestamp


class Message(BaseModel):
    """留言 -- created_at 由存储在写入时分配，不接受客户端指定"""

    content: str = Field(description="留言文本，不做校验")
    author: str = Field(description="作者标识，当前固定为匿名身份")
    created_at: datetime = Field(description="写入时间，毫秒精度 UTC")

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return normalize_timestamp(value)

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class MessagePage(BaseModel):
    """一页留言，按 created_at 倒序"""

    items: list[Message] = Field(default_factory=list, description="本页留言")
    next_cursor: str | None = Field(
        default=None,
        description="下一页游标；为 None 表示已到末尾",
    )


class ContentIdentity(BaseModel):
    """内容身份记录 -- contentId 首次写入时对应的 key 与时间

    重复写入同一 author + content 时据此复用原 key。
    """

    key: str = Field(description="消息 store key")
    created_at: datetime = Field(description="首次写入时间")

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return normalize_timestamp(value)

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class KeyPage(BaseModel):
    """对象存储一次列举的结果，keys 按字典序升序"""

    keys: list[str] = Field(default_factory=list, description="本次返回的 key")
    next_marker: str | None = Field(
        default=None,
        description="存储原生续传标记；仅在还有更多结果时存在",
    )
