"""Key Codec -- 消息 key 派生与分页游标编解码

纯函数，无 I/O、无状态。

Store key 格式: ``<encodedInverseTimestamp>/<contentId>``

- encodedInverseTimestamp: 固定宽度时间串做九补码（每位数字 d -> 9-d），
  字典序升序即时间倒序（最新在前）。
- contentId: 两级 UUIDv5，先由 author 派生命名空间，再在该命名空间内
  由 content 派生 ID。同一 author + content 永远得到同一个 ID。
"""

import base64
import binascii
import re
import uuid
from datetime import UTC, datetime

from .exceptions import InvalidCursorError

# 九补码映射表：仅替换数字，分隔符原样保留
_NINES_COMPLEMENT = str.maketrans("0123456789", "9876543210")

# 游标负载前缀，用于区分合法游标与任意 base64 串
_CURSOR_PREFIX = b"gb1:"

# 游标只使用 URL 安全 base64 字母表且不带填充
_CURSOR_ALPHABET = re.compile(r"[A-Za-z0-9_-]+")


def author_namespace(author: str) -> uuid.UUID:
    """第一级：由 author 在 URL 命名空间下派生 UUIDv5 命名空间"""
    return uuid.uuid5(uuid.NAMESPACE_URL, author)


def derive_content_id(author: str, content: str) -> str:
    """第二级：在 author 命名空间内由 content 派生 UUIDv5

    不同 author 的相同内容得到不同 ID；同一 author 的相同内容总是同一 ID。
    空字符串同样合法。
    """
    return str(uuid.uuid5(author_namespace(author), content))


def normalize_timestamp(ts: datetime) -> datetime:
    """统一为 UTC 并截断到毫秒（naive datetime 视为 UTC）"""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    else:
        ts = ts.astimezone(UTC)
    return ts.replace(microsecond=(ts.microsecond // 1000) * 1000)


def format_timestamp(ts: datetime) -> str:
    """固定宽度 ISO-8601 表示: ``YYYY-MM-DDTHH:MM:SS.mmmZ``

    不使用 strftime，部分平台上 %Y 不会为 1000 年之前的年份补零。
    """
    ts = normalize_timestamp(ts)
    return (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
        f"T{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}"
        f".{ts.microsecond // 1000:03d}Z"
    )


def encode_inverse_timestamp(ts: datetime) -> str:
    """时间戳 -> 九补码串，t1 < t2 时 encode(t1) > encode(t2)

    变换是自逆的：对结果再做一次即还原 format_timestamp(ts)。
    """
    return invert_digits(format_timestamp(ts))


def invert_digits(text: str) -> str:
    """逐位数字九补码"""
    return text.translate(_NINES_COMPLEMENT)


def build_key(ts: datetime, author: str, content: str) -> str:
    """构造消息 store key"""
    return f"{encode_inverse_timestamp(ts)}/{derive_content_id(author, content)}"


def encode_cursor(marker: str) -> str:
    """存储原生续传标记 -> 客户端不透明游标（URL 安全 base64，去掉填充）"""
    raw = _CURSOR_PREFIX + marker.encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_cursor(token: str) -> str:
    """客户端游标 -> 存储原生续传标记

    Raises:
        InvalidCursorError: token 不是由 encode_cursor 产生的合法游标
    """
    if not token or len(token) % 4 == 1:
        raise InvalidCursorError(token, "bad length")
    if not _CURSOR_ALPHABET.fullmatch(token):
        raise InvalidCursorError(token, "not url-safe base64")

    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise InvalidCursorError(token, "not base64") from e

    if not raw.startswith(_CURSOR_PREFIX):
        raise InvalidCursorError(token, "unknown cursor format")

    try:
        return raw[len(_CURSOR_PREFIX):].decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidCursorError(token, "not utf-8") from e
