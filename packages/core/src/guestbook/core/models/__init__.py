"""Guestbook Core Domain Models -- 公共类型导出"""

from .message import ContentIdentity, KeyPage, Message, MessagePage

__all__ = [
    "Message",
    "MessagePage",
    "ContentIdentity",
    "KeyPage",
]
