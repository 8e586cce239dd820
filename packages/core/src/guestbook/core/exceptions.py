"""消息存储异常体系

客户端错误（游标、分页参数）与存储错误（put/get/list 失败）分开，
网关层据此映射 HTTP 状态码。
"""


class MessageStoreError(Exception):
    """消息存储基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class InvalidCursorError(MessageStoreError):
    """分页游标格式错误（客户端错误，不视为"第一页"）"""

    def __init__(self, token: str, reason: str = "malformed cursor") -> None:
        super().__init__(f"无效的分页游标: {reason}", recoverable=False)
        self.token = token
        self.reason = reason


class MessageValidationError(MessageStoreError):
    """请求参数校验失败，例如非正整数的 page_size"""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, recoverable=False)
        self.field = field


class StoreWriteError(MessageStoreError):
    """对象存储写入失败

    消息 key 是确定性的，调用方可以安全重试。
    """

    def __init__(self, key: str, original_error: Exception | None = None) -> None:
        """
        Args:
            key: 写入失败的对象 key
            original_error: 底层存储抛出的原始异常
        """
        detail = f" -- {original_error}" if original_error else ""
        super().__init__(f"对象写入失败: {key}{detail}", recoverable=True)
        self.key = key
        self.original_error = original_error


class StoreReadError(MessageStoreError):
    """对象存储读取或列举失败（包括 key 不存在）"""

    def __init__(self, key: str | None, original_error: Exception | None = None) -> None:
        target = key if key is not None else "<listing>"
        detail = f" -- {original_error}" if original_error else ""
        super().__init__(f"对象读取失败: {target}{detail}", recoverable=True)
        self.key = key
        self.original_error = original_error


class ObjectNotFoundError(StoreReadError):
    """对象 key 不存在"""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.recoverable = False
