"""Store Protocol 接口定义

对象存储只提供 put / get / 按字典序列举 key 三种操作，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.message import KeyPage


class ObjectStore(Protocol):
    """扁平 key-value 对象存储接口

    - 同一 key 写后读强一致
    - 列举可以是最终一致的
    - 失败时抛出 StoreWriteError / StoreReadError
    """

    async def put(self, key: str, value: bytes) -> None:
        """写入对象（覆盖同 key 的旧值）"""
        ...

    async def get(self, key: str) -> bytes:
        """读取对象，key 不存在时抛出 ObjectNotFoundError（StoreReadError 子类）"""
        ...

    async def list_keys(
        self,
        max_keys: int,
        start_after: str | None = None,
        prefix: str = "",
    ) -> KeyPage:
        """按字典序升序列举 key

        Args:
            max_keys: 本次最多返回的 key 数（存储可自行封顶）
            start_after: 上一次返回的 next_marker
            prefix: 仅列举以此为前缀的 key
        """
        ...

    async def close(self) -> None:
        """释放底层连接"""
        ...
