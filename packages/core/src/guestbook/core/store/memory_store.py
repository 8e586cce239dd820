"""ObjectStore 内存实现

适用于测试与本地开发；进程退出后数据丢失。
"""

import bisect

from ..config import MAX_LIST_KEYS
from ..exceptions import ObjectNotFoundError
from ..models.message import KeyPage


class InMemoryObjectStore:
    """ObjectStore 的内存实现，维护一个有序 key 列表"""

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._sorted_keys: list[str] = []

    async def put(self, key: str, value: bytes) -> None:
        if key not in self._objects:
            bisect.insort(self._sorted_keys, key)
        self._objects[key] = bytes(value)

    async def get(self, key: str) -> bytes:
        try:
            return self._objects[key]
        except KeyError:
            raise ObjectNotFoundError(key) from None

    async def list_keys(
        self,
        max_keys: int,
        start_after: str | None = None,
        prefix: str = "",
    ) -> KeyPage:
        """按字典序列举，next_marker 为本页最后一个 key"""
        limit = max(0, min(max_keys, MAX_LIST_KEYS))
        lower = max(start_after or "", prefix) if prefix else (start_after or "")
        if start_after is not None and lower == start_after:
            start = bisect.bisect_right(self._sorted_keys, lower)
        else:
            start = bisect.bisect_left(self._sorted_keys, lower)

        keys: list[str] = []
        has_more = False
        for key in self._sorted_keys[start:]:
            if not key.startswith(prefix):
                break
            if len(keys) >= limit:
                has_more = True
                break
            keys.append(key)

        next_marker = keys[-1] if has_more and keys else None
        return KeyPage(keys=keys, next_marker=next_marker)

    async def close(self) -> None:
        """内存实现无需释放资源"""

    def __len__(self) -> int:
        return len(self._objects)
