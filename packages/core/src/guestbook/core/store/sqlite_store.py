"""ObjectStore SQLite 实现

单表 objects(key, value, updated_at)。每次 put 独立提交，
写入成功后同 key 读取立即可见。
"""

from datetime import UTC, datetime

import aiosqlite

from ..config import MAX_LIST_KEYS
from ..exceptions import ObjectNotFoundError, StoreReadError, StoreWriteError
from ..models.message import KeyPage


class SqliteObjectStore:
    """ObjectStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    @property
    def conn(self) -> aiosqlite.Connection:
        return self._conn

    async def put(self, key: str, value: bytes) -> None:
        """写入对象，同 key 覆盖"""
        try:
            await self._conn.execute(
                """
                INSERT INTO objects (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, bytes(value), datetime.now(UTC).isoformat()),
            )
            await self._conn.commit()
        except (aiosqlite.Error, ValueError) as e:
            raise StoreWriteError(key, e) from e

    async def get(self, key: str) -> bytes:
        """读取对象，不存在时抛出 ObjectNotFoundError"""
        try:
            cursor = await self._conn.execute(
                "SELECT value FROM objects WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, ValueError) as e:
            raise StoreReadError(key, e) from e
        if row is None:
            raise ObjectNotFoundError(key)
        return bytes(row[0])

    async def list_keys(
        self,
        max_keys: int,
        start_after: str | None = None,
        prefix: str = "",
    ) -> KeyPage:
        """按字典序列举，多取一条判断是否还有下一页"""
        limit = max(0, min(max_keys, MAX_LIST_KEYS))
        try:
            cursor = await self._conn.execute(
                """
                SELECT key FROM objects
                WHERE key > ? AND substr(key, 1, length(?)) = ?
                ORDER BY key ASC
                LIMIT ?
                """,
                (start_after or "", prefix, prefix, limit + 1),
            )
            rows = await cursor.fetchall()
        except (aiosqlite.Error, ValueError) as e:
            raise StoreReadError(None, e) from e

        keys = [row[0] for row in rows[:limit]]
        has_more = len(rows) > limit
        next_marker = keys[-1] if has_more and keys else None
        return KeyPage(keys=keys, next_marker=next_marker)

    async def close(self) -> None:
        await self._conn.close()
