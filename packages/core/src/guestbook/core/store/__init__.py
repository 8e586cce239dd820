"""Guestbook Core Store -- 对象存储实现

提供工厂函数按配置创建 ObjectStore 实例。
"""

from pathlib import Path

import aiosqlite

from .memory_store import InMemoryObjectStore
from .protocols import ObjectStore
from .sqlite_init import init_db
from .sqlite_store import SqliteObjectStore


async def create_sqlite_store(db_path: str) -> SqliteObjectStore:
    """创建 SQLite 对象存储（自动建目录、建表）

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        SqliteObjectStore 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)
    return SqliteObjectStore(conn)


async def create_object_store(backend: str, db_path: str) -> ObjectStore:
    """按后端名称创建对象存储

    Args:
        backend: "sqlite" 或 "memory"
        db_path: SQLite 数据库文件路径（memory 后端忽略）
    """
    if backend == "memory":
        return InMemoryObjectStore()
    if backend == "sqlite":
        return await create_sqlite_store(db_path)
    raise ValueError(f"未知的存储后端: {backend}")


__all__ = [
    "ObjectStore",
    "InMemoryObjectStore",
    "SqliteObjectStore",
    "create_object_store",
    "create_sqlite_store",
    "init_db",
]
