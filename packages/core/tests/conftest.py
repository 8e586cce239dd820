"""packages/core 测试配置 -- 对象存储与 MessageStore fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from guestbook.core.message_store import MessageStore
from guestbook.core.store import InMemoryObjectStore, SqliteObjectStore, create_sqlite_store


@pytest_asyncio.fixture
async def memory_objects() -> InMemoryObjectStore:
    """空的内存对象存储"""
    return InMemoryObjectStore()


@pytest_asyncio.fixture
async def sqlite_objects(tmp_db_path: Path) -> AsyncGenerator[SqliteObjectStore, None]:
    """已初始化的临时 SQLite 对象存储"""
    store = await create_sqlite_store(str(tmp_db_path))
    yield store
    await store.close()


@pytest_asyncio.fixture
async def message_store(memory_objects, step_clock) -> MessageStore:
    """内存后端 + 步进时钟的 MessageStore"""
    return MessageStore(memory_objects, clock=step_clock)
