"""MessageStore 测试

测试内容：
1. 写入：created_at 由存储分配、记录格式、幂等 key
2. 列举：最新在前、游标分页完整无重复、默认页大小
3. 错误：非法 page_size、格式错误游标、读写失败整体失败
"""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest
from guestbook.core.codec import build_key, derive_content_id
from guestbook.core.exceptions import (
    InvalidCursorError,
    MessageValidationError,
    StoreReadError,
    StoreWriteError,
)
from guestbook.core.message_store import IDENTITY_PREFIX, MESSAGE_PREFIX, MessageStore
from guestbook.core.store import InMemoryObjectStore

T0 = datetime(2026, 1, 1, tzinfo=UTC)


class FlakyPutStore(InMemoryObjectStore):
    """对指定前缀的前 N 次 put 抛出 StoreWriteError"""

    def __init__(self, failing_prefix: str, failures: int = 1) -> None:
        super().__init__()
        self.failing_prefix = failing_prefix
        self.failures = failures

    async def put(self, key: str, value: bytes) -> None:
        if key.startswith(self.failing_prefix) and self.failures > 0:
            self.failures -= 1
            raise StoreWriteError(key, ConnectionError("connection reset"))
        await super().put(key, value)


class FailingGetStore(InMemoryObjectStore):
    """读取指定 key 时失败"""

    def __init__(self) -> None:
        super().__init__()
        self.broken_keys: set[str] = set()

    async def get(self, key: str) -> bytes:
        if key in self.broken_keys:
            raise StoreReadError(key, TimeoutError("read timed out"))
        return await super().get(key)


class YieldingStore(InMemoryObjectStore):
    """每次读写前让出事件循环，模拟网络往返，使并发写入交错执行"""

    async def get(self, key: str) -> bytes:
        await asyncio.sleep(0)
        return await super().get(key)

    async def put(self, key: str, value: bytes) -> None:
        await asyncio.sleep(0)
        await super().put(key, value)


async def _message_keys(objects: InMemoryObjectStore) -> list[str]:
    page = await objects.list_keys(1000, prefix=MESSAGE_PREFIX)
    return page.keys


class TestWriteMessage:
    """write_message"""

    async def test_assigns_created_at_from_clock(self, message_store: MessageStore):
        message = await message_store.write_message("hello", "anon")
        assert message.content == "hello"
        assert message.author == "anon"
        assert message.created_at == T0

    async def test_persisted_record_has_exactly_three_fields(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        await message_store.write_message("hello", "anon")

        key = MESSAGE_PREFIX + build_key(T0, "anon", "hello")
        record = json.loads(await memory_objects.get(key))
        assert record == {
            "content": "hello",
            "author": "anon",
            "created_at": "2026-01-01T00:00:00.000Z",
        }

    async def test_identical_write_lands_on_same_key(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        first = await message_store.write_message("hello", "anon")
        second = await message_store.write_message("hello", "anon")

        keys = await _message_keys(memory_objects)
        assert keys == [MESSAGE_PREFIX + build_key(T0, "anon", "hello")]
        assert second.created_at == first.created_at

    async def test_identical_write_listed_once(self, message_store: MessageStore):
        for _ in range(3):
            await message_store.write_message("hello", "anon")
        page = await message_store.list_messages()
        assert [m.content for m in page.items] == ["hello"]

    async def test_distinct_authors_produce_distinct_messages(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        await message_store.write_message("hi", "alice")
        await message_store.write_message("hi", "bob")
        assert len(await _message_keys(memory_objects)) == 2

    async def test_identity_record_written(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        await message_store.write_message("hello", "anon")
        raw = await memory_objects.get(IDENTITY_PREFIX + derive_content_id("anon", "hello"))
        identity = json.loads(raw)
        assert identity["key"] == build_key(T0, "anon", "hello")

    async def test_empty_content_is_valid(self, message_store: MessageStore):
        message = await message_store.write_message("", "anon")
        assert message.content == ""
        page = await message_store.list_messages()
        assert page.items == [message]

    async def test_same_millisecond_distinct_content_both_kept(
        self, memory_objects: InMemoryObjectStore
    ):
        store = MessageStore(memory_objects, clock=lambda: T0)
        await store.write_message("one", "anon")
        await store.write_message("two", "anon")
        page = await store.list_messages()
        assert sorted(m.content for m in page.items) == ["one", "two"]

    async def test_naive_clock_treated_as_utc(self, memory_objects: InMemoryObjectStore):
        store = MessageStore(memory_objects, clock=lambda: datetime(2026, 1, 1))
        message = await store.write_message("hello", "anon")
        assert message.created_at == T0

    async def test_put_failure_raises_store_write_error(self, step_clock):
        objects = FlakyPutStore(IDENTITY_PREFIX)
        store = MessageStore(objects, clock=step_clock)

        with pytest.raises(StoreWriteError) as exc_info:
            await store.write_message("hello", "anon")
        assert exc_info.value.recoverable is True
        assert await _message_keys(objects) == []

    async def test_retry_after_failed_message_put_reuses_key(self, step_clock):
        """身份记录已落盘、留言记录写入失败：重试落在同一 key"""
        objects = FlakyPutStore(MESSAGE_PREFIX)
        store = MessageStore(objects, clock=step_clock)

        with pytest.raises(StoreWriteError):
            await store.write_message("hello", "anon")
        message = await store.write_message("hello", "anon")

        assert message.created_at == T0
        assert await _message_keys(objects) == [
            MESSAGE_PREFIX + build_key(T0, "anon", "hello")
        ]

    async def test_corrupt_identity_record_raises_store_read_error(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        await memory_objects.put(IDENTITY_PREFIX + derive_content_id("anon", "hello"), b"{")
        with pytest.raises(StoreReadError):
            await message_store.write_message("hello", "anon")


class TestListMessages:
    """list_messages"""

    async def test_empty_store(self, message_store: MessageStore):
        page = await message_store.list_messages()
        assert page.items == []
        assert page.next_cursor is None

    async def test_scenario_two_messages_page_size_one(self, message_store: MessageStore):
        hello = await message_store.write_message("hello", "anon")
        world = await message_store.write_message("world", "anon")
        assert world.created_at > hello.created_at

        first = await message_store.list_messages(page_size=1)
        assert first.items == [world]
        assert first.next_cursor is not None

        second = await message_store.list_messages(page_size=1, cursor=first.next_cursor)
        assert second.items == [hello]
        assert second.next_cursor is None

    async def test_pagination_is_complete_and_newest_first(self, message_store: MessageStore):
        n, k = 7, 3
        for i in range(n):
            await message_store.write_message(f"message {i}", "anon")

        items = []
        cursor = None
        pages = 0
        while True:
            page = await message_store.list_messages(page_size=k, cursor=cursor)
            items.extend(page.items)
            pages += 1
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        assert pages == 3
        assert len(items) == n
        assert len({m.content for m in items}) == n
        created = [m.created_at for m in items]
        assert all(a > b for a, b in zip(created, created[1:]))
        assert items[0].content == "message 6"

    async def test_identity_records_never_listed(self, message_store: MessageStore):
        for i in range(3):
            await message_store.write_message(f"m{i}", "anon")
        page = await message_store.list_messages(page_size=100)
        assert len(page.items) == 3
        assert page.next_cursor is None

    async def test_default_page_size_is_twenty(self, message_store: MessageStore):
        for i in range(25):
            await message_store.write_message(f"m{i}", "anon")
        page = await message_store.list_messages()
        assert len(page.items) == 20
        assert page.next_cursor is not None

    async def test_configured_default_page_size(self, memory_objects, step_clock):
        store = MessageStore(memory_objects, default_page_size=2, clock=step_clock)
        for i in range(3):
            await store.write_message(f"m{i}", "anon")
        page = await store.list_messages()
        assert len(page.items) == 2

    @pytest.mark.parametrize("page_size", [0, -1, True, 1.5, "10"])
    async def test_invalid_page_size_rejected(self, message_store: MessageStore, page_size):
        with pytest.raises(MessageValidationError) as exc_info:
            await message_store.list_messages(page_size=page_size)
        assert exc_info.value.field == "page_size"

    @pytest.mark.parametrize("cursor", ["not-a-real-token", ""])
    async def test_malformed_cursor_rejected(self, message_store: MessageStore, cursor):
        await message_store.write_message("hello", "anon")
        with pytest.raises(InvalidCursorError):
            await message_store.list_messages(page_size=1, cursor=cursor)

    async def test_failed_fetch_fails_whole_page(self, step_clock):
        objects = FailingGetStore()
        store = MessageStore(objects, clock=step_clock)
        await store.write_message("hello", "anon")
        await store.write_message("world", "anon")
        objects.broken_keys.add(MESSAGE_PREFIX + build_key(T0, "anon", "hello"))

        with pytest.raises(StoreReadError):
            await store.list_messages(page_size=10)

    async def test_corrupt_record_raises_store_read_error(
        self, message_store: MessageStore, memory_objects: InMemoryObjectStore
    ):
        await memory_objects.put(MESSAGE_PREFIX + "0000/broken", b"not json")
        with pytest.raises(StoreReadError) as exc_info:
            await message_store.list_messages()
        assert exc_info.value.key == MESSAGE_PREFIX + "0000/broken"


class TestSqliteBackend:
    """SQLite 后端上的端到端行为"""

    async def test_scenario_on_sqlite(self, sqlite_objects, step_clock):
        store = MessageStore(sqlite_objects, clock=step_clock)
        await store.write_message("hello", "anon")
        await store.write_message("world", "anon")
        await store.write_message("hello", "anon")

        first = await store.list_messages(page_size=1)
        assert [m.content for m in first.items] == ["world"]
        second = await store.list_messages(page_size=1, cursor=first.next_cursor)
        assert [m.content for m in second.items] == ["hello"]
        assert second.next_cursor is None


class TestConcurrentIdenticalWrites:
    """并发的相同写入在列表中只出现一次"""

    async def test_interleaved_writes_collapse_to_last_identity(self, step_clock):
        objects = YieldingStore()
        store = MessageStore(objects, clock=step_clock)

        first, second = await asyncio.gather(
            store.write_message("hello", "anon"),
            store.write_message("hello", "anon"),
        )

        # 两次写入都未命中身份记录，后写入的身份记录胜出
        winner = T0 + timedelta(seconds=1)
        assert first.created_at == winner
        assert second.created_at == winner

        raw = await objects.get(IDENTITY_PREFIX + derive_content_id("anon", "hello"))
        assert json.loads(raw)["key"] == build_key(winner, "anon", "hello")

        page = await store.list_messages()
        assert page.items == [second]
        assert page.next_cursor is None

    async def test_superseded_key_skipped_across_pages(self, step_clock):
        objects = YieldingStore()
        store = MessageStore(objects, clock=step_clock)
        await asyncio.gather(
            store.write_message("hello", "anon"),
            store.write_message("hello", "anon"),
        )
        await store.write_message("world", "anon")

        items = []
        cursor = None
        while True:
            page = await store.list_messages(page_size=1, cursor=cursor)
            items.extend(page.items)
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        assert [m.content for m in items] == ["world", "hello"]

    async def test_concurrent_writes_on_sqlite_listed_once(self, sqlite_objects, step_clock):
        store = MessageStore(sqlite_objects, clock=step_clock)

        results = await asyncio.gather(
            store.write_message("hello", "anon"),
            store.write_message("hello", "anon"),
        )

        page = await store.list_messages(page_size=10)
        assert [m.content for m in page.items] == ["hello"]
        assert page.items[0].created_at in {m.created_at for m in results}
