"""CLI 入口模块 -- python -m guestbook.core <command>

支持的命令：
  list-messages [page_size] [cursor]  输出一页留言（JSON lines）
  write-message <text>                以默认作者写入一条留言

留言存储抛出的错误只输出错误信息，并以 1 退出。
"""

import asyncio
import sys

from .config import get_db_path, get_default_author, get_default_page_size, get_store_backend
from .exceptions import MessageStoreError

_USAGE = """用法: python -m guestbook.core <command>
命令:
  list-messages [page_size] [cursor]  输出一页留言，cursor 取自上次输出的 next_cursor
  write-message <text>                以默认作者写入一条留言"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "list-messages":
        page_size = None
        if len(sys.argv) > 2:
            try:
                page_size = int(sys.argv[2])
            except ValueError:
                print(f"page_size 必须是整数: {sys.argv[2]}")
                sys.exit(1)
        cursor = sys.argv[3] if len(sys.argv) > 3 else None
        _run(list_messages(page_size, cursor))
    elif command == "write-message":
        if len(sys.argv) < 3:
            print("缺少留言内容")
            sys.exit(1)
        _run(write_message(sys.argv[2]))
    else:
        print(f"未知命令: {command}")
        print("可用命令: list-messages, write-message")
        sys.exit(1)


def _run(command) -> None:
    try:
        asyncio.run(command)
    except MessageStoreError as e:
        print(f"错误: {e}")
        sys.exit(1)


async def list_messages(page_size: int | None, cursor: str | None = None) -> None:
    """输出一页留言，以及下一页游标（如果有）"""
    from .message_store import MessageStore
    from .store import create_object_store

    objects = await create_object_store(get_store_backend(), get_db_path())
    store = MessageStore(objects, default_page_size=get_default_page_size())

    try:
        page = await store.list_messages(page_size, cursor)
        for message in page.items:
            print(message.model_dump_json())
        if page.next_cursor:
            print(f"next_cursor: {page.next_cursor}")
    finally:
        await objects.close()


async def write_message(content: str) -> None:
    """写入一条留言并输出存储结果"""
    from .message_store import MessageStore
    from .store import create_object_store

    objects = await create_object_store(get_store_backend(), get_db_path())
    store = MessageStore(objects)

    try:
        message = await store.write_message(content, get_default_author())
        print(message.model_dump_json())
    finally:
        await objects.close()


if __name__ == "__main__":
    main()
