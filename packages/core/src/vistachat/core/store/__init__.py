"""VistaChat Core Store -- SQLite 持久化

整个进程共享一个 aiosqlite 连接；StoreGroup 持有连接与其上的 store。
"""

from pathlib import Path

import aiosqlite
import structlog

from .message_store import SqliteMessageStore
from .protocols import MessageStore
from .sqlite_init import get_schema_version, init_db

log = structlog.get_logger()


class StoreGroup:
    """共享连接上的 store 集合"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.message_store: MessageStore = SqliteMessageStore(conn)

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(db_path: str) -> StoreGroup:
    """打开（必要时创建）数据库并完成 schema 初始化

    Args:
        db_path: SQLite 数据库文件路径，父目录不存在时自动创建
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)
    log.debug("store_opened", db_path=db_path, schema_version=await get_schema_version(conn))

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "MessageStore",
    "SqliteMessageStore",
    "init_db",
]
