"""SQLite schema

messages 表只追加：UPDATE / DELETE 由触发器拒绝。
schema 版本记录在 PRAGMA user_version。
"""

import aiosqlite

SCHEMA_VERSION = 1

_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id  TEXT NOT NULL DEFAULT 'default',
    role        TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content     TEXT NOT NULL DEFAULT '',
    image_data  TEXT,
    meta_tags   TEXT,
    created_at  TEXT NOT NULL,
    CHECK (image_data IS NULL OR role = 'user'),
    CHECK (meta_tags IS NULL OR role = 'assistant')
);
"""

_MESSAGES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_messages_session_created ON messages(session_id, created_at, id);",
    "CREATE INDEX IF NOT EXISTS idx_messages_created_at ON messages(created_at, id);",
]

_APPEND_ONLY_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_messages_no_update
    BEFORE UPDATE ON messages
    BEGIN
        SELECT RAISE(ABORT, 'messages is append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_messages_no_delete
    BEFORE DELETE ON messages
    BEGIN
        SELECT RAISE(ABORT, 'messages is append-only');
    END;
    """,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """PRAGMA + 建表 + 索引 + 触发器（可重复执行）"""
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_MESSAGES_DDL)
    for statement in (*_MESSAGES_INDEXES, *_APPEND_ONLY_TRIGGERS):
        await conn.execute(statement)
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"


async def get_schema_version(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("PRAGMA user_version;")
    row = await cursor.fetchone()
    return row[0] if row else 0
