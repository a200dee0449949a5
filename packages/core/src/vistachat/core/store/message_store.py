"""MessageStore SQLite 实现

消息表 append-only：只允许插入，不允许更新或删除。
排序规则：created_at 正序，同一时间戳按自增 id。
"""

from datetime import UTC, datetime

import aiosqlite
import structlog

from ..models.enums import MessageRole
from ..models.message import ChatMessage
from ..models.meta import MetaTags

log = structlog.get_logger()

_COLUMNS = "id, session_id, role, content, image_data, meta_tags, created_at"


def _format_ts(ts: datetime) -> str:
    """统一时间戳格式，保证字符串排序与时间排序一致"""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat(timespec="microseconds")


class SqliteMessageStore:
    """MessageStore 的 SQLite 实现

    共享单个 aiosqlite 连接，写操作由连接线程串行执行。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_message(self, message: ChatMessage) -> ChatMessage:
        """追加消息并提交

        Returns:
            带数据库 id 的消息副本（原对象不可变）
        """
        try:
            cursor = await self._conn.execute(
                """
                INSERT INTO messages (session_id, role, content, image_data,
                                      meta_tags, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.session_id,
                    message.role.value,
                    message.content,
                    message.image_data,
                    message.meta_tags.model_dump_json() if message.meta_tags else None,
                    _format_ts(message.created_at),
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

        stored = message.model_copy(update={"id": cursor.lastrowid})
        log.debug(
            "message_appended",
            message_id=stored.id,
            session_id=stored.session_id,
            role=stored.role.value,
            has_image=stored.has_image,
        )
        return stored

    async def get_message(self, message_id: int) -> ChatMessage | None:
        """根据 id 查询消息"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_message(row)

    async def list_messages(self, session_id: str | None = None) -> list[ChatMessage]:
        """按时间正序查询消息，session_id 为 None 时返回全部会话"""
        if session_id is not None:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE session_id = ? "
                "ORDER BY created_at ASC, id ASC",
                (session_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM messages ORDER BY created_at ASC, id ASC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_message(row) for row in rows]

    async def get_recent_messages(
        self,
        session_id: str,
        limit: int,
        before_id: int | None = None,
    ) -> list[ChatMessage]:
        """查询会话最近 limit 条消息，返回时间正序

        Args:
            session_id: 会话标识
            limit: 条数上限，<= 0 时返回空列表
            before_id: 只查询 id 小于该值的消息（排除当前轮次）
        """
        if limit <= 0:
            return []
        if before_id is not None:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE session_id = ? AND id < ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (session_id, before_id, limit),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE session_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (session_id, limit),
            )
        rows = await cursor.fetchall()
        return [self._row_to_message(row) for row in reversed(rows)]

    async def get_stats(self, session_id: str | None = None) -> dict[str, int]:
        """聚合统计

        Returns:
            {"total_messages", "days_active", "total_chars"}
        """
        sql = """
            SELECT COUNT(*),
                   COUNT(DISTINCT DATE(created_at)),
                   COALESCE(SUM(LENGTH(content)), 0)
            FROM messages
        """
        if session_id is not None:
            cursor = await self._conn.execute(sql + " WHERE session_id = ?", (session_id,))
        else:
            cursor = await self._conn.execute(sql)
        row = await cursor.fetchone()
        total_messages, days_active, total_chars = row if row else (0, 0, 0)
        return {
            "total_messages": total_messages,
            "days_active": days_active,
            "total_chars": total_chars,
        }

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
        """将数据库行转换为 ChatMessage 模型"""
        meta_tags = MetaTags.model_validate_json(row[5]) if row[5] else None
        return ChatMessage(
            id=row[0],
            session_id=row[1],
            role=MessageRole(row[2]),
            content=row[3],
            image_data=row[4],
            meta_tags=meta_tags,
            created_at=datetime.fromisoformat(row[6]),
        )
