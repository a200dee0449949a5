"""Store Protocol 接口定义

使用 Python Protocol 实现结构化子类型（duck typing），
便于在测试中用内存实现替换 SQLite。
"""

from typing import Protocol

from ..models.message import ChatMessage


class MessageStore(Protocol):
    """聊天记录存储接口

    append-only：只允许插入，不允许更新或删除。
    """

    async def append_message(self, message: ChatMessage) -> ChatMessage:
        """追加消息，返回带 id 的已存储副本"""
        ...

    async def get_message(self, message_id: int) -> ChatMessage | None:
        """根据 id 查询消息"""
        ...

    async def list_messages(self, session_id: str | None = None) -> list[ChatMessage]:
        """按时间正序查询消息，session_id 为 None 时返回全部"""
        ...

    async def get_recent_messages(
        self,
        session_id: str,
        limit: int,
        before_id: int | None = None,
    ) -> list[ChatMessage]:
        """查询最近 limit 条消息（时间正序）"""
        ...

    async def get_stats(self, session_id: str | None = None) -> dict[str, int]:
        """聚合统计：total_messages / days_active / total_chars"""
        ...
