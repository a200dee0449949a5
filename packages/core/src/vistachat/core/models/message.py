"""ChatMessage Domain Model

消息表 append-only：创建后不可修改、不可删除。
image_data 只出现在 user 消息上，meta_tags 只出现在 assistant 消息上。
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import MessageRole
from .meta import MetaTags


class ChatMessage(BaseModel):
    """一条聊天记录

    id 由存储层分配（自增），未落盘前为 None。
    排序按 created_at，同一时间戳按 id。
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="自增 ID，落盘后分配")
    session_id: str = Field(default="default", description="会话标识")
    role: MessageRole = Field(description="消息角色")
    content: str = Field(default="", description="文本内容")
    image_data: str | None = Field(
        default=None,
        description="压缩后的图片 data URI，仅 user 消息",
    )
    meta_tags: MetaTags | None = Field(
        default=None,
        description="结构化标签，仅 assistant 消息",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="创建时间",
    )

    @model_validator(mode="after")
    def _check_role_fields(self) -> "ChatMessage":
        if self.image_data is not None and self.role != MessageRole.USER:
            raise ValueError("image_data 只允许出现在 user 消息上")
        if self.meta_tags is not None and self.role != MessageRole.ASSISTANT:
            raise ValueError("meta_tags 只允许出现在 assistant 消息上")
        return self

    @property
    def has_image(self) -> bool:
        return self.image_data is not None
