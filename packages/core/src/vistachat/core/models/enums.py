"""枚举定义 -- 消息角色与时间段"""

from enum import StrEnum


class MessageRole(StrEnum):
    """消息角色，仅允许两种取值"""

    USER = "user"
    ASSISTANT = "assistant"


class TimeOfDay(StrEnum):
    """图片描述中识别出的时间段"""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"
    UNKNOWN = "unknown"
