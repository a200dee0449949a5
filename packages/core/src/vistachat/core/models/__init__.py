"""VistaChat Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import MessageRole, TimeOfDay
from .image import NormalizedImage
from .message import ChatMessage
from .meta import MetaTags

__all__ = [
    # 枚举
    "MessageRole",
    "TimeOfDay",
    # Message
    "ChatMessage",
    "MetaTags",
    # Image
    "NormalizedImage",
]
