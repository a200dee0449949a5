"""Core 异常体系

ImageDecodeError: 输入图片不可解码，整轮对话失败，不落盘 assistant 消息。
ValidationError: 请求缺少必要内容，在任何网络/存储调用之前拒绝。
"""


class ChatError(Exception):
    """Core 包基础异常"""


class ImageDecodeError(ChatError):
    """图片为空、损坏或格式无法识别"""

    def __init__(self, message: str = "无法解码图片", original_error: Exception | None = None) -> None:
        """
        Args:
            message: 错误描述
            original_error: 底层解码异常（如 PIL.UnidentifiedImageError）
        """
        super().__init__(message)
        self.original_error = original_error


class ValidationError(ChatError):
    """请求校验失败（如 message 与 image 均为空）"""

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field
