"""Provider 异常体系

ProviderError 的文本会作为 assistant 消息展示给用户，保证对话不中断；
ProviderTimeoutError 例外，整轮视为失败，不落盘 assistant 消息。
"""


class ProviderError(Exception):
    """Provider 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试或降级恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ProviderUnreachableError(ProviderError):
    """模型服务不可达（连接失败、DNS 解析失败等）"""

    def __init__(self, api_base: str, original_error: Exception) -> None:
        """
        Args:
            api_base: 尝试连接的服务地址
            original_error: 原始异常
        """
        super().__init__(
            f"模型服务不可达: {api_base} -- {original_error}",
            recoverable=True,
        )
        self.api_base = api_base
        self.original_error = original_error


class ProviderTimeoutError(ProviderError):
    """模型调用超时"""

    def __init__(self, timeout_s: float, original_error: Exception | None = None) -> None:
        super().__init__(f"模型调用超时（{timeout_s}s）", recoverable=True)
        self.timeout_s = timeout_s
        self.original_error = original_error


# 模型拒绝图片时给用户的排查提示
VISION_REMEDIATION_MESSAGE = (
    "The configured model does not support image analysis.\n\n"
    "**Possible causes**:\n"
    "1. The model lacks vision capability -- choose a vision-capable model\n"
    "2. The endpoint is wrong -- check VISTACHAT_LLM_API_BASE / VISTACHAT_LLM_MODEL\n"
    "3. Describe the image in text instead of uploading it"
)


class CapabilityUnsupported(ProviderError):
    """模型拒绝图片输入（非致命）

    message 为面向用户的排查提示，不包含原始 provider 报错。
    """

    def __init__(
        self,
        message: str = VISION_REMEDIATION_MESSAGE,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, recoverable=True)
        self.original_error = original_error


def is_image_rejection(status_code: int | None, message: str) -> bool:
    """判断 provider 错误是否为图片字段被拒绝

    规则：4xx 且错误信息提及 image 字段（image_url / image / vision）。
    """
    if status_code is None or not 400 <= status_code < 500:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in ("image_url", "image", "vision"))
