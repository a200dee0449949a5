"""VistaChat Provider -- 视觉模型调用抽象层

packages/provider 的公开接口导出。
"""

# 核心组件
from .client import LiteLLMClient

# 配置
from .config import ProviderConfig, load_provider_config
from .describer import Description, ImageDescriber
from .echo_adapter import EchoMessageAdapter

# 异常
from .exceptions import (
    CapabilityUnsupported,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnreachableError,
)
from .http_client import HttpTextClient

# 数据模型
from .models import ModelCallResult, TokenUsage
from .probe import VisionProbe
from .response import PlainText, ProviderReply, Structured, normalize_response

__all__ = [
    "ModelCallResult",
    "TokenUsage",
    "PlainText",
    "Structured",
    "ProviderReply",
    "normalize_response",
    "LiteLLMClient",
    "HttpTextClient",
    "EchoMessageAdapter",
    "VisionProbe",
    "ImageDescriber",
    "Description",
    "ProviderConfig",
    "load_provider_config",
    "ProviderError",
    "ProviderUnreachableError",
    "ProviderTimeoutError",
    "CapabilityUnsupported",
]
