"""LiteLLMClient -- OpenAI 兼容模型服务调用封装

通过 litellm.acompletion() 调用，返回 Structured choices 响应。
"""

import time
from typing import Any

import httpx
import structlog

from .exceptions import (
    CapabilityUnsupported,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnreachableError,
    is_image_rejection,
)
from .models import ModelCallResult, TokenUsage
from .response import Choice, Structured

log = structlog.get_logger()

# 隔离 litellm 导入，方便测试 Mock
try:
    from litellm import acompletion
except ImportError:  # pragma: no cover
    acompletion = None  # type: ignore[assignment]

# 超时类异常（优先于连接类判断：内置 TimeoutError 是 OSError 子类）
_TIMEOUT_ERROR_TYPES = (
    TimeoutError,
    httpx.TimeoutException,
)

# 连接类异常类型集合（触发 ProviderUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    httpx.ConnectError,
)


def _is_timeout_error(e: Exception) -> bool:
    if isinstance(e, _TIMEOUT_ERROR_TYPES):
        return True
    # LiteLLM 的 Timeout / APITimeoutError
    return type(e).__name__ in ("Timeout", "APITimeoutError")


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误（服务不可达）"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    return type(e).__name__ == "APIConnectionError"


def _parse_usage(response) -> TokenUsage:
    """从 LiteLLM 响应解析 token 使用数据，失败时返回全零"""
    usage = getattr(response, "usage", None)
    if usage is None:
        return TokenUsage()
    try:
        return TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        )
    except (TypeError, ValueError) as e:
        log.debug("parse_usage_failed", error=str(e))
        return TokenUsage()


class LiteLLMClient:
    """OpenAI 兼容模型服务客户端

    messages 的 content 可以是字符串，也可以是 text/image_url 分段列表。
    """

    def __init__(
        self,
        api_base: str = "https://api.openai.com/v1",
        api_key: str = "",
        model: str = "openai/gpt-4o-mini",
        timeout_s: int = 60,
    ) -> None:
        """初始化客户端

        Args:
            api_base: 服务基础 URL
            api_key: 服务密钥
            model: litellm 模型名（provider/model）
            timeout_s: 请求超时（秒）
        """
        self._api_base = api_base.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s

    @property
    def model(self) -> str:
        return self._model

    @property
    def fingerprint(self) -> str:
        """配置指纹，用于视觉探测缓存的 key"""
        return f"litellm|{self._api_base}|{self._model}"

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs,
    ) -> ModelCallResult:
        """发送 chat completion 请求

        Args:
            messages: 消息列表，格式 [{"role": "user", "content": ...}]
            temperature: 采样温度
            max_tokens: 最大生成 token 数，None 使用模型默认
            **kwargs: 其他 LiteLLM 支持的参数

        Returns:
            ModelCallResult（response 为 Structured）

        Raises:
            ProviderTimeoutError: 调用超时
            ProviderUnreachableError: 服务连接失败
            CapabilityUnsupported: 服务拒绝图片输入
            ProviderError: 其他服务端错误（如模型不可用、配额耗尽）
        """
        start_time = time.monotonic()

        call_kwargs = {
            "model": self._model,
            "messages": messages,
            "api_base": self._api_base,
            "api_key": self._api_key or "no-key",
            "temperature": temperature,
            "timeout": self._timeout_s,
            **kwargs,
        }
        if max_tokens is not None:
            call_kwargs["max_tokens"] = max_tokens

        log.debug(
            "litellm_call_start",
            model=self._model,
            message_count=len(messages),
        )

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log.error(
                "litellm_call_failed",
                model=self._model,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            raise self._wrap_error(e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)

        choices = [
            Choice(index=i, text=choice.message.content or "")
            for i, choice in enumerate(response.choices)
        ]
        model_name = getattr(response, "model", None)
        result = ModelCallResult(
            response=Structured(choices=choices),
            model_name=model_name if isinstance(model_name, str) else self._model,
            provider="litellm",
            duration_ms=duration_ms,
            token_usage=_parse_usage(response),
        )

        log.info(
            "litellm_call_completed",
            model=result.model_name,
            duration_ms=duration_ms,
            total_tokens=result.token_usage.total_tokens,
        )
        return result

    def _wrap_error(self, e: Exception) -> ProviderError:
        """将 SDK 异常映射为 Provider 异常体系"""
        if isinstance(e, ProviderError):
            return e
        if _is_timeout_error(e):
            return ProviderTimeoutError(self._timeout_s, original_error=e)
        if _is_connection_error(e):
            return ProviderUnreachableError(api_base=self._api_base, original_error=e)
        if is_image_rejection(getattr(e, "status_code", None), str(e)):
            return CapabilityUnsupported(original_error=e)
        # 业务错误（模型不存在、配额耗尽、invalid request 等）
        return ProviderError(f"LLM 调用失败: {e}", recoverable=True)
