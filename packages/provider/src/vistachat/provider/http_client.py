"""HttpTextClient -- 原始 HTTP 文本生成服务

POST {api_base} 请求体 {"messages": [...], "model": ..., "jsonMode": false}。
服务可能直接返回纯文本，也可能返回 OpenAI 风格的 choices JSON，
两种形态分别映射为 PlainText / Structured。
"""

import json
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
from .response import Choice, PlainText, Structured

log = structlog.get_logger()

# 错误信息中保留的响应体长度
_ERROR_BODY_PREVIEW = 300


def _parse_body(resp: httpx.Response) -> PlainText | Structured:
    """按响应内容判断形态：含 choices 的 JSON -> Structured，否则 PlainText

    Raises:
        ProviderError: choices 存在但结构不合法
    """
    text = resp.text
    if "json" not in resp.headers.get("content-type", "") and not text.lstrip().startswith("{"):
        return PlainText(text=text)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return PlainText(text=text)
    if not isinstance(payload, dict) or not isinstance(payload.get("choices"), list):
        return PlainText(text=text)

    choices = []
    for i, choice in enumerate(payload["choices"]):
        if not isinstance(choice, dict):
            raise _malformed(text)
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise _malformed(text)
        content = message.get("content") or choice.get("text") or ""
        if not isinstance(content, str):
            raise _malformed(text)
        index = choice.get("index")
        finish_reason = choice.get("finish_reason")
        choices.append(
            Choice(
                index=index if isinstance(index, int) else i,
                text=content,
                finish_reason=finish_reason if isinstance(finish_reason, str) else None,
            )
        )
    return Structured(choices=choices)


def _malformed(text: str) -> ProviderError:
    log.error("http_response_malformed", body_preview=text[:_ERROR_BODY_PREVIEW])
    return ProviderError("Malformed provider response", recoverable=False)


class HttpTextClient:
    """原始 HTTP 文本生成客户端

    transport 参数仅供测试注入 httpx.MockTransport。
    """

    def __init__(
        self,
        api_base: str,
        api_key: str = "",
        model: str = "openai",
        timeout_s: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def fingerprint(self) -> str:
        """配置指纹，用于视觉探测缓存的 key"""
        return f"http|{self._api_base}|{self._model}"

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs,
    ) -> ModelCallResult:
        """发送文本生成请求

        Raises:
            ProviderTimeoutError: 调用超时
            ProviderUnreachableError: 连接失败
            CapabilityUnsupported: 4xx 且错误指向图片字段
            ProviderError: 其他非 2xx 响应，或 choices 结构不合法
        """
        start_time = time.monotonic()
        body: dict[str, Any] = {
            "messages": messages,
            "model": self._model,
            "jsonMode": False,
            "temperature": temperature,
            **kwargs,
        }
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
            ) as http_client:
                resp = await http_client.post(self._api_base, json=body, headers=headers)
        except httpx.TimeoutException as e:
            log.error("http_call_timeout", url=self._api_base, timeout_s=self._timeout_s)
            raise ProviderTimeoutError(self._timeout_s, original_error=e) from e
        except httpx.TransportError as e:
            log.error("http_call_unreachable", url=self._api_base, error=str(e))
            raise ProviderUnreachableError(api_base=self._api_base, original_error=e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)

        if resp.status_code >= 400:
            preview = resp.text[:_ERROR_BODY_PREVIEW]
            log.error(
                "http_call_failed",
                url=self._api_base,
                status_code=resp.status_code,
                body_preview=preview,
                duration_ms=duration_ms,
            )
            if is_image_rejection(resp.status_code, preview):
                raise CapabilityUnsupported(
                    original_error=ProviderError(f"{resp.status_code}: {preview}")
                )
            raise ProviderError(
                f"API Error: {resp.status_code} {resp.reason_phrase}",
                recoverable=resp.status_code >= 500 or resp.status_code == 429,
            )

        result = ModelCallResult(
            response=_parse_body(resp),
            model_name=self._model,
            provider="http",
            duration_ms=duration_ms,
            token_usage=TokenUsage(),
        )
        log.info(
            "http_call_completed",
            model=self._model,
            duration_ms=duration_ms,
            response_kind=result.response.kind,
        )
        return result
